"""Records stored in and returned by the feed database."""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from uuid import UUID


class _Record:
    """Renders a record as its field values in braces."""

    def __str__(self) -> str:
        parts = ("<nil>" if (value := getattr(self, f.name)) is None else str(value) for f in fields(self))
        return "{" + " ".join(parts) + "}"


@dataclass(frozen=True)
class User(_Record):
    id: UUID
    created_at: datetime
    updated_at: datetime
    name: str


@dataclass(frozen=True)
class Feed(_Record):
    id: UUID
    created_at: datetime
    updated_at: datetime
    name: str
    url: str
    user_id: UUID
    last_fetched_at: datetime | None


@dataclass(frozen=True)
class FeedFollow(_Record):
    id: UUID
    created_at: datetime
    updated_at: datetime
    user_id: UUID
    feed_id: UUID


@dataclass(frozen=True)
class Post(_Record):
    id: UUID
    created_at: datetime
    updated_at: datetime
    title: str
    url: str
    description: str
    published_at: datetime
    feed_id: UUID


@dataclass(frozen=True)
class NextFeed(_Record):
    """The feed that is due to be fetched next."""

    id: UUID
    url: str


@dataclass(frozen=True)
class FeedFollowResult(_Record):
    """A new follow together with the names of its user and feed."""

    id: UUID
    created_at: datetime
    updated_at: datetime
    user_id: UUID
    feed_id: UUID
    user_name: str
    feed_name: str


@dataclass(frozen=True)
class FollowedFeed(_Record):
    feed_name: str
    user_name: str


@dataclass(frozen=True)
class FeedWithCreator(_Record):
    """A feed together with the name of the user who added it."""

    id: UUID
    created_at: datetime
    updated_at: datetime
    name: str
    url: str
    user_id: UUID
    last_fetched_at: datetime | None
    created_by_user: str


@dataclass(frozen=True)
class PostSummary(_Record):
    id: UUID
    title: str
    url: str
    description: str
    published_at: datetime