"""Typed queries over the feed database."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from os import PathLike
from uuid import UUID

from .models import (
    Feed,
    FeedFollowResult,
    FeedWithCreator,
    FollowedFeed,
    NextFeed,
    Post,
    PostSummary,
    User,
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS feeds (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    last_fetched_at TEXT
);
CREATE TABLE IF NOT EXISTS feed_follows (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    feed_id TEXT NOT NULL REFERENCES feeds (id) ON DELETE CASCADE,
    UNIQUE (user_id, feed_id)
);
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    description TEXT NOT NULL,
    published_at TEXT NOT NULL,
    feed_id TEXT NOT NULL REFERENCES feeds (id) ON DELETE CASCADE
);
"""

_FEED_COLUMNS = "id, created_at, updated_at, name, url, user_id, last_fetched_at"


class NotFoundError(LookupError):
    """A query that returns one row found none."""


class DuplicateError(sqlite3.IntegrityError):
    """An insert would break a uniqueness constraint."""


def connect(path: str | PathLike) -> sqlite3.Connection:
    """Open a database connection with foreign keys enforced."""
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def _ts(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _opt_ts(value: datetime | None) -> str | None:
    return None if value is None else _ts(value)


def _dt(text: str) -> datetime:
    return datetime.fromisoformat(text)


def _opt_dt(text: str | None) -> datetime | None:
    return None if text is None else _dt(text)


def _user(row: tuple) -> User:
    return User(UUID(row[0]), _dt(row[1]), _dt(row[2]), row[3])


def _feed(row: tuple) -> Feed:
    return Feed(UUID(row[0]), _dt(row[1]), _dt(row[2]), row[3], row[4], UUID(row[5]), _opt_dt(row[6]))


class Queries:
    """All database operations used by the aggregator."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._depth = 0

    def create_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        self._conn.executescript(_SCHEMA)

    @contextmanager
    def transaction(self) -> Iterator[Queries]:
        """Run the enclosed queries as one unit, rolled back on error."""
        if self._depth:
            yield self
            return
        if not self._conn.in_transaction:
            self._conn.execute("BEGIN")
        self._depth += 1
        try:
            yield self
        except BaseException:
            self._conn.rollback()
            raise
        else:
            self._conn.commit()
        finally:
            self._depth -= 1

    def _finish(self, ok: bool) -> None:
        if self._depth:
            return
        if ok:
            self._conn.commit()
        else:
            self._conn.rollback()

    @contextmanager
    def _write(self) -> Iterator[None]:
        try:
            yield
        except sqlite3.IntegrityError as exc:
            self._finish(False)
            if "UNIQUE" in str(exc):
                raise DuplicateError(str(exc)) from exc
            raise
        except BaseException:
            self._finish(False)
            raise
        else:
            self._finish(True)

    def _one(self, sql: str, params: tuple = ()) -> tuple:
        row = self._conn.execute(sql, params).fetchone()
        if row is None:
            raise NotFoundError("no rows in result set")
        return row

    # users

    def create_user(self, user_id: UUID, created_at: datetime, updated_at: datetime, name: str) -> User:
        with self._write():
            self._conn.execute(
                "INSERT INTO users (id, created_at, updated_at, name) VALUES (?, ?, ?, ?)",
                (str(user_id), _ts(created_at), _ts(updated_at), name),
            )
            row = self._one("SELECT id, created_at, updated_at, name FROM users WHERE id = ?", (str(user_id),))
        return _user(row)

    def get_user(self, name: str) -> User:
        return _user(self._one("SELECT id, created_at, updated_at, name FROM users WHERE name = ?", (name,)))

    def get_users(self) -> list[str]:
        return [row[0] for row in self._conn.execute("SELECT name FROM users ORDER BY rowid")]

    def reset_users(self) -> None:
        with self._write():
            self._conn.execute("DELETE FROM users")

    # feeds

    def create_feed(
        self,
        feed_id: UUID,
        created_at: datetime,
        updated_at: datetime,
        name: str,
        url: str,
        user_id: UUID,
    ) -> Feed:
        with self._write():
            self._conn.execute(
                "INSERT INTO feeds (id, created_at, updated_at, name, url, user_id) VALUES (?, ?, ?, ?, ?, ?)",
                (str(feed_id), _ts(created_at), _ts(updated_at), name, url, str(user_id)),
            )
            row = self._one(f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(feed_id),))
        return _feed(row)

    def get_feed_by_url(self, url: str) -> Feed:
        return _feed(self._one(f"SELECT {_FEED_COLUMNS} FROM feeds WHERE url = ?", (url,)))

    def get_next_feed_to_fetch(self) -> NextFeed:
        row = self._one("SELECT id, url FROM feeds ORDER BY last_fetched_at ASC, rowid ASC LIMIT 1")
        return NextFeed(UUID(row[0]), row[1])

    def mark_feed_fetched(self, feed_id: UUID, last_fetched_at: datetime | None) -> None:
        stamp = _opt_ts(last_fetched_at)
        with self._write():
            self._conn.execute(
                "UPDATE feeds SET last_fetched_at = ?, updated_at = ? WHERE id = ?",
                (stamp, stamp, str(feed_id)),
            )

    # follows

    def create_feed_follow(
        self,
        follow_id: UUID,
        created_at: datetime,
        updated_at: datetime,
        user_id: UUID,
        feed_id: UUID,
    ) -> FeedFollowResult:
        with self._write():
            self._conn.execute(
                "INSERT INTO feed_follows (id, created_at, updated_at, user_id, feed_id) VALUES (?, ?, ?, ?, ?)",
                (str(follow_id), _ts(created_at), _ts(updated_at), str(user_id), str(feed_id)),
            )
            row = self._one(
                "SELECT ff.id, ff.created_at, ff.updated_at, ff.user_id, ff.feed_id,"
                " (SELECT name FROM users WHERE id = ff.user_id),"
                " (SELECT name FROM feeds WHERE id = ff.feed_id)"
                " FROM feed_follows AS ff WHERE ff.id = ?",
                (str(follow_id),),
            )
        return FeedFollowResult(
            UUID(row[0]), _dt(row[1]), _dt(row[2]), UUID(row[3]), UUID(row[4]), row[5], row[6]
        )

    def get_feed_follows_for_user(self, user_id: UUID) -> list[FollowedFeed]:
        rows = self._conn.execute(
            "SELECT feeds.name, users.name FROM feed_follows"
            " INNER JOIN users ON users.id = feed_follows.user_id"
            " INNER JOIN feeds ON feeds.id = feed_follows.feed_id"
            " WHERE feed_follows.user_id = ? ORDER BY feed_follows.rowid",
            (str(user_id),),
        )
        return [FollowedFeed(feed_name, user_name) for feed_name, user_name in rows]

    def list_feeds_and_users(self) -> list[FeedWithCreator]:
        rows = self._conn.execute(
            f"SELECT {_FEED_COLUMNS}, (SELECT name FROM users WHERE users.id = feeds.user_id)"
            " FROM feeds ORDER BY rowid"
        )
        return [FeedWithCreator(*dataclass_values(_feed(row)), row[7]) for row in rows]

    def unfollow_feed_by_url(self, user_id: UUID, url: str) -> None:
        with self._write():
            self._conn.execute(
                "DELETE FROM feed_follows WHERE user_id = ?"
                " AND feed_id IN (SELECT id FROM feeds WHERE url = ?)",
                (str(user_id), url),
            )

    # posts

    def create_post(
        self,
        post_id: UUID,
        created_at: datetime,
        updated_at: datetime,
        title: str,
        url: str,
        description: str,
        published_at: datetime,
        feed_id: UUID,
    ) -> Post:
        with self._write():
            self._conn.execute(
                "INSERT INTO posts (id, created_at, updated_at, title, url, description, published_at, feed_id)"
                " VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    str(post_id),
                    _ts(created_at),
                    _ts(updated_at),
                    title,
                    url,
                    description,
                    _ts(published_at),
                    str(feed_id),
                ),
            )
            row = self._one(
                "SELECT id, created_at, updated_at, title, url, description, published_at, feed_id"
                " FROM posts WHERE id = ?",
                (str(post_id),),
            )
        return Post(
            UUID(row[0]), _dt(row[1]), _dt(row[2]), row[3], row[4], row[5], _dt(row[6]), UUID(row[7])
        )

    def get_posts_for_user(self, user_id: UUID, limit: int) -> list[PostSummary]:
        if limit < 0:
            raise ValueError("LIMIT must not be negative")
        rows = self._conn.execute(
            "SELECT posts.id, posts.title, posts.url, posts.description, posts.published_at"
            " FROM posts INNER JOIN feed_follows ON posts.feed_id = feed_follows.feed_id"
            " WHERE feed_follows.user_id = ? ORDER BY posts.published_at DESC LIMIT ?",
            (str(user_id), limit),
        )
        return [PostSummary(UUID(pid), title, url, desc, _dt(pub)) for pid, title, url, desc, pub in rows]


def dataclass_values(record: Feed) -> tuple:
    return (
        record.id,
        record.created_at,
        record.updated_at,
        record.name,
        record.url,
        record.user_id,
        record.last_fetched_at,
    )