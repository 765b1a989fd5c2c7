import dataclasses
from datetime import datetime, timezone
from uuid import UUID, uuid4

import pytest

from rssgator.models import Feed, FollowedFeed, NextFeed, Post, User

T0 = datetime(2025, 6, 16, 12, 32, 2, tzinfo=timezone.utc)


def test_user_str_lists_fields_in_braces():
    user = User(UUID(int=1), T0, T0, "alice")
    assert str(user) == (
        "{00000000-0000-0000-0000-000000000001 "
        "2025-06-16 12:32:02+00:00 2025-06-16 12:32:02+00:00 alice}"
    )


def test_feed_str_marks_missing_fetch_time():
    feed = Feed(uuid4(), T0, T0, "news", "https://example.com/rss", uuid4(), None)
    text = str(feed)
    assert text.startswith("{") and text.endswith(" <nil>}")
    assert "https://example.com/rss" in text


def test_records_are_frozen():
    user = User(uuid4(), T0, T0, "alice")
    with pytest.raises(dataclasses.FrozenInstanceError):
        user.name = "bob"
    assert user.name == "alice"


def test_equality_by_value():
    post_id, feed_id = uuid4(), uuid4()
    a = Post(post_id, T0, T0, "t", "u", "d", T0, feed_id)
    b = Post(post_id, T0, T0, "t", "u", "d", T0, feed_id)
    assert a == b
    assert hash(a) == hash(b)
    assert dataclasses.replace(a, title="other") != a


def test_small_records_str():
    assert str(FollowedFeed("news", "alice")) == "{news alice}"
    assert str(NextFeed(UUID(int=0), "u")) == "{00000000-0000-0000-0000-000000000000 u}"