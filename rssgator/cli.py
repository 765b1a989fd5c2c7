"""Command-line interface of the feed aggregator."""

from __future__ import annotations

import json
import logging
import re
import sqlite3
import sys
import time
from collections.abc import Callable, Sequence
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from fractions import Fraction
from uuid import uuid4

from .config import Config, read_default_config
from .models import User
from .queries import DuplicateError, NotFoundError, Queries, connect
from .rss import RSSFeed, fetch_feed

logger = logging.getLogger(__name__)

Handler = Callable[["State", "Command"], None]
UserHandler = Callable[["State", "Command", User], None]

_NANOS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_PART = re.compile(r"([0-9]+(?:\.[0-9]*)?|\.[0-9]+)(ns|us|µs|μs|ms|s|m|h)")
_MAX_NANOS = 2**63 - 1

_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_PUB_DATE = re.compile(
    rf"({'|'.join(_DAYS)}), ([0-9]{{2}}) ({'|'.join(_MONTHS)}) ([0-9]{{4}}) "
    r"([0-9]{2}):([0-9]{2}):([0-9]{2})(?:\.([0-9]+))? ([+-])([0-9]{2})([0-9]{2})",
    re.IGNORECASE,
)
_INTEGER = re.compile(r"[+-]?[0-9]+")


class CommandError(Exception):
    """A command was called with missing or invalid arguments."""


@dataclass
class State:
    """What every command handler works with."""

    queries: Queries
    config: Config
    fetch: Callable[[str], RSSFeed] = fetch_feed
    sleep: Callable[[float], None] = time.sleep


@dataclass(frozen=True)
class Command:
    name: str
    args: Sequence[str] = ()


@dataclass
class Commands:
    """Maps command names to their handlers."""

    handlers: dict[str, Handler] = field(default_factory=dict)

    def run(self, state: State, cmd: Command) -> None:
        """Run the handler for a command; unknown commands do nothing."""
        handler = self.handlers.get(cmd.name)
        if handler is not None:
            handler(state, cmd)

    def register(self, name: str, handler: Handler) -> None:
        self.handlers[name] = handler


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _now() -> datetime:
    return datetime.now().astimezone()


def _format_time(moment: datetime) -> str:
    base = moment.strftime("%Y-%m-%d %H:%M:%S")
    if moment.microsecond:
        base += "." + f"{moment.microsecond:06d}".rstrip("0")
    if moment.tzinfo is None:
        return f"{base} +0000 UTC"
    offset = moment.strftime("%z")
    name = moment.tzname()
    if not name or (name.startswith("UTC") and name != "UTC"):
        name = offset
    return f"{base} {offset} {name}"


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as "1m30s", "1.5h" or "-250ms"."""
    body = text
    sign = 1
    if body and body[0] in "+-":
        sign = -1 if body[0] == "-" else 1
        body = body[1:]
    if body == "0":
        return timedelta(0)
    if not body:
        raise ValueError(f"time: invalid duration {_quote(text)}")
    total = Fraction(0)
    pos = 0
    while pos < len(body):
        match = _DURATION_PART.match(body, pos)
        if match is None:
            if re.fullmatch(r"[0-9.]+", body[pos:]):
                raise ValueError(f"time: missing unit in duration {_quote(text)}")
            raise ValueError(f"time: invalid duration {_quote(text)}")
        total += Fraction(match.group(1)) * _NANOS_PER_UNIT[match.group(2)]
        pos = match.end()
    nanos = int(total)
    if nanos > _MAX_NANOS + (1 if sign < 0 else 0):
        raise ValueError(f"time: invalid duration {_quote(text)}")
    seconds, rest = divmod(sign * nanos, 1_000_000_000)
    return timedelta(seconds=seconds, microseconds=rest / 1000)


def parse_pub_date(text: str) -> datetime:
    """Parse a publication date of the form "Mon, 02 Jan 2006 15:04:05 -0700"."""
    match = _PUB_DATE.fullmatch(text)
    if match is None:
        raise ValueError(f"cannot parse {_quote(text)} as a publication date")
    (_, day, month, year, hour, minute, second, fraction, sign, off_h, off_m) = match.groups()
    offset = timedelta(hours=int(off_h), minutes=int(off_m))
    if sign == "-":
        offset = -offset
    micro = int((fraction or "").ljust(6, "0")[:6])
    return datetime(
        int(year),
        _MONTHS.index(month.title()) + 1,
        int(day),
        int(hour),
        int(minute),
        int(second),
        micro,
        tzinfo=timezone(offset),
    )


def handler_login(state: State, cmd: Command) -> None:
    if not cmd.args:
        raise CommandError("login command requires a username")
    username = cmd.args[0]
    state.config.set_user(username)
    state.queries.get_user(username)
    print(f"user {_quote(username)} has been set")


def handler_register(state: State, cmd: Command) -> None:
    if not cmd.args:
        raise CommandError("register command requires a username")
    username = cmd.args[0]
    state.config.set_user(username)
    user = state.queries.create_user(uuid4(), _now(), _now(), username)
    state.config.set_user(username)
    print(f"user {_quote(username)} was created\nuser details: {user}", end="")


def handle_reset(state: State, cmd: Command) -> None:
    state.queries.reset_users()


def handle_list_users(state: State, cmd: Command) -> None:
    for name in state.queries.get_users():
        if name == state.config.current_user_name:
            name += " (current)"
        print(name)


def handle_agg(state: State, cmd: Command) -> None:
    if not cmd.args:
        raise CommandError("agg command requires one argument, the time between requests")
    interval = parse_duration(cmd.args[0])
    if interval <= timedelta(0):
        raise CommandError("non-positive interval for ticker")
    seconds = interval.total_seconds()
    while True:
        state.sleep(seconds)
        scrape_next(state)


def handle_add_feed(state: State, cmd: Command, user: User) -> None:
    if len(cmd.args) < 2:
        raise CommandError("addfeed command requires 2 arguments: a name and a url")
    feed_name, url = cmd.args[0], cmd.args[1]
    feed = state.queries.create_feed(uuid4(), _now(), _now(), feed_name, url, user.id)
    with suppress(sqlite3.Error, LookupError):
        state.queries.create_feed_follow(uuid4(), _now(), _now(), user.id, feed.id)
    print(feed)


def handle_list_feeds(state: State, cmd: Command) -> None:
    for entry in state.queries.list_feeds_and_users():
        print(f"Name: {entry.name}\nURL: {entry.url}\nCreatedBy: {entry.created_by_user}\n")


def handle_follow(state: State, cmd: Command, user: User) -> None:
    if not cmd.args:
        raise CommandError("follow command requires a url to follow")
    feed = state.queries.get_feed_by_url(cmd.args[0])
    result = state.queries.create_feed_follow(uuid4(), _now(), _now(), user.id, feed.id)
    print(f"User {result.user_name} is now following the feed {_quote(result.feed_name)}:\n")


def handle_following(state: State, cmd: Command, user: User) -> None:
    follows = state.queries.get_feed_follows_for_user(user.id)
    print(f"{state.config.current_user_name} is currently following {len(follows)} feed(s):")
    for entry in follows:
        print(entry.feed_name)


def handle_unfollow(state: State, cmd: Command, user: User) -> None:
    if not cmd.args:
        raise CommandError("unfollow command requires a url")
    state.queries.unfollow_feed_by_url(user.id, cmd.args[0])


def handle_browse(state: State, cmd: Command, user: User) -> None:
    limit = 2
    if cmd.args:
        text = cmd.args[0]
        if not _INTEGER.fullmatch(text):
            raise CommandError("argument to browse must be a valid integer")
        value = int(text)
        if not -(2**63) <= value < 2**63:
            raise CommandError("argument to browse must be a valid integer")
        limit = (value + 2**31) % 2**32 - 2**31
    for entry in state.queries.get_posts_for_user(user.id, limit):
        print(
            f"Title: {entry.title}\nDescription: {entry.description}\nURL: {entry.url}\n"
            f"Published At: {_format_time(entry.published_at)}\n"
        )


def middleware_logged_in(handler: UserHandler) -> Handler:
    """Wrap a handler so that it receives the current user."""

    def wrapped(state: State, cmd: Command) -> None:
        user = state.queries.get_user(state.config.current_user_name)
        handler(state, cmd, user)

    return wrapped


def scrape_next(state: State) -> int:
    """Fetch the feed most in need of a refresh and store its new posts."""
    try:
        due = state.queries.get_next_feed_to_fetch()
    except (NotFoundError, sqlite3.Error) as exc:
        logger.error("issue fetching next feed info: %s", exc)
        return 0
    try:
        state.queries.mark_feed_fetched(due.id, _now())
    except sqlite3.Error as exc:
        logger.error("issue marking feed as fetched: %s (feed_id=%s feed_url=%s)", exc, due.id, due.url)
        return 0
    try:
        feed = state.fetch(due.url)
    except (OSError, ValueError, SyntaxError) as exc:
        logger.error("issue fetching feed from source: %s (feed_url=%s)", exc, due.url)
        return 0

    print(f"Ingesting posts for feed {_quote(feed.title)}:")
    added = 0
    for item in feed.items:
        try:
            published = parse_pub_date(item.pub_date)
        except ValueError as exc:
            logger.error(
                "issue parsing time for published entry: %s (source_rss_title=%s entry_title=%s)",
                exc,
                feed.link,
                item.title,
            )
            continue
        try:
            state.queries.create_post(
                uuid4(), _now(), _now(), item.title, item.link, item.description, published, due.id
            )
        except DuplicateError:
            continue
        except sqlite3.Error as exc:
            logger.error(
                "issue creating post entry: %s (source_rss_title=%s entry_title=%s)",
                exc,
                feed.link,
                item.title,
            )
            continue
        added += 1
    print(f"Added {added} new posts for feed {_quote(feed.title)}\n")
    return added


def build_commands() -> Commands:
    """The full set of commands the program understands."""
    commands = Commands()
    commands.register("login", handler_login)
    commands.register("register", handler_register)
    commands.register("reset", handle_reset)
    commands.register("users", handle_list_users)
    commands.register("agg", handle_agg)
    commands.register("addfeed", middleware_logged_in(handle_add_feed))
    commands.register("feeds", handle_list_feeds)
    commands.register("follow", middleware_logged_in(handle_follow))
    commands.register("following", middleware_logged_in(handle_following))
    commands.register("unfollow", middleware_logged_in(handle_unfollow))
    commands.register("browse", middleware_logged_in(handle_browse))
    return commands


def _fatal(error: object) -> int:
    print(f"{datetime.now():%Y/%m/%d %H:%M:%S} {error}", file=sys.stderr)
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Run one command given on the command line; return the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        config = read_default_config()
        conn = connect(config.db_url)
    except (OSError, ValueError, sqlite3.Error) as exc:
        return _fatal(exc)
    try:
        queries = Queries(conn)
        queries.create_schema()
        if not args:
            return _fatal("program needs to include at least one command")
        cmd = Command(args[0].lower(), tuple(args[1:]))
        build_commands().run(State(queries, config), cmd)
    except (CommandError, LookupError, OSError, ValueError, sqlite3.Error) as exc:
        return _fatal(exc)
    finally:
        conn.close()
    return 0