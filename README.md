# rssgator

A small command-line RSS aggregator. It keeps users, feeds, follows and the
posts collected from feeds in a local SQLite database. Each user follows the
feeds they care about and browses the newest posts from them.

Only the standard library is needed.

## Installation

```
pip install .
```

This installs the `gator` command.

## Configuration

`gator` reads its settings from `.gatorconfig.json` in your home directory.
The file must exist before the first run:

```json
{
	"db_url": "/home/me/gator.db",
	"current_user_name": ""
}
```

- `db_url` is the path of the SQLite database file. The tables are created
  on first use.
- `current_user_name` is the logged-in user. `gator` rewrites the file when
  you run `login` or `register`.

## Commands

```
gator register <name>          create a user and log in as them
gator login <name>             log in as an existing user
gator users                    list all users, marking the current one
gator reset                    delete all users (and with them their feeds,
                               follows and posts)

gator addfeed <name> <url>     add a feed and follow it (logged-in user)
gator feeds                    list every feed with the user who added it
gator follow <url>             follow a feed that has already been added
gator following                list the feeds the current user follows
gator unfollow <url>           stop following a feed

gator agg <interval>           fetch feeds forever, one every interval
gator browse [limit]           show the newest posts from followed feeds
```

Command names are not case sensitive. An unknown command does nothing.
`login` writes the name to the configuration file first and then fails if
no such user exists.

`agg` takes an interval such as `30s`, `1m`, `1.5h` or `1h30m` (units `ns`,
`us`, `ms`, `s`, `m`, `h`). It must be positive. Each time the interval
passes, it picks the feed that has gone longest without a fetch, marks it as
fetched, downloads it and saves the posts it has not seen before. A post
whose URL is already stored is skipped quietly. Items whose `pubDate` is not
of the form `Mon, 02 Jan 2006 15:04:05 -0700` are skipped with a logged
error. Stop it with Ctrl-C.

`browse` shows two posts unless you give a different limit, newest first.

On an error `gator` prints a timestamped message to standard error and exits
with status 1.

## Example

```
gator register alice
gator addfeed "Hacker News" https://news.ycombinator.com/rss
gator agg 1m
gator browse 5
```

## Using it from Python

- `rssgator.config`: `Config`, `read(path)`, `read_default_config()`;
  `Config.set_user(name)` writes the file back.
- `rssgator.queries`: `connect(path)` opens a database with foreign keys on;
  `Queries(connection)` holds every query (`create_schema`, `create_user`,
  `get_user`, `create_feed`, `get_next_feed_to_fetch`, `create_post`,
  `get_posts_for_user` and the rest) and a `transaction()` context manager.
  A missing row raises `NotFoundError`; a broken uniqueness constraint
  raises `DuplicateError`.
- `rssgator.rss`: `parse_feed(data)` reads an RSS document into an `RSSFeed`
  with `RSSItem`s; `fetch_feed(url)` downloads one and decodes HTML entities
  in titles and descriptions.
- `rssgator.cli`: `main(argv=None)`, `parse_duration`, `parse_pub_date` and
  the command handlers.

## What it does not do

Storage is a single SQLite file; there is no support for a database server.
`fetch_feed` does not check the HTTP status: whatever body comes back is
parsed as RSS. Only RSS channels are read, not Atom feeds.

## Running the tests

```
pip install ".[test]"
pytest
```