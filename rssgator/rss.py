"""Fetching and parsing RSS feeds."""

from __future__ import annotations

import html
import urllib.error
import urllib.request
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, replace


@dataclass
class RSSItem:
    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""


@dataclass
class RSSFeed:
    """The channel of an RSS document and its items."""

    title: str = ""
    link: str = ""
    description: str = ""
    items: list[RSSItem] = field(default_factory=list)

    def unescape_html(self) -> None:
        """Decode HTML entities in titles and descriptions."""
        self.title = html.unescape(self.title)
        self.description = html.unescape(self.description)
        self.items = [
            replace(item, title=html.unescape(item.title), description=html.unescape(item.description))
            for item in self.items
        ]


def _local(tag: object) -> str | None:
    if not isinstance(tag, str):
        return None
    return tag.rsplit("}", 1)[-1]


def _text(elem: ET.Element) -> str:
    return "".join([elem.text or "", *(child.tail or "" for child in elem)])


def _item(elem: ET.Element) -> RSSItem:
    item = RSSItem()
    for child in elem:
        name = _local(child.tag)
        if name == "title":
            item.title = _text(child)
        elif name == "link":
            item.link = _text(child)
        elif name == "description":
            item.description = _text(child)
        elif name == "pubDate":
            item.pub_date = _text(child)
    return item


def parse_feed(data: bytes | str) -> RSSFeed:
    """Parse an RSS document without decoding HTML entities."""
    root = ET.fromstring(data)
    feed = RSSFeed()
    for channel in root:
        if _local(channel.tag) != "channel":
            continue
        for child in channel:
            name = _local(child.tag)
            if name == "title":
                feed.title = _text(child)
            elif name == "link":
                feed.link = _text(child)
            elif name == "description":
                feed.description = _text(child)
            elif name == "item":
                feed.items.append(_item(child))
    return feed


def fetch_feed(feed_url: str) -> RSSFeed:
    """Download and parse the feed at a URL, with HTML entities decoded."""
    request = urllib.request.Request(feed_url, method="GET")
    try:
        with urllib.request.urlopen(request) as response:
            body = response.read()
    except urllib.error.HTTPError as exc:
        with exc:
            body = exc.read()
    feed = parse_feed(body)
    feed.unescape_html()
    return feed