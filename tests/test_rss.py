import threading
import xml.etree.ElementTree as ET
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

from rssgator.rss import RSSFeed, RSSItem, fetch_feed, parse_feed

SAMPLE = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
<title>Example &amp;amp; Co</title>
<link>https://example.com/</link>
<description>Daily news</description>
<item>
<title>First &amp;quot;post&amp;quot;</title>
<link>https://example.com/1?a=1&amp;amp;b=2</link>
<description>Body one</description>
<pubDate>Mon, 16 Jun 2025 12:32:02 +0000</pubDate>
</item>
<item>
<title>Second</title>
<link>https://example.com/2</link>
<description><![CDATA[<p>Hi</p>]]></description>
<pubDate>Tue, 10 Jun 2025 00:00:00 +0000</pubDate>
</item>
</channel>
</rss>"""


def test_parse_feed_reads_channel_and_items():
    feed = parse_feed(SAMPLE)
    assert feed.title == "Example &amp; Co"
    assert feed.link == "https://example.com/"
    assert feed.description == "Daily news"
    assert [i.title for i in feed.items] == ['First &quot;post&quot;', "Second"]
    assert feed.items[1].description == "<p>Hi</p>"
    assert feed.items[0].pub_date == "Mon, 16 Jun 2025 12:32:02 +0000"


def test_unescape_html_decodes_titles_and_descriptions_only():
    feed = parse_feed(SAMPLE)
    feed.unescape_html()
    assert feed.title == "Example & Co"
    assert feed.items[0].title == 'First "post"'
    assert feed.items[0].link == "https://example.com/1?a=1&amp;b=2"
    assert feed.items[0].pub_date == "Mon, 16 Jun 2025 12:32:02 +0000"


def test_unescape_html_on_built_feed():
    feed = RSSFeed(title="a &lt; b", items=[RSSItem(title="x &gt; y", link="&amp;")])
    feed.unescape_html()
    assert feed == RSSFeed(title="a < b", items=[RSSItem(title="x > y", link="&amp;")])


def test_parse_feed_accepts_text():
    assert parse_feed(SAMPLE.decode("utf-8")) == parse_feed(SAMPLE)


def test_document_without_channel_gives_empty_feed():
    assert parse_feed("<rss></rss>") == RSSFeed()


def test_namespaced_element_matches_by_local_name():
    doc = (
        '<rss xmlns:atom="urn:example:atom"><channel>'
        "<link>https://example.com/</link>"
        '<atom:link href="https://example.com/rss" rel="self"/>'
        "</channel></rss>"
    )
    assert parse_feed(doc).link == ""


@pytest.mark.parametrize("bad", [b"", b"<rss><channel>", b"not xml"])
def test_malformed_document_raises(bad):
    with pytest.raises(ET.ParseError):
        parse_feed(bad)


class _Handler(BaseHTTPRequestHandler):
    def do_GET(self):
        self.send_response(200)
        self.send_header("Content-Type", "application/rss+xml")
        self.send_header("Content-Length", str(len(SAMPLE)))
        self.end_headers()
        self.wfile.write(SAMPLE)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def server_url():
    server = HTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}/feed"
    server.shutdown()
    server.server_close()


def test_fetch_feed_downloads_and_unescapes(server_url):
    feed = fetch_feed(server_url)
    expected = parse_feed(SAMPLE)
    expected.unescape_html()
    assert feed == expected
    assert feed.title == "Example & Co"
    assert len(feed.items) == 2