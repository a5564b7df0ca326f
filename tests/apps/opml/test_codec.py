"""Tests for apps/opml/codec: OPML parsing and rendering."""

from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from apps.opml import OPMLDocument, parse_opml, render_opml
from apps.opml.codec import OPMLCategory, OPMLError, OPMLFeed

SAMPLE = b"""<?xml version="1.0" encoding="UTF-8"?>
<opml version="2.0">
  <head><title>My feeds</title></head>
  <body>
    <outline text="Tech" title="Tech">
      <outline type="rss" text="Go Blog" xmlUrl="https://go.dev/blog/feed.atom" htmlUrl="https://go.dev/blog"/>
      <outline type="rss" text="Python Insider" title="Python" xmlUrl="https://blog.python.org/feeds/posts/default"/>
    </outline>
    <outline type="rss" text="Loose" xmlUrl="http://example.com/loose.xml"/>
    <outline text="">
      <outline type="rss" text="Nameless group" xmlUrl="http://example.com/nameless.xml"/>
    </outline>
    <outline text="Empty folder"/>
  </body>
</opml>"""


class TestParseOPML:
    """Verify outline nesting maps onto categories and feeds.

    验证 outline 嵌套结构到分类与订阅的映射。
    """

    def test_categories_and_loose_feeds(self):
        doc = parse_opml(SAMPLE)

        assert doc.title == "My feeds"
        (tech,) = doc.categories
        assert tech.name == "Tech"
        assert [f.xml_url for f in tech.feeds] == [
            "https://go.dev/blog/feed.atom",
            "https://blog.python.org/feeds/posts/default",
        ]
        assert tech.feeds[0].html_url == "https://go.dev/blog"
        # title 优先于 text
        assert tech.feeds[1].title == "Python"
        assert [f.xml_url for f in doc.feeds] == [
            "http://example.com/loose.xml",
            "http://example.com/nameless.xml",
        ]

    @pytest.mark.parametrize(
        "data",
        [
            b"<opml><body>",
            b"<rss version='2.0'><channel/></rss>",
            b"<opml version='2.0'><head/></opml>",
        ],
    )
    def test_invalid_documents(self, data):
        with pytest.raises(OPMLError):
            parse_opml(data)


class TestRenderOPML:
    def test_rendered_document_structure(self):
        doc = OPMLDocument(
            title="Exported",
            categories=[OPMLCategory("tech", [OPMLFeed("Go", "https://go.dev/blog/feed.atom")])],
            feeds=[OPMLFeed("Loose", "http://example.com/loose.xml", "http://example.com/")],
        )

        data = render_opml(doc)

        assert data.startswith(b"<?xml")
        root = ET.fromstring(data)
        assert root.get("version") == "2.0"
        assert root.findtext("head/title") == "Exported"
        category, loose = root.find("body").findall("outline")
        assert category.get("text") == "tech"
        (child,) = category.findall("outline")
        assert child.get("xmlUrl") == "https://go.dev/blog/feed.atom"
        assert child.get("htmlUrl") == "https://go.dev/blog/feed.atom"
        assert child.get("type") == "rss"
        assert loose.get("htmlUrl") == "http://example.com/"

    def test_parse_reads_back_rendered_output(self):
        doc = parse_opml(SAMPLE)
        again = parse_opml(render_opml(doc))

        assert [c.name for c in again.categories] == ["Tech"]
        assert len(again.categories[0].feeds) == 2
        assert len(again.feeds) == 2
