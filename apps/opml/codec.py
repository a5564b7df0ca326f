# =============================================================================
# 模块: apps/opml/codec.py
# 功能: OPML 2.0 文档的解析与生成
#
# 结构约定:
#   - body 下带 xmlUrl 的 outline 为未分类订阅
#   - body 下不带 xmlUrl 但有子节点的 outline 为分类，其子节点中的订阅属于该分类
#   - 标题优先取 title，其次取 text
# =============================================================================
"""OPML 2.0 import/export codec."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional

RSS_TYPE = "rss"


class OPMLError(ValueError):
    """The document is not well-formed OPML."""


@dataclass
class OPMLFeed:
    title: str
    xml_url: str
    html_url: str = ""


@dataclass
class OPMLCategory:
    name: str
    feeds: List[OPMLFeed] = field(default_factory=list)


@dataclass
class OPMLDocument:
    """Subscriptions grouped the way OPML outlines nest them."""

    title: str = "FeedPulse subscriptions"
    categories: List[OPMLCategory] = field(default_factory=list)
    feeds: List[OPMLFeed] = field(default_factory=list)


def _outline_title(outline: ET.Element) -> str:
    return (outline.get("title") or outline.get("text") or "").strip()


def _outline_feed(outline: ET.Element) -> Optional[OPMLFeed]:
    xml_url = (outline.get("xmlUrl") or "").strip()
    if not xml_url:
        return None
    return OPMLFeed(
        title=_outline_title(outline),
        xml_url=xml_url,
        html_url=(outline.get("htmlUrl") or "").strip(),
    )


def parse_opml(data: bytes) -> OPMLDocument:
    """Parse an OPML document.

    Args:
        data: Raw XML.

    Returns:
        OPMLDocument: Categories and uncategorized feeds in document order.

    Raises:
        OPMLError: If the XML is malformed or has no ``body``.
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise OPMLError(f"Malformed OPML: {e}") from e

    if root.tag != "opml":
        raise OPMLError(f"Unexpected root element <{root.tag}>")
    body = root.find("body")
    if body is None:
        raise OPMLError("OPML document has no body")

    doc = OPMLDocument(title=(root.findtext("head/title") or "").strip())
    for outline in body.findall("outline"):
        feed = _outline_feed(outline)
        if feed is not None:
            doc.feeds.append(feed)
            continue

        children = outline.findall("outline")
        if not children:
            continue
        category = OPMLCategory(name=_outline_title(outline))
        for child in children:
            child_feed = _outline_feed(child)
            if child_feed is not None:
                category.feeds.append(child_feed)
        if category.name:
            doc.categories.append(category)
        else:
            # 没有名称的分组按未分类处理
            doc.feeds.extend(category.feeds)
    return doc


def _feed_element(parent: ET.Element, feed: OPMLFeed) -> None:
    ET.SubElement(
        parent,
        "outline",
        {
            "text": feed.title,
            "title": feed.title,
            "type": RSS_TYPE,
            "xmlUrl": feed.xml_url,
            "htmlUrl": feed.html_url or feed.xml_url,
        },
    )


def render_opml(doc: OPMLDocument) -> bytes:
    """Serialize ``doc`` as an OPML 2.0 document (UTF-8, with declaration)."""
    root = ET.Element("opml", {"version": "2.0"})
    head = ET.SubElement(root, "head")
    ET.SubElement(head, "title").text = doc.title
    body = ET.SubElement(root, "body")

    for category in doc.categories:
        outline = ET.SubElement(body, "outline", {"text": category.name, "title": category.name})
        for feed in category.feeds:
            _feed_element(outline, feed)
    for feed in doc.feeds:
        _feed_element(body, feed)

    return ET.tostring(root, encoding="utf-8", xml_declaration=True)
