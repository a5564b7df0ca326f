# =============================================================================
# 模块: apps/sync/fetcher.py
# 功能: 订阅源抓取器
# 架构角色: 同步子系统的最底层，对一个订阅 URL 发起一次条件 GET，
#           并把 RSS/Atom 内容解析为订阅描述和条目列表。
#
# 行为约定:
#   - validator（上次响应的 ETag）非空时作为 If-None-Match 发送
#   - 304 返回 not_modified=True 的结果，调用方不应写入任何数据
#   - 2xx 响应用 feedparser 解析（自动识别 RSS / Atom）
#   - 网络错误、非 2xx/304 状态码、解析失败统一抛出 FetchError，不做重试
#
# GUID 提取顺序: entry.id / guid -> (link, published) 摘要 -> 标题摘要，
#   保证没有 guid 的条目也能去重。
# =============================================================================

"""Feed fetcher for FeedPulse."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List, Optional

import feedparser
import httpx

from common.utils import normalize_url_for_dedup, utc_now
from core.exceptions import FetchError
from core.models.feed import GUID_LENGTH

logger = logging.getLogger(__name__)


@dataclass
class FeedDescriptor:
    """Feed-level fields produced by a successful pull."""

    title: str
    description: str
    source: str
    last_updated: datetime
    validator: str = ""


@dataclass
class ParsedEntry:
    """One item of a pulled feed."""

    guid: str
    title: str
    link: str
    author: str
    published: datetime


@dataclass
class PullResult:
    """Outcome of ``FeedFetcher.pull``.

    ``not_modified`` is set for a 304 response; ``feed`` is ``None`` and
    ``entries`` is empty in that case.
    """

    feed: Optional[FeedDescriptor] = None
    entries: List[ParsedEntry] = field(default_factory=list)
    not_modified: bool = False


def _struct_to_datetime(value) -> Optional[datetime]:
    try:
        return datetime(*value[:6], tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def _entry_published(entry: feedparser.FeedParserDict) -> Optional[datetime]:
    # 优先使用 feedparser 已解析的 struct_time，其次手动解析 RFC 2822 字符串
    for key in ("published_parsed", "updated_parsed"):
        if entry.get(key):
            parsed = _struct_to_datetime(entry[key])
            if parsed:
                return parsed
    if entry.get("published"):
        try:
            parsed = parsedate_to_datetime(entry.published)
        except (TypeError, ValueError):
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    return None


def _entry_link(entry: feedparser.FeedParserDict) -> str:
    if entry.get("link"):
        return entry.link
    # 优先选择 HTML 类型的链接，否则取第一个
    links = entry.get("links") or []
    for link in links:
        if link.get("type", "").startswith("text/html"):
            return link.get("href", "")
    return links[0].get("href", "") if links else ""


def _entry_author(entry: feedparser.FeedParserDict) -> str:
    if entry.get("author"):
        return entry.author
    if entry.get("author_detail") and entry.author_detail.get("name"):
        return entry.author_detail.name
    if entry.get("authors"):
        return ", ".join(a.get("name", "") for a in entry.authors if a.get("name"))
    return ""


def generate_stable_guid(
    entry: feedparser.FeedParserDict,
    link: str,
    published: Optional[datetime],
) -> str:
    """Return a stable identifier for a feed entry.

    Items without ``id``/``guid`` get a digest of (normalized link, published),
    and items without a link fall back to a digest of the title.

    Args:
        entry: FeedParser entry.
        link: Extracted link.
        published: Published time as reported by the feed, if any.

    Returns:
        str: Identifier, empty only when the entry has no title and no link.
    """
    guid = entry.get("id") or entry.get("guid") or ""
    if guid:
        if len(guid) > GUID_LENGTH:
            return f"sha1-{hashlib.sha1(guid.encode('utf-8')).hexdigest()}"
        return guid

    if link:
        stamp = published.isoformat() if published else ""
        key = f"{normalize_url_for_dedup(link)}|{stamp}"
        return f"synthetic-{hashlib.md5(key.encode('utf-8')).hexdigest()}"

    title = entry.get("title", "")
    if title:
        return f"title-{hashlib.md5(title.encode('utf-8')).hexdigest()}"
    return ""


def parse_feed(content: bytes, fetched_at: datetime, validator: str = "") -> PullResult:
    """Parse an RSS/Atom document.

    Args:
        content: Raw response body.
        fetched_at: Time of the fetch; used as ``last_updated`` and as the
            published time of undated entries.
        validator: ETag of the response.

    Returns:
        PullResult: Parsed feed and entries.

    Raises:
        FetchError: If the body is not a recognisable feed.
    """
    parsed = feedparser.parse(content)
    # version 为空说明 feedparser 没能识别出 RSS/Atom 格式
    if not parsed.get("version"):
        reason = parsed.get("bozo_exception") or "unrecognised feed format"
        raise FetchError(f"Could not parse feed: {reason}")

    meta = parsed.feed
    descriptor = FeedDescriptor(
        title=meta.get("title", ""),
        description=meta.get("subtitle", "") or meta.get("description", ""),
        source=meta.get("link", ""),
        last_updated=fetched_at,
        validator=validator,
    )

    entries: List[ParsedEntry] = []
    for item in parsed.entries:
        link = _entry_link(item)
        published = _entry_published(item)
        guid = generate_stable_guid(item, link, published)
        if not guid:
            logger.debug("Skipping feed item without title, link or guid")
            continue
        entries.append(
            ParsedEntry(
                guid=guid,
                title=item.get("title", ""),
                link=link,
                author=_entry_author(item),
                published=published or fetched_at,
            )
        )
    return PullResult(feed=descriptor, entries=entries)


class FeedFetcher:
    """Conditional GET + parse of one feed URL.

    The ``httpx.AsyncClient`` is injected so its timeouts, headers and
    transport are configured in one place (``common.http``).
    """

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def pull(self, url: str, validator: str = "") -> PullResult:
        """Fetch and parse ``url``.

        Args:
            url: Feed subscription URL.
            validator: ETag from the previous successful fetch.

        Returns:
            PullResult: Parsed result, or ``not_modified`` on HTTP 304.

        Raises:
            FetchError: On transport errors, unexpected statuses or parse failures.
        """
        headers = {"If-None-Match": validator} if validator else {}
        try:
            response = await self.client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise FetchError(f"Could not fetch {url}: {e}") from e
        except httpx.InvalidURL as e:
            # 非法 URL
            raise FetchError(f"Invalid feed URL {url!r}: {e}") from e

        if response.status_code == httpx.codes.NOT_MODIFIED:
            return PullResult(not_modified=True)
        if not response.is_success:
            raise FetchError(f"Feed {url} returned HTTP {response.status_code}")

        return parse_feed(
            response.content,
            fetched_at=utc_now(),
            validator=response.headers.get("ETag", ""),
        )

    async def close(self) -> None:
        await self.client.aclose()
