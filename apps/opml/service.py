# ==========================================================================
# OPML 导入 / 导出服务
# --------------------------------------------------------------------------
# 导入：
#   - 分类按名称（大小写不敏感）复用，不存在则创建
#   - 订阅直接写入而不抓取，last_updated 为空，下一次同步时立即到期
#   - 用户已订阅的地址跳过
# 导出：全部分类及其订阅，外加未分类订阅
# ==========================================================================

"""OPML import and export service for FeedPulse."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from common.utils import new_id
from core.exceptions import BadRequestError, ModelConflict, ModelNotFound
from core.models import Category, Feed, Page
from core.repositories import Repositories

from .codec import OPMLCategory, OPMLDocument, OPMLError, OPMLFeed, parse_opml, render_opml

logger = logging.getLogger(__name__)

# 导出 / 去重时遍历列表的分页大小
_PAGE_SIZE = 500


async def _collect(fetch: Callable[[Page], Awaitable[Tuple[List[Any], str]]]) -> List[Any]:
    """Drain a paginated listing."""
    rows: List[Any] = []
    page = Page(count=_PAGE_SIZE)
    while True:
        items, next_id = await fetch(page)
        rows.extend(items)
        if not next_id:
            return rows
        page = Page(continuation_id=next_id, count=_PAGE_SIZE)


class OPMLService:
    """Moves subscriptions in and out of OPML documents."""

    def __init__(self, repositories: Repositories):
        self.repositories = repositories

    async def import_opml(self, user_id: str, data: bytes) -> Dict[str, int]:
        """Import the subscriptions of an OPML document.

        Returns:
            Dict[str, int]: ``{"categories": created, "feeds": created}``.

        Raises:
            BadRequestError: If the document cannot be parsed.
        """
        try:
            doc = parse_opml(data)
        except OPMLError as e:
            raise BadRequestError(str(e))

        existing: Set[str] = {
            feed.subscription
            for feed in await _collect(lambda p: self.repositories.feeds.list(user_id, p))
        }
        summary = {"categories": 0, "feeds": 0}

        for opml_category in doc.categories:
            category, created = await self._category(user_id, opml_category.name)
            summary["categories"] += int(created)
            for opml_feed in opml_category.feeds:
                summary["feeds"] += await self._feed(user_id, opml_feed, category.id, existing)

        for opml_feed in doc.feeds:
            summary["feeds"] += await self._feed(user_id, opml_feed, None, existing)

        logger.info(f"OPML import for user {user_id}: {summary}")
        return summary

    async def _category(self, user_id: str, name: str) -> Tuple[Category, bool]:
        categories = self.repositories.categories
        try:
            return await categories.category_with_name(user_id, name), False
        except ModelNotFound:
            pass
        category = Category(id=new_id(), name=name)
        try:
            await categories.create(user_id, category)
        except ModelConflict:
            return await categories.category_with_name(user_id, name), False
        return category, True

    async def _feed(
        self,
        user_id: str,
        opml_feed: OPMLFeed,
        category_id: Optional[str],
        existing: Set[str],
    ) -> int:
        if opml_feed.xml_url in existing:
            return 0
        feed = Feed(
            id=new_id(),
            category_id=category_id,
            title=opml_feed.title,
            subscription=opml_feed.xml_url,
            description="",
            source=opml_feed.html_url,
            last_updated=None,
            etag="",
            status="",
        )
        await self.repositories.feeds.create(user_id, feed)
        existing.add(opml_feed.xml_url)
        return 1

    async def export_opml(self, user_id: str) -> bytes:
        """Render every subscription of the user as OPML."""
        categories = self.repositories.categories
        doc = OPMLDocument()

        for category in await _collect(lambda p: categories.list(user_id, p)):

            def feeds_of(page: Page, category_id: str = category.id):
                page.filter_id = category_id
                return categories.feeds(user_id, page)

            feeds = await _collect(feeds_of)
            doc.categories.append(
                OPMLCategory(
                    name=category.name,
                    feeds=[_opml_feed(feed) for feed in feeds],
                )
            )

        for feed in await _collect(lambda p: categories.uncategorized(user_id, p)):
            doc.feeds.append(_opml_feed(feed))

        return render_opml(doc)


def _opml_feed(feed: Feed) -> OPMLFeed:
    return OPMLFeed(title=feed.title, xml_url=feed.subscription, html_url=feed.source)
