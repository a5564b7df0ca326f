# ==========================================================================
# 订阅服务模块
# --------------------------------------------------------------------------
# 新建订阅时同步抓取一次：抓取失败直接返回 400，不会留下空订阅；
# 抓取成功后写入订阅和首批条目。其余操作是对仓储的薄封装，
# 负责把 ModelNotFound 翻译为 FeedNotFound。
# ==========================================================================

"""Feed subscription service for FeedPulse."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from apps.sync.fetcher import FeedFetcher
from apps.sync.worker import store_new_entries
from common.utils import new_id
from core.exceptions import (
    BadRequestError,
    FeedNotFound,
    FetchError,
    ModelNotFound,
    UpstreamError,
)
from core.models import Entry, Feed, Marker, Page, Stats
from core.repositories import Repositories

logger = logging.getLogger(__name__)


class FeedsService:
    """Subscription management for one request."""

    def __init__(self, repositories: Repositories, fetcher: FeedFetcher):
        self.repositories = repositories
        self.fetcher = fetcher

    async def create(
        self,
        user_id: str,
        subscription: str,
        title: str = "",
        category_id: Optional[str] = None,
    ) -> Feed:
        """Subscribe to ``subscription`` after fetching it once.

        Args:
            user_id: Owner.
            subscription: Feed URL.
            title: Title chosen by the user; overrides the upstream title.
            category_id: Optional category to file the feed under.

        Returns:
            Feed: The stored feed.

        Raises:
            BadRequestError: If the category does not exist.
            UpstreamError: If the feed cannot be fetched or parsed.
        """
        if category_id:
            try:
                await self.repositories.categories.category_with_id(user_id, category_id)
            except ModelNotFound:
                raise BadRequestError("Category does not exist")

        try:
            result = await self.fetcher.pull(subscription)
        except FetchError as e:
            logger.warning(f"Subscription {subscription} is not reachable: {e}")
            raise UpstreamError(f"Subscription URL is not reachable: {e}")
        if result.feed is None:
            raise UpstreamError("Subscription URL returned no feed")

        fetched = result.feed
        feed = Feed(
            id=new_id(),
            category_id=category_id or None,
            title=title or fetched.title,
            subscription=subscription,
            description=fetched.description,
            source=fetched.source,
            last_updated=fetched.last_updated,
            etag=fetched.validator,
            status="ok",
        )
        try:
            await self.repositories.feeds.create(user_id, feed)
        except ModelNotFound:
            # 分类在抓取期间被删除
            raise BadRequestError("Category does not exist")

        created = await store_new_entries(
            self.repositories.entries, user_id, feed.id, result.entries
        )
        logger.info(f"Feed {feed.id} subscribed ({subscription}), {created} entries stored")
        return feed

    async def list(self, user_id: str, page: Page) -> Tuple[List[Feed], str]:
        return await self.repositories.feeds.list(user_id, page)

    async def get(self, user_id: str, feed_id: str) -> Feed:
        try:
            return await self.repositories.feeds.feed_with_id(user_id, feed_id)
        except ModelNotFound:
            raise FeedNotFound()

    async def update(
        self,
        user_id: str,
        feed_id: str,
        title: Optional[str] = None,
        subscription: Optional[str] = None,
    ) -> Feed:
        """Change the title and/or URL of a feed."""
        feed = await self.get(user_id, feed_id)
        if title is not None:
            feed.title = title
        if subscription is not None and subscription != feed.subscription:
            feed.subscription = subscription
            # 地址变化后旧的 ETag 不再适用，并让下次同步立即抓取
            feed.etag = ""
            feed.last_updated = None
        try:
            await self.repositories.feeds.update(user_id, feed)
        except ModelNotFound:
            raise FeedNotFound()
        return feed

    async def delete(self, user_id: str, feed_id: str) -> None:
        try:
            await self.repositories.feeds.delete(user_id, feed_id)
        except ModelNotFound:
            raise FeedNotFound()

    async def entries(self, user_id: str, feed_id: str, page: Page) -> Tuple[List[Entry], str]:
        page.filter_id = feed_id
        try:
            return await self.repositories.entries.list_from_feed(user_id, page)
        except ModelNotFound:
            raise FeedNotFound()

    async def mark(self, user_id: str, feed_id: str, marker: Marker) -> None:
        try:
            await self.repositories.feeds.mark(user_id, feed_id, marker)
        except ModelNotFound:
            raise FeedNotFound()

    async def stats(self, user_id: str, feed_id: str) -> Stats:
        try:
            return await self.repositories.feeds.stats(user_id, feed_id)
        except ModelNotFound:
            raise FeedNotFound()
