# =============================================================================
# 模块: apps/sync/worker.py
# 功能: 单用户同步器
# 架构角色: 由调度器（scheduler.py）的工作协程调用，一次处理一个用户的全部订阅。
#
# 处理流程（每个订阅按列表顺序依次处理）:
#   1. 分页读取用户的订阅（每页 feed_page_size 条）
#   2. 未到期（now < last_updated + interval）的订阅直接跳过
#   3. 调用抓取器；304 不做任何写入；抓取失败记录日志后继续下一个订阅
#   4. 成功时先覆盖订阅的可变字段，再按 GUID 插入新条目（已存在的条目不修改）
#   5. 配置了保留天数时，最后清理该用户过期且未收藏的条目
#
# 设计决策:
#   - 同一用户内串行处理，限制单个租户对数据库的压力
#   - 插入前先按 (user, feed, guid) 查询，唯一约束兜底并发插入
# =============================================================================

"""Per-user feed synchronization for FeedPulse."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, Optional

from common.utils import ensure_utc, new_id, utc_now
from core.exceptions import FetchError, ModelConflict, ModelNotFound
from core.models import Entry, Feed, Marker, Page
from core.repositories import EntriesRepository, Repositories

from .fetcher import FeedFetcher, ParsedEntry

logger = logging.getLogger(__name__)

FEED_PAGE_SIZE = 100


async def store_new_entries(
    entries: EntriesRepository,
    user_id: str,
    feed_id: str,
    items: Iterable[ParsedEntry],
) -> int:
    """Insert the items whose GUID the feed does not have yet.

    Args:
        entries: Entries repository.
        user_id: Owner.
        feed_id: Feed the items belong to.
        items: Parsed items in feed order.

    Returns:
        int: Number of entries created.

    Raises:
        ModelNotFound: If the feed no longer exists.
    """
    created = 0
    for item in items:
        try:
            await entries.entry_with_guid(user_id, item.guid, feed_id)
            continue
        except ModelNotFound:
            pass

        entry = Entry(
            id=new_id(),
            feed_id=feed_id,
            guid=item.guid,
            title=item.title,
            link=item.link,
            author=item.author,
            published=item.published,
            saved=False,
            mark=Marker.UNREAD.value,
        )
        try:
            await entries.create(user_id, entry)
        except ModelConflict:
            # 并发写入了同一 GUID
            logger.debug(f"Entry {item.guid!r} already stored for feed {feed_id}")
            continue
        created += 1
    return created


class SyncWorker:
    """Synchronizes all due feeds of one user.

    Args:
        repositories: Storage.
        fetcher: Feed fetcher.
        interval: Minimum time between two fetches of the same feed.
        feed_page_size: Feeds read per listing page.
        delete_after: Retention for unsaved entries; ``None`` disables it.
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        repositories: Repositories,
        fetcher: FeedFetcher,
        interval: timedelta,
        feed_page_size: int = FEED_PAGE_SIZE,
        delete_after: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repositories = repositories
        self.fetcher = fetcher
        self.interval = interval
        self.feed_page_size = feed_page_size
        self.delete_after = delete_after
        self.clock = clock

    def is_due(self, feed: Feed, now: datetime) -> bool:
        """Whether ``feed`` should be fetched at ``now``."""
        last_updated = ensure_utc(feed.last_updated)
        if last_updated is None:
            return True
        return now >= last_updated + self.interval

    async def sync_user(self, user_id: str) -> Dict[str, Any]:
        """Refresh every due feed of ``user_id``.

        Returns:
            Dict[str, Any]: Counters for the run (feeds seen, fetched,
                not modified, failed, entries created).
        """
        summary = {
            "user_id": user_id,
            "feeds": 0,
            "fetched": 0,
            "not_modified": 0,
            "failed": 0,
            "entries": 0,
        }
        seen: set[str] = set()
        page = Page(count=self.feed_page_size)

        while True:
            feeds, next_id = await self.repositories.feeds.list(user_id, page)
            for feed in feeds:
                # 分页游标失效时会从头重读，已处理过的订阅跳过
                if feed.id in seen:
                    continue
                seen.add(feed.id)
                summary["feeds"] += 1
                await self._sync_feed(user_id, feed, summary)
            if not next_id:
                break
            page = Page(continuation_id=next_id, count=self.feed_page_size)

        if self.delete_after is not None:
            await self.repositories.entries.delete_old_entries(
                user_id, self.clock() - self.delete_after, keep_saved=True
            )

        logger.debug(f"User sync finished: {summary}")
        return summary

    async def _sync_feed(self, user_id: str, feed: Feed, summary: Dict[str, Any]) -> None:
        if not self.is_due(feed, self.clock()):
            return

        try:
            result = await self.fetcher.pull(feed.subscription, feed.etag)
        except FetchError as e:
            summary["failed"] += 1
            logger.warning(f"Fetching feed {feed.id} ({feed.subscription}) failed: {e}")
            return

        if result.not_modified:
            summary["not_modified"] += 1
            return

        fetched = result.feed
        feed.title = fetched.title or feed.title
        feed.description = fetched.description
        feed.source = fetched.source
        feed.last_updated = fetched.last_updated
        feed.etag = fetched.validator
        feed.status = "ok"

        try:
            await self.repositories.feeds.update(user_id, feed)
            created = await store_new_entries(
                self.repositories.entries, user_id, feed.id, result.entries
            )
        except ModelNotFound:
            # 订阅在同步过程中被删除
            logger.info(f"Feed {feed.id} disappeared during sync")
            return

        summary["fetched"] += 1
        summary["entries"] += created
        if created:
            logger.info(f"Feed {feed.id}: {created} new entries")
