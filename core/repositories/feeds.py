# =============================================================================
# 模块: core/repositories/feeds.py
# 功能: 订阅源仓储的 SQL 实现
# 删除订阅时一并删除其条目及条目上的标签关联。
# =============================================================================
"""SQL feeds repository."""

from __future__ import annotations

from typing import List, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from common.utils import utc_now
from core.exceptions import ModelNotFound
from core.models import Category, Entry, Feed, Marker, Page, Stats, entry_tags
from core.repositories.base import FeedsRepository
from core.repositories.sql_base import SqlRepository, entry_stats, mark_entries, paginate


async def _require_feed(session: AsyncSession, user_id: str, feed_id: str) -> None:
    found = (
        await session.execute(
            select(Feed.id).where(Feed.id == feed_id, Feed.user_id == user_id)
        )
    ).first()
    if found is None:
        raise ModelNotFound(f"feed {feed_id}")


class SqlFeedsRepository(SqlRepository, FeedsRepository):
    """Feeds stored in the relational database."""

    async def create(self, user_id: str, feed: Feed) -> None:
        feed.user_id = user_id
        async with self._session() as session:
            if feed.category_id:
                category = (
                    await session.execute(
                        select(Category.id).where(
                            Category.id == feed.category_id, Category.user_id == user_id
                        )
                    )
                ).first()
                if category is None:
                    raise ModelNotFound(f"category {feed.category_id}")
            session.add(feed)

    async def update(self, user_id: str, feed: Feed) -> None:
        async with self._session() as session:
            result = await session.execute(
                update(Feed)
                .where(Feed.id == feed.id, Feed.user_id == user_id)
                .values(
                    title=feed.title,
                    subscription=feed.subscription,
                    description=feed.description,
                    source=feed.source,
                    last_updated=feed.last_updated,
                    etag=feed.etag,
                    status=feed.status,
                    updated_at=utc_now(),
                )
            )
            if result.rowcount == 0:
                raise ModelNotFound(f"feed {feed.id}")

    async def delete(self, user_id: str, feed_id: str) -> None:
        async with self._session() as session:
            await _require_feed(session, user_id, feed_id)
            feed_entries = select(Entry.id).where(
                Entry.user_id == user_id, Entry.feed_id == feed_id
            )
            await session.execute(
                delete(entry_tags).where(entry_tags.c.entry_id.in_(feed_entries))
            )
            await session.execute(
                delete(Entry).where(Entry.user_id == user_id, Entry.feed_id == feed_id)
            )
            await session.execute(
                delete(Feed).where(Feed.id == feed_id, Feed.user_id == user_id)
            )

    async def feed_with_id(self, user_id: str, feed_id: str) -> Feed:
        async with self._session() as session:
            feed = (
                await session.execute(
                    select(Feed).where(Feed.id == feed_id, Feed.user_id == user_id)
                )
            ).scalar_one_or_none()
        if feed is None:
            raise ModelNotFound(f"feed {feed_id}")
        return feed

    async def list(self, user_id: str, page: Page) -> Tuple[List[Feed], str]:
        async with self._session() as session:
            return await paginate(
                session,
                select(Feed).where(Feed.user_id == user_id),
                model=Feed,
                order_column=Feed.created_at,
                page=page,
                pivot_scope=[Feed.user_id == user_id],
            )

    async def mark(self, user_id: str, feed_id: str, marker: Marker) -> None:
        async with self._session() as session:
            await _require_feed(session, user_id, feed_id)
            await mark_entries(session, user_id, marker, Entry.feed_id == feed_id)

    async def stats(self, user_id: str, feed_id: str) -> Stats:
        async with self._session() as session:
            await _require_feed(session, user_id, feed_id)
            return await entry_stats(session, user_id, Entry.feed_id == feed_id)
