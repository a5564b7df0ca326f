# =============================================================================
# 模块: core/repositories/entries.py
# 功能: 条目仓储的 SQL 实现
# 设计决策:
#   - 条目按 (published, id) 排序，page.newest 决定方向
#   - (user_id, feed_id, guid) 唯一约束保证同步器的"查询 GUID 后插入"是幂等的，
#     并发插入同一 GUID 时后到者得到 ModelConflict
#   - 条目只允许修改 mark 和 saved
# =============================================================================
"""SQL entries repository."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Sequence, Tuple

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ModelConflict, ModelNotFound
from core.models import Category, Entry, Feed, Marker, Page, Stats, Tag, entry_tags
from core.repositories.base import EntriesRepository
from core.repositories.sql_base import SqlRepository, entry_stats, mark_entries, paginate

logger = logging.getLogger(__name__)


async def _exists(session: AsyncSession, column: Any, *criteria: Any) -> bool:
    return (await session.execute(select(column).where(*criteria))).first() is not None


class SqlEntriesRepository(SqlRepository, EntriesRepository):
    """Entries stored in the relational database."""

    async def _listing(
        self, session: AsyncSession, user_id: str, page: Page, *criteria: Any
    ) -> Tuple[List[Entry], str]:
        stmt = select(Entry).where(Entry.user_id == user_id, *criteria)
        # Marker.ANY 不过滤
        if page.marker in (Marker.READ, Marker.UNREAD):
            stmt = stmt.where(Entry.mark == page.marker.value)
        if page.saved is not None:
            stmt = stmt.where(Entry.saved.is_(page.saved))
        return await paginate(
            session,
            stmt,
            model=Entry,
            order_column=Entry.published,
            page=page,
            descending=page.newest,
            pivot_scope=[Entry.user_id == user_id],
        )

    async def create(self, user_id: str, entry: Entry) -> None:
        entry.user_id = user_id
        try:
            async with self._session() as session:
                if not await _exists(
                    session, Feed.id, Feed.id == entry.feed_id, Feed.user_id == user_id
                ):
                    raise ModelNotFound(f"feed {entry.feed_id}")
                session.add(entry)
        except IntegrityError as e:
            raise ModelConflict(f"entry {entry.guid!r} exists in feed {entry.feed_id}") from e

    async def entry_with_id(self, user_id: str, entry_id: str) -> Entry:
        async with self._session() as session:
            entry = (
                await session.execute(
                    select(Entry).where(Entry.id == entry_id, Entry.user_id == user_id)
                )
            ).scalar_one_or_none()
        if entry is None:
            raise ModelNotFound(f"entry {entry_id}")
        return entry

    async def entry_with_guid(
        self, user_id: str, guid: str, feed_id: str | None = None
    ) -> Entry:
        stmt = select(Entry).where(Entry.user_id == user_id, Entry.guid == guid)
        if feed_id is not None:
            stmt = stmt.where(Entry.feed_id == feed_id)
        async with self._session() as session:
            entry = (await session.execute(stmt.limit(1))).scalars().first()
        if entry is None:
            raise ModelNotFound(f"entry guid {guid!r}")
        return entry

    async def list(self, user_id: str, page: Page) -> Tuple[List[Entry], str]:
        async with self._session() as session:
            return await self._listing(session, user_id, page)

    async def list_from_feed(self, user_id: str, page: Page) -> Tuple[List[Entry], str]:
        async with self._session() as session:
            if not await _exists(
                session, Feed.id, Feed.id == page.filter_id, Feed.user_id == user_id
            ):
                raise ModelNotFound(f"feed {page.filter_id}")
            return await self._listing(session, user_id, page, Entry.feed_id == page.filter_id)

    async def list_from_category(self, user_id: str, page: Page) -> Tuple[List[Entry], str]:
        async with self._session() as session:
            if not await _exists(
                session,
                Category.id,
                Category.id == page.filter_id,
                Category.user_id == user_id,
            ):
                raise ModelNotFound(f"category {page.filter_id}")
            feed_ids = select(Feed.id).where(
                Feed.user_id == user_id, Feed.category_id == page.filter_id
            )
            return await self._listing(session, user_id, page, Entry.feed_id.in_(feed_ids))

    async def list_from_tags(
        self, user_id: str, tag_ids: Sequence[str], page: Page
    ) -> Tuple[List[Entry], str]:
        if not tag_ids:
            return [], ""
        # 子查询而非 JOIN，同时带多个标签的条目只出现一次
        tagged = select(entry_tags.c.entry_id).where(
            entry_tags.c.user_id == user_id,
            entry_tags.c.tag_id.in_(list(tag_ids)),
        )
        async with self._session() as session:
            return await self._listing(session, user_id, page, Entry.id.in_(tagged))

    async def tag_entries(self, user_id: str, tag_id: str, entry_ids: Sequence[str]) -> None:
        async with self._session() as session:
            if not await _exists(session, Tag.id, Tag.id == tag_id, Tag.user_id == user_id):
                raise ModelNotFound(f"tag {tag_id}")
            if not entry_ids:
                return
            owned = set(
                (
                    await session.execute(
                        select(Entry.id).where(
                            Entry.user_id == user_id, Entry.id.in_(list(entry_ids))
                        )
                    )
                ).scalars()
            )
            already = set(
                (
                    await session.execute(
                        select(entry_tags.c.entry_id).where(
                            entry_tags.c.tag_id == tag_id,
                            entry_tags.c.entry_id.in_(owned),
                        )
                    )
                ).scalars()
            )
            # 保持调用方给出的顺序并去重，不属于该用户的条目直接忽略
            rows = []
            for entry_id in dict.fromkeys(entry_ids):
                if entry_id in owned and entry_id not in already:
                    rows.append({"user_id": user_id, "tag_id": tag_id, "entry_id": entry_id})
            if rows:
                await session.execute(insert(entry_tags), rows)

    async def mark(self, user_id: str, entry_id: str, marker: Marker) -> None:
        async with self._session() as session:
            if await mark_entries(session, user_id, marker, Entry.id == entry_id) == 0:
                raise ModelNotFound(f"entry {entry_id}")

    async def mark_all(self, user_id: str, marker: Marker) -> None:
        async with self._session() as session:
            await mark_entries(session, user_id, marker)

    async def set_saved(self, user_id: str, entry_id: str, saved: bool) -> None:
        async with self._session() as session:
            result = await session.execute(
                update(Entry)
                .where(Entry.id == entry_id, Entry.user_id == user_id)
                .values(saved=saved)
            )
            if result.rowcount == 0:
                raise ModelNotFound(f"entry {entry_id}")

    async def delete_old_entries(
        self, user_id: str, before: datetime, keep_saved: bool = True
    ) -> int:
        criteria = [Entry.user_id == user_id, Entry.created_at < before]
        if keep_saved:
            criteria.append(Entry.saved.is_(False))
        async with self._session() as session:
            old_ids = select(Entry.id).where(*criteria)
            await session.execute(delete(entry_tags).where(entry_tags.c.entry_id.in_(old_ids)))
            result = await session.execute(delete(Entry).where(*criteria))
        if result.rowcount:
            logger.info(f"Deleted {result.rowcount} old entries for user {user_id}")
        return result.rowcount

    async def stats(self, user_id: str) -> Stats:
        async with self._session() as session:
            return await entry_stats(session, user_id)
