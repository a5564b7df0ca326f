# =============================================================================
# 模块: core/repositories/sql_base.py
# 功能: SQL 仓储实现的公共部分
#   1. SqlRepository：持有会话工厂，每个操作一个事务（成功提交，异常回滚）
#   2. paginate：基于 (排序列, id) 的键集游标分页
#   3. entry_stats / mark_entries：用户、订阅、分类共用的条目统计与批量标记
#
# 分页规则:
#   - 读取 count + 1 行，多出的一行的 id 作为下一页的 continuation id
#   - continuation id 指向下一页的第一行；该行已不存在时从头开始
#   - 以 (排序列, id) 作为全序键，排序列相同时不会重复或遗漏
# =============================================================================
"""Shared helpers for the SQL repositories."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Sequence, Tuple

from sqlalchemy import and_, case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.models import Entry, Marker, Page, Stats

logger = logging.getLogger(__name__)


class SqlRepository:
    """Base class holding the session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Open a session that commits on success and rolls back on error."""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


async def paginate(
    session: AsyncSession,
    stmt: Any,
    *,
    model: Any,
    order_column: Any,
    page: Page,
    descending: bool = False,
    pivot_scope: Sequence[Any] = (),
) -> Tuple[List[Any], str]:
    """Run ``stmt`` as one page of a keyset-paginated listing.

    Args:
        session: Active session.
        stmt: ``select(model)`` with the listing's filters applied.
        model: Mapped class with an ``id`` column.
        order_column: Primary ordering column.
        page: Pagination request.
        descending: Order direction.
        pivot_scope: Ownership criteria the continuation row must satisfy.

    Returns:
        Tuple[List[Any], str]: Rows and the next continuation id.
    """
    count = max(page.count, 1)

    if page.continuation_id:
        pivot = (
            await session.execute(
                select(order_column).where(model.id == page.continuation_id, *pivot_scope)
            )
        ).first()
        if pivot is not None:
            value = pivot[0]
            if descending:
                stmt = stmt.where(
                    or_(
                        order_column < value,
                        and_(order_column == value, model.id <= page.continuation_id),
                    )
                )
            else:
                stmt = stmt.where(
                    or_(
                        order_column > value,
                        and_(order_column == value, model.id >= page.continuation_id),
                    )
                )
        else:
            logger.debug(f"Continuation id {page.continuation_id} not found, restarting")

    if descending:
        stmt = stmt.order_by(order_column.desc(), model.id.desc())
    else:
        stmt = stmt.order_by(order_column.asc(), model.id.asc())

    rows = list((await session.execute(stmt.limit(count + 1))).scalars().all())
    next_id = ""
    if len(rows) > count:
        next_id = rows[count].id
        rows = rows[:count]
    return rows, next_id


async def entry_stats(session: AsyncSession, user_id: str, *criteria: Any) -> Stats:
    """Count unread, read, saved and total entries matching ``criteria``."""
    stmt = select(
        func.count(Entry.id),
        func.coalesce(func.sum(case((Entry.mark == Marker.UNREAD.value, 1), else_=0)), 0),
        func.coalesce(func.sum(case((Entry.mark == Marker.READ.value, 1), else_=0)), 0),
        func.coalesce(func.sum(case((Entry.saved.is_(True), 1), else_=0)), 0),
    ).where(Entry.user_id == user_id, *criteria)
    total, unread, read, saved = (await session.execute(stmt)).one()
    return Stats(unread=int(unread), read=int(read), saved=int(saved), total=int(total))


async def mark_entries(
    session: AsyncSession, user_id: str, marker: Marker, *criteria: Any
) -> int:
    """Set ``mark`` on every entry matching ``criteria``.

    Raises:
        ValueError: If ``marker`` is ``Marker.ANY``.
    """
    if marker not in (Marker.READ, Marker.UNREAD):
        raise ValueError(f"Cannot persist marker {marker!r}")
    result = await session.execute(
        update(Entry)
        .where(Entry.user_id == user_id, *criteria)
        .values(mark=marker.value)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
