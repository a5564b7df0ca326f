# =============================================================================
# 模块: core/repositories/categories.py
# 功能: 分类仓储的 SQL 实现
# 设计决策:
#   - 分类名写入前转小写，查询时用 lower() 比较，实现大小写不敏感的唯一性
#   - 一个订阅最多属于一个分类，add_feed 直接覆盖 feeds.category_id
#   - 删除分类时其订阅变为未分类，不删除订阅
# =============================================================================
"""SQL categories repository."""

from __future__ import annotations

from typing import List, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from common.utils import utc_now
from core.exceptions import ModelConflict, ModelNotFound
from core.models import Category, Entry, Feed, Marker, Page, Stats
from core.repositories.base import CategoriesRepository
from core.repositories.sql_base import SqlRepository, entry_stats, mark_entries, paginate


async def _require_category(session: AsyncSession, user_id: str, category_id: str) -> None:
    found = (
        await session.execute(
            select(Category.id).where(Category.id == category_id, Category.user_id == user_id)
        )
    ).first()
    if found is None:
        raise ModelNotFound(f"category {category_id}")


def _category_feed_ids(user_id: str, category_id: str):
    return select(Feed.id).where(Feed.user_id == user_id, Feed.category_id == category_id)


class SqlCategoriesRepository(SqlRepository, CategoriesRepository):
    """Categories stored in the relational database."""

    async def create(self, user_id: str, category: Category) -> None:
        category.user_id = user_id
        category.name = category.name.lower()
        try:
            async with self._session() as session:
                session.add(category)
        except IntegrityError as e:
            raise ModelConflict(f"category {category.name!r} exists") from e

    async def update(self, user_id: str, category: Category) -> None:
        name = category.name.lower()
        try:
            async with self._session() as session:
                result = await session.execute(
                    update(Category)
                    .where(Category.id == category.id, Category.user_id == user_id)
                    .values(name=name, updated_at=utc_now())
                )
                if result.rowcount == 0:
                    raise ModelNotFound(f"category {category.id}")
        except IntegrityError as e:
            raise ModelConflict(f"category {name!r} exists") from e
        category.name = name

    async def delete(self, user_id: str, category_id: str) -> None:
        async with self._session() as session:
            await _require_category(session, user_id, category_id)
            await session.execute(
                update(Feed)
                .where(Feed.user_id == user_id, Feed.category_id == category_id)
                .values(category_id=None)
            )
            await session.execute(
                delete(Category).where(Category.id == category_id, Category.user_id == user_id)
            )

    async def category_with_id(self, user_id: str, category_id: str) -> Category:
        async with self._session() as session:
            category = (
                await session.execute(
                    select(Category).where(
                        Category.id == category_id, Category.user_id == user_id
                    )
                )
            ).scalar_one_or_none()
        if category is None:
            raise ModelNotFound(f"category {category_id}")
        return category

    async def category_with_name(self, user_id: str, name: str) -> Category:
        async with self._session() as session:
            category = (
                await session.execute(
                    select(Category).where(
                        Category.user_id == user_id,
                        func.lower(Category.name) == name.lower(),
                    )
                )
            ).scalar_one_or_none()
        if category is None:
            raise ModelNotFound(f"category {name!r}")
        return category

    async def list(self, user_id: str, page: Page) -> Tuple[List[Category], str]:
        async with self._session() as session:
            return await paginate(
                session,
                select(Category).where(Category.user_id == user_id),
                model=Category,
                order_column=Category.created_at,
                page=page,
                pivot_scope=[Category.user_id == user_id],
            )

    async def feeds(self, user_id: str, page: Page) -> Tuple[List[Feed], str]:
        async with self._session() as session:
            await _require_category(session, user_id, page.filter_id)
            return await paginate(
                session,
                select(Feed).where(Feed.user_id == user_id, Feed.category_id == page.filter_id),
                model=Feed,
                order_column=Feed.created_at,
                page=page,
                pivot_scope=[Feed.user_id == user_id],
            )

    async def uncategorized(self, user_id: str, page: Page) -> Tuple[List[Feed], str]:
        async with self._session() as session:
            return await paginate(
                session,
                select(Feed).where(Feed.user_id == user_id, Feed.category_id.is_(None)),
                model=Feed,
                order_column=Feed.created_at,
                page=page,
                pivot_scope=[Feed.user_id == user_id],
            )

    async def add_feed(self, user_id: str, feed_id: str, category_id: str) -> None:
        async with self._session() as session:
            await _require_category(session, user_id, category_id)
            result = await session.execute(
                update(Feed)
                .where(Feed.id == feed_id, Feed.user_id == user_id)
                .values(category_id=category_id, updated_at=utc_now())
            )
            if result.rowcount == 0:
                raise ModelNotFound(f"feed {feed_id}")

    async def mark(self, user_id: str, category_id: str, marker: Marker) -> None:
        async with self._session() as session:
            await _require_category(session, user_id, category_id)
            await mark_entries(
                session,
                user_id,
                marker,
                Entry.feed_id.in_(_category_feed_ids(user_id, category_id)),
            )

    async def stats(self, user_id: str, category_id: str) -> Stats:
        async with self._session() as session:
            await _require_category(session, user_id, category_id)
            return await entry_stats(
                session,
                user_id,
                Entry.feed_id.in_(_category_feed_ids(user_id, category_id)),
            )
