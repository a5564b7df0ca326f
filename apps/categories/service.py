# ==========================================================================
# 分类服务模块
# --------------------------------------------------------------------------
# 分类是用户私有的订阅分组：
#   - 名称大小写不敏感且在用户内唯一（仓储层统一转小写）
#   - 一个订阅最多属于一个分类，移动订阅即覆盖其分类
#   - 删除分类不会删除订阅，订阅变为未分类
# ==========================================================================

"""Category service for FeedPulse."""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from common.utils import new_id
from core.exceptions import (
    CategoryConflict,
    CategoryNotFound,
    ModelConflict,
    ModelNotFound,
)
from core.models import Category, Entry, Feed, Marker, Page, Stats
from core.repositories import Repositories

logger = logging.getLogger(__name__)


class CategoriesService:
    """Category management for one user at a time."""

    def __init__(self, repositories: Repositories):
        self.repositories = repositories

    @property
    def categories(self):
        return self.repositories.categories

    async def create(self, user_id: str, name: str) -> Category:
        """Create a category.

        Raises:
            CategoryConflict: If the user already has a category of that name.
        """
        category = Category(id=new_id(), name=name)
        try:
            await self.categories.create(user_id, category)
        except ModelConflict:
            raise CategoryConflict()
        return category

    async def list(self, user_id: str, page: Page) -> Tuple[List[Category], str]:
        return await self.categories.list(user_id, page)

    async def get(self, user_id: str, category_id: str) -> Category:
        try:
            return await self.categories.category_with_id(user_id, category_id)
        except ModelNotFound:
            raise CategoryNotFound()

    async def update(self, user_id: str, category_id: str, name: str) -> Category:
        category = await self.get(user_id, category_id)
        category.name = name
        try:
            await self.categories.update(user_id, category)
        except ModelNotFound:
            raise CategoryNotFound()
        except ModelConflict:
            raise CategoryConflict()
        return category

    async def delete(self, user_id: str, category_id: str) -> None:
        try:
            await self.categories.delete(user_id, category_id)
        except ModelNotFound:
            raise CategoryNotFound()

    async def feeds(self, user_id: str, category_id: str, page: Page) -> Tuple[List[Feed], str]:
        page.filter_id = category_id
        try:
            return await self.categories.feeds(user_id, page)
        except ModelNotFound:
            raise CategoryNotFound()

    async def uncategorized(self, user_id: str, page: Page) -> Tuple[List[Feed], str]:
        return await self.categories.uncategorized(user_id, page)

    async def add_feeds(self, user_id: str, category_id: str, feed_ids: Sequence[str]) -> None:
        """Move feeds into a category; unknown feed ids are skipped."""
        await self.get(user_id, category_id)
        for feed_id in feed_ids:
            try:
                await self.categories.add_feed(user_id, feed_id, category_id)
            except ModelNotFound:
                logger.debug(f"Feed {feed_id} not moved to category {category_id}: not found")

    async def entries(
        self, user_id: str, category_id: str, page: Page
    ) -> Tuple[List[Entry], str]:
        page.filter_id = category_id
        try:
            return await self.repositories.entries.list_from_category(user_id, page)
        except ModelNotFound:
            raise CategoryNotFound()

    async def mark(self, user_id: str, category_id: str, marker: Marker) -> None:
        try:
            await self.categories.mark(user_id, category_id, marker)
        except ModelNotFound:
            raise CategoryNotFound()

    async def stats(self, user_id: str, category_id: str) -> Stats:
        try:
            return await self.categories.stats(user_id, category_id)
        except ModelNotFound:
            raise CategoryNotFound()
