# ==========================================================================
# 标签服务模块
# --------------------------------------------------------------------------
# 标签与条目是多对多关系。按多个标签查询时，同时带有多个标签的条目只返回一次。
# ==========================================================================

"""Tag service for FeedPulse."""

from __future__ import annotations

from typing import List, Sequence, Tuple

from common.utils import new_id
from core.exceptions import ModelConflict, ModelNotFound, TagConflict, TagNotFound
from core.models import Entry, Page, Tag
from core.repositories import Repositories


class TagsService:
    """Tag management and tag-based entry listings."""

    def __init__(self, repositories: Repositories):
        self.repositories = repositories

    async def create(self, user_id: str, name: str) -> Tag:
        tag = Tag(id=new_id(), name=name)
        try:
            await self.repositories.tags.create(user_id, tag)
        except ModelConflict:
            raise TagConflict()
        return tag

    async def list(self, user_id: str, page: Page) -> Tuple[List[Tag], str]:
        return await self.repositories.tags.list(user_id, page)

    async def get(self, user_id: str, tag_id: str) -> Tag:
        try:
            return await self.repositories.tags.tag_with_id(user_id, tag_id)
        except ModelNotFound:
            raise TagNotFound()

    async def update(self, user_id: str, tag_id: str, name: str) -> Tag:
        tag = await self.get(user_id, tag_id)
        tag.name = name
        try:
            await self.repositories.tags.update(user_id, tag)
        except ModelNotFound:
            raise TagNotFound()
        except ModelConflict:
            raise TagConflict()
        return tag

    async def delete(self, user_id: str, tag_id: str) -> None:
        try:
            await self.repositories.tags.delete(user_id, tag_id)
        except ModelNotFound:
            raise TagNotFound()

    async def tag_entries(self, user_id: str, tag_id: str, entry_ids: Sequence[str]) -> None:
        try:
            await self.repositories.entries.tag_entries(user_id, tag_id, entry_ids)
        except ModelNotFound:
            raise TagNotFound()

    async def entries(self, user_id: str, tag_id: str, page: Page) -> Tuple[List[Entry], str]:
        """Entries carrying ``tag_id``."""
        await self.get(user_id, tag_id)
        return await self.repositories.entries.list_from_tags(user_id, [tag_id], page)

    async def entries_from_tags(
        self, user_id: str, tag_ids: Sequence[str], page: Page
    ) -> Tuple[List[Entry], str]:
        """Entries carrying any of ``tag_ids``; unknown ids match nothing."""
        return await self.repositories.entries.list_from_tags(user_id, tag_ids, page)
