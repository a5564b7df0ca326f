# =============================================================================
# 模块: core/repositories/tags.py
# 功能: 标签仓储的 SQL 实现（标签名在用户内唯一，区分大小写）
# =============================================================================
"""SQL tags repository."""

from __future__ import annotations

from typing import List, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from common.utils import utc_now
from core.exceptions import ModelConflict, ModelNotFound
from core.models import Page, Tag, entry_tags
from core.repositories.base import TagsRepository
from core.repositories.sql_base import SqlRepository, paginate


class SqlTagsRepository(SqlRepository, TagsRepository):
    """Tags stored in the relational database."""

    async def create(self, user_id: str, tag: Tag) -> None:
        tag.user_id = user_id
        try:
            async with self._session() as session:
                session.add(tag)
        except IntegrityError as e:
            raise ModelConflict(f"tag {tag.name!r} exists") from e

    async def update(self, user_id: str, tag: Tag) -> None:
        try:
            async with self._session() as session:
                result = await session.execute(
                    update(Tag)
                    .where(Tag.id == tag.id, Tag.user_id == user_id)
                    .values(name=tag.name, updated_at=utc_now())
                )
                if result.rowcount == 0:
                    raise ModelNotFound(f"tag {tag.id}")
        except IntegrityError as e:
            raise ModelConflict(f"tag {tag.name!r} exists") from e

    async def delete(self, user_id: str, tag_id: str) -> None:
        async with self._session() as session:
            await session.execute(
                delete(entry_tags).where(
                    entry_tags.c.tag_id == tag_id, entry_tags.c.user_id == user_id
                )
            )
            result = await session.execute(
                delete(Tag).where(Tag.id == tag_id, Tag.user_id == user_id)
            )
            if result.rowcount == 0:
                raise ModelNotFound(f"tag {tag_id}")

    async def tag_with_id(self, user_id: str, tag_id: str) -> Tag:
        async with self._session() as session:
            tag = (
                await session.execute(
                    select(Tag).where(Tag.id == tag_id, Tag.user_id == user_id)
                )
            ).scalar_one_or_none()
        if tag is None:
            raise ModelNotFound(f"tag {tag_id}")
        return tag

    async def tag_with_name(self, user_id: str, name: str) -> Tag:
        async with self._session() as session:
            tag = (
                await session.execute(
                    select(Tag).where(Tag.user_id == user_id, Tag.name == name)
                )
            ).scalar_one_or_none()
        if tag is None or tag.name != name:
            raise ModelNotFound(f"tag {name!r}")
        return tag

    async def list(self, user_id: str, page: Page) -> Tuple[List[Tag], str]:
        async with self._session() as session:
            return await paginate(
                session,
                select(Tag).where(Tag.user_id == user_id),
                model=Tag,
                order_column=Tag.created_at,
                page=page,
                pivot_scope=[Tag.user_id == user_id],
            )
