# =============================================================================
# 模块: core/repositories/users.py
# 功能: 用户仓储的 SQL 实现
# 删除用户时显式级联删除其拥有的所有数据（标签关联、条目、订阅、分类、标签、密钥）。
# =============================================================================
"""SQL users repository."""

from __future__ import annotations

import logging
from typing import List, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from common.utils import utc_now
from core.exceptions import ModelConflict, ModelNotFound
from core.models import APIKey, Category, Entry, Feed, Page, Tag, User, entry_tags
from core.repositories.base import UsersRepository
from core.repositories.sql_base import SqlRepository, paginate
from core.security import REFRESH_TOKEN

logger = logging.getLogger(__name__)


class SqlUsersRepository(SqlRepository, UsersRepository):
    """Users stored in the relational database."""

    async def create(self, user: User) -> None:
        try:
            async with self._session() as session:
                session.add(user)
        except IntegrityError as e:
            raise ModelConflict(f"username {user.username!r} exists") from e

    async def update(self, user: User) -> None:
        try:
            async with self._session() as session:
                result = await session.execute(
                    update(User)
                    .where(User.id == user.id)
                    .values(
                        username=user.username,
                        password_hash=user.password_hash,
                        password_salt=user.password_salt,
                        is_superuser=user.is_superuser,
                        updated_at=utc_now(),
                    )
                )
                if result.rowcount == 0:
                    raise ModelNotFound(f"user {user.id}")
        except IntegrityError as e:
            raise ModelConflict(f"username {user.username!r} exists") from e

    async def delete(self, user_id: str) -> None:
        async with self._session() as session:
            if await session.get(User, user_id) is None:
                raise ModelNotFound(f"user {user_id}")
            # 按依赖顺序删除，不依赖数据库的 ON DELETE CASCADE
            await session.execute(delete(entry_tags).where(entry_tags.c.user_id == user_id))
            await session.execute(delete(Entry).where(Entry.user_id == user_id))
            await session.execute(delete(Feed).where(Feed.user_id == user_id))
            await session.execute(delete(Category).where(Category.user_id == user_id))
            await session.execute(delete(Tag).where(Tag.user_id == user_id))
            await session.execute(delete(APIKey).where(APIKey.user_id == user_id))
            await session.execute(delete(User).where(User.id == user_id))
        logger.info(f"User deleted: {user_id}")

    async def user_with_id(self, user_id: str) -> User:
        async with self._session() as session:
            user = await session.get(User, user_id)
        if user is None:
            raise ModelNotFound(f"user {user_id}")
        return user

    async def user_with_name(self, username: str) -> User:
        async with self._session() as session:
            user = (
                await session.execute(select(User).where(User.username == username))
            ).scalar_one_or_none()
        # 部分数据库的默认排序规则不区分大小写，这里再精确比较一次
        if user is None or user.username != username:
            raise ModelNotFound(f"user {username!r}")
        return user

    async def list(self, page: Page) -> Tuple[List[User], str]:
        async with self._session() as session:
            return await paginate(
                session,
                select(User),
                model=User,
                order_column=User.created_at,
                page=page,
            )

    async def add_api_key(self, user_id: str, key: APIKey) -> None:
        async with self._session() as session:
            if await session.get(User, user_id) is None:
                raise ModelNotFound(f"user {user_id}")
            # 顺带清理该用户已过期的密钥
            await session.execute(
                delete(APIKey).where(
                    APIKey.user_id == user_id,
                    APIKey.expires_at <= utc_now(),
                )
            )
            key.user_id = user_id
            session.add(key)

    async def consume_key(self, user_id: str, key: str) -> bool:
        async with self._session() as session:
            result = await session.execute(
                delete(APIKey).where(
                    APIKey.user_id == user_id,
                    APIKey.key == key,
                    APIKey.type == REFRESH_TOKEN,
                    APIKey.expires_at > utc_now(),
                )
            )
        return result.rowcount > 0
