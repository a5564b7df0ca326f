# ==========================================================================
# 用户管理服务模块
# --------------------------------------------------------------------------
# 供超级管理员使用的账户管理：创建、分页列表、查询、改名/重置密码、删除。
# 删除用户会连带删除其全部分类、订阅、条目、标签与令牌。
# ==========================================================================

"""User administration service for FeedPulse."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from common.utils import new_id
from core.exceptions import ModelConflict, ModelNotFound, UserConflict, UserNotFound
from core.models import Page, User
from core.repositories import UsersRepository

logger = logging.getLogger(__name__)


class UsersService:
    """Account management on behalf of a superuser."""

    def __init__(self, users: UsersRepository):
        self.users = users

    async def create(self, username: str, password: str, is_superuser: bool = False) -> User:
        """Create an account.

        Raises:
            UserConflict: If the username is taken.
        """
        user = User(id=new_id(), username=username, is_superuser=is_superuser)
        user.set_password(password)
        try:
            await self.users.create(user)
        except ModelConflict:
            raise UserConflict()
        logger.info(f"User created by admin: {username}")
        return user

    async def list(self, page: Page) -> Tuple[List[User], str]:
        return await self.users.list(page)

    async def get(self, user_id: str) -> User:
        try:
            return await self.users.user_with_id(user_id)
        except ModelNotFound:
            raise UserNotFound()

    async def update(
        self,
        user_id: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> User:
        """Rename an account and/or reset its password.

        Raises:
            UserNotFound: If the account does not exist.
            UserConflict: If the new username is taken.
        """
        user = await self.get(user_id)
        if username is not None:
            user.username = username
        if password is not None:
            user.set_password(password)
        try:
            await self.users.update(user)
        except ModelNotFound:
            raise UserNotFound()
        except ModelConflict:
            raise UserConflict()
        logger.info(f"User updated by admin: {user_id}")
        return user

    async def delete(self, user_id: str) -> None:
        try:
            await self.users.delete(user_id)
        except ModelNotFound:
            raise UserNotFound()
        logger.info(f"User deleted: {user_id}")
