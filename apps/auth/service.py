# ==========================================================================
# 认证服务模块
# --------------------------------------------------------------------------
# 封装注册、登录、令牌续期以及启动时的管理员账户初始化。
#
# 设计决策：
#   - 服务实例持有用户仓储和配置，由依赖函数按请求构建
#   - 刷新令牌签发时写入 api_keys 表，续期时必须能找到且未过期，使用后即删除
#   - 用户名不存在与密码错误返回相同的 401，不泄露账户是否存在
# ==========================================================================

"""Authentication service for FeedPulse."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Dict

from common.utils import new_id, utc_now
from core.exceptions import (
    ModelConflict,
    ModelNotFound,
    UnauthorizedError,
    UserConflict,
)
from core.models import APIKey, User
from core.repositories import UsersRepository
from core.security import (
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
)

if TYPE_CHECKING:
    from settings import Settings

logger = logging.getLogger(__name__)


class AuthService:
    """Authentication operations backed by a users repository."""

    def __init__(self, users: UsersRepository, settings: "Settings"):
        self.users = users
        self.settings = settings

    async def register(self, username: str, password: str) -> Dict[str, str]:
        """Create a regular user and return a fresh token pair.

        Raises:
            UserConflict: If the username is taken.
        """
        user = User(id=new_id(), username=username, is_superuser=False)
        user.set_password(password)
        try:
            await self.users.create(user)
        except ModelConflict:
            raise UserConflict()
        logger.info(f"User registered: {username}")
        return await self.issue_tokens(user)

    async def login(self, username: str, password: str) -> Dict[str, str]:
        """Check credentials and return a fresh token pair.

        Raises:
            UnauthorizedError: If the username or password is wrong.
        """
        try:
            user = await self.users.user_with_name(username)
        except ModelNotFound:
            raise UnauthorizedError("Incorrect username or password")
        if not user.check_password(password):
            raise UnauthorizedError("Incorrect username or password")
        return await self.issue_tokens(user)

    async def renew(self, refresh_token: str) -> Dict[str, str]:
        """Exchange a refresh token for a new token pair.

        续期要求：签名有效、类型为 refresh、且该令牌确为此用户签发。
        旧的刷新令牌在续期时作废，只有新签发的一对令牌可继续使用。

        Raises:
            UnauthorizedError: If the refresh token is not acceptable.
        """
        payload = decode_token(
            refresh_token,
            self.settings.jwt_secret_key,
            self.settings.jwt_algorithm,
        )
        if not payload or payload.get("type") != REFRESH_TOKEN:
            raise UnauthorizedError("Invalid refresh token")

        user_id = str(payload.get("sub") or "")
        if not user_id or not await self.users.consume_key(user_id, refresh_token):
            raise UnauthorizedError("Invalid refresh token")

        try:
            user = await self.users.user_with_id(user_id)
        except ModelNotFound:
            raise UnauthorizedError("Invalid refresh token")
        return await self.issue_tokens(user)

    async def issue_tokens(self, user: User) -> Dict[str, str]:
        """Sign an access/refresh pair and record the refresh key."""
        claims = {"sub": user.id}
        access_token = create_access_token(
            claims,
            self.settings.jwt_secret_key,
            timedelta(minutes=self.settings.jwt_access_token_expire_minutes),
            self.settings.jwt_algorithm,
        )
        refresh_lifetime = timedelta(days=self.settings.jwt_refresh_token_expire_days)
        refresh_token = create_refresh_token(
            claims,
            self.settings.jwt_secret_key,
            refresh_lifetime,
            self.settings.jwt_algorithm,
        )
        expires_at = utc_now() + refresh_lifetime
        await self.users.add_api_key(
            user.id,
            APIKey(
                id=new_id(),
                key=refresh_token,
                type=REFRESH_TOKEN,
                expires_at=expires_at,
            ),
        )
        return {"access_token": access_token, "refresh_token": refresh_token}


async def ensure_superuser(users: UsersRepository, username: str, password: str) -> None:
    """Create the bootstrap superuser if it does not exist yet.

    启动时调用。用户名或密码为空时跳过；已存在同名用户时不做修改。
    """
    if not username or not password:
        return
    try:
        await users.user_with_name(username)
        return
    except ModelNotFound:
        pass

    user = User(id=new_id(), username=username, is_superuser=True)
    user.set_password(password)
    try:
        await users.create(user)
    except ModelConflict:
        return
    logger.info(f"Superuser created: {username}")
