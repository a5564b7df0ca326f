# ==========================================================================
# 认证模块 - Pydantic 数据校验模式 (Schemas)
# --------------------------------------------------------------------------
# 包含的 Schema：
#   - CredentialsRequest : 注册 / 登录请求（用户名 + 密码）
#   - RenewRequest       : 令牌续期请求
#   - TokenResponse      : 令牌对响应（注册 / 登录 / 续期共用）
# ==========================================================================

"""Pydantic schemas for the authentication API."""

from __future__ import annotations

from pydantic import Field

from core.schemas import CamelModel


class CredentialsRequest(CamelModel):
    """Username and password.

    注册与登录共用的请求模型。用户名区分大小写。
    """

    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=128)


class RenewRequest(CamelModel):
    """Request body for ``POST /auth/renew``."""

    refresh_token: str = Field(..., min_length=1)


class TokenResponse(CamelModel):
    """Access / refresh token pair.

    Attributes:
        access_token: Token authorizing API calls.
        refresh_token: Token authorizing renewal only.
        token_type: Always ``bearer``.
    """

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
