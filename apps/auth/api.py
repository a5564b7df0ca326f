# ==========================================================================
# 认证 API 模块
# --------------------------------------------------------------------------
# 提供以下端点（均无需令牌）：
#   1. POST /auth/register : 用户注册，返回令牌对（可通过配置关闭）
#   2. POST /auth/login    : 用户登录，返回令牌对
#   3. POST /auth/renew    : 使用 refresh token 换取新的令牌对
#
# 业务逻辑委托给 AuthService（service.py），数据校验由 schemas.py 负责。
# ==========================================================================

"""Authentication API endpoints for FeedPulse."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from core.dependencies import get_repositories, get_settings
from core.exceptions import ForbiddenError

from .schemas import CredentialsRequest, RenewRequest, TokenResponse
from .service import AuthService

router = APIRouter(prefix="/auth", tags=["authentication"])


def get_auth_service(request: Request) -> AuthService:
    return AuthService(get_repositories(request).users, get_settings(request))


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    body: CredentialsRequest,
    request: Request,
    service: AuthServiceDep,
) -> dict:
    """Register a new user.

    Raises:
        ForbiddenError: If registration is disabled (403).
        UserConflict: If the username exists (409).
    """
    if not get_settings(request).allow_registration:
        raise ForbiddenError("Registration is disabled")
    return await service.register(body.username, body.password)


@router.post("/login", response_model=TokenResponse)
async def login(body: CredentialsRequest, service: AuthServiceDep) -> dict:
    """Log in with username and password."""
    return await service.login(body.username, body.password)


@router.post("/renew", response_model=TokenResponse)
async def renew(body: RenewRequest, service: AuthServiceDep) -> dict:
    """Renew tokens with a refresh token."""
    return await service.renew(body.refresh_token)
