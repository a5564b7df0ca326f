# =============================================================================
# FastAPI 依赖注入模块
# =============================================================================
# 本模块提供 FeedPulse 的依赖函数：
#   1. 从 app.state 取出启动时构建的配置、仓储与抓取器
#   2. 从 HTTP 请求中提取和验证 JWT 访问令牌，解析当前用户
#   3. 管理员权限检查
#   4. 列表接口的分页与条目过滤参数解析
#
# 设计说明：
#   - 当前用户以显式参数的形式传给服务层和仓储层，不使用请求级隐式上下文
#   - 使用 Annotated 类型别名简化路由函数的类型标注
# =============================================================================

"""FastAPI dependencies for FeedPulse.

Provides authentication, authorization and pagination dependencies.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Optional

from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.exceptions import BadRequestError, ModelNotFound
from core.models import Marker, Page, User
from core.repositories import Repositories
from core.security import ACCESS_TOKEN, decode_token

if TYPE_CHECKING:
    from apps.sync.fetcher import FeedFetcher
    from settings import Settings

# auto_error=False：缺少令牌时由 get_current_user 返回统一的 401
http_bearer = HTTPBearer(auto_error=False)

# 列表接口单页上限
MAX_PAGE_SIZE = 1000
DEFAULT_PAGE_SIZE = 100


def get_settings(request: Request) -> "Settings":
    """Return the settings the application was built with."""
    return request.app.state.settings


def get_repositories(request: Request) -> Repositories:
    """Return the repositories the application was built with."""
    return request.app.state.repositories


def get_fetcher(request: Request) -> "FeedFetcher":
    """Return the shared feed fetcher."""
    return request.app.state.fetcher


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(http_bearer)
    ] = None,
) -> User:
    """Resolve the current authenticated user.

    Validates the access token, verifies token type, and loads the user
    record.

    Returns:
        User: Authenticated user record.

    Raises:
        HTTPException: 401 if the request is unauthenticated, the token is
            invalid or expired, the token type is not ``access``, or the
            user no longer exists.
    """
    if not credentials:
        raise _unauthorized("Not authenticated")

    settings = get_settings(request)
    payload = decode_token(
        credentials.credentials,
        settings.jwt_secret_key,
        settings.jwt_algorithm,
    )
    if not payload:
        raise _unauthorized("Invalid or expired token")

    # 刷新令牌不能用于访问受保护的资源
    if payload.get("type") != ACCESS_TOKEN:
        raise _unauthorized("Invalid token type")

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token payload")

    try:
        return await get_repositories(request).users.user_with_id(str(user_id))
    except ModelNotFound:
        # 令牌仍有效但用户已被删除
        raise _unauthorized("User not found")


async def get_superuser(
    user: User = Depends(get_current_user),
) -> User:
    """Require superuser privileges.

    Raises:
        HTTPException: 403 if the user is not a superuser.
    """
    if not user.is_superuser:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Superuser privileges required",
        )
    return user


def page_params(
    continuation_id: str = Query("", alias="continuationId"),
    count: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> Page:
    """Pagination query parameters (``?continuationId=&count=``)."""
    return Page(continuation_id=continuation_id, count=count)


def entry_page_params(
    continuation_id: str = Query("", alias="continuationId"),
    count: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    marked_as: str = Query("any", alias="markedAs"),
    order_by: str = Query("newest", alias="orderBy"),
    saved: Optional[bool] = Query(None),
) -> Page:
    """Entry listing parameters (``?markedAs=&orderBy=&saved=``).

    Both values are compared case-insensitively.

    Raises:
        BadRequestError: If ``markedAs`` or ``orderBy`` is not recognised.
    """
    marker = Marker.from_string(marked_as)
    if marker is None:
        raise BadRequestError(f"Invalid markedAs value: {marked_as!r}")
    order = order_by.strip().lower()
    if order not in ("newest", "oldest"):
        raise BadRequestError(f"Invalid orderBy value: {order_by!r}")
    return Page(
        continuation_id=continuation_id,
        count=count,
        newest=order == "newest",
        marker=marker,
        saved=saved,
    )


def marker_param(as_: str = Query(..., alias="as")) -> Marker:
    """Marker for ``PUT .../mark?as={read|unread}``.

    Raises:
        BadRequestError: Unless the value is ``read`` or ``unread``.
    """
    marker = Marker.from_string(as_)
    if marker not in (Marker.READ, Marker.UNREAD):
        raise BadRequestError(f"Invalid marker: {as_!r}")
    return marker


# 类型别名，简化路由函数签名
CurrentUser = Annotated[User, Depends(get_current_user)]
Superuser = Annotated[User, Depends(get_superuser)]
Repos = Annotated[Repositories, Depends(get_repositories)]
PageParams = Annotated[Page, Depends(page_params)]
EntryPageParams = Annotated[Page, Depends(entry_page_params)]
MarkerParam = Annotated[Marker, Depends(marker_param)]
