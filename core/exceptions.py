# =============================================================================
# 模块: core/exceptions.py
# 功能: FeedPulse 的错误分类体系
# 架构角色:
#   - 存储层哨兵异常（ModelNotFound / ModelConflict）由仓储实现抛出
#   - 服务层将哨兵异常翻译为领域异常（CategoryNotFound、FeedNotFound 等）
#   - main.py 注册的异常处理器将领域异常映射为 HTTP 状态码
#
# 设计决策:
#   - 领域异常自带 status_code，HTTP 层无需逐一判断异常类型
#   - 属于其他用户的数据与不存在的数据不可区分，统一为 NotFound
# =============================================================================
"""Error taxonomy for FeedPulse."""

from __future__ import annotations


# --------------------------------------------------------------------------
# 存储层哨兵异常
# --------------------------------------------------------------------------
class ModelNotFound(Exception):
    """Raised by repositories when a row does not exist for the given owner."""


class ModelConflict(Exception):
    """Raised by repositories when a unique constraint would be violated."""


# --------------------------------------------------------------------------
# 领域异常
# --------------------------------------------------------------------------
class FeedPulseError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    detail = "Internal server error"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class NotFoundError(FeedPulseError):
    status_code = 404
    detail = "Not found"


class UserNotFound(NotFoundError):
    detail = "User does not exist"


class CategoryNotFound(NotFoundError):
    detail = "Category does not exist"


class FeedNotFound(NotFoundError):
    detail = "Feed does not exist"


class EntryNotFound(NotFoundError):
    detail = "Entry does not exist"


class TagNotFound(NotFoundError):
    detail = "Tag does not exist"


class ConflictError(FeedPulseError):
    status_code = 409
    detail = "Conflict"


class UserConflict(ConflictError):
    detail = "Username already exists"


class CategoryConflict(ConflictError):
    detail = "Category already exists"


class TagConflict(ConflictError):
    detail = "Tag already exists"


class UnauthorizedError(FeedPulseError):
    status_code = 401
    detail = "Could not validate credentials"


class ForbiddenError(FeedPulseError):
    status_code = 403
    detail = "Forbidden"


class BadRequestError(FeedPulseError):
    status_code = 400
    detail = "Bad request"


class UpstreamError(FeedPulseError):
    """The upstream feed could not be reached or parsed."""

    status_code = 400
    detail = "Could not fetch feed"


class FetchError(UpstreamError):
    """Raised by the feed fetcher for transport, status and parse failures."""
