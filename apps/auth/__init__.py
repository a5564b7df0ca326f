"""Authentication module for FeedPulse.

认证模块包入口。
"""

from apps.auth.api import router
from apps.auth.service import AuthService, ensure_superuser

__all__ = ["router", "AuthService", "ensure_superuser"]
