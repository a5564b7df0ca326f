"""User administration module for FeedPulse."""

from apps.users.api import router
from apps.users.service import UsersService

__all__ = ["router", "UsersService"]
