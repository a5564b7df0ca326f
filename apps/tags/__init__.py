"""Tag module for FeedPulse."""

from apps.tags.api import router
from apps.tags.service import TagsService

__all__ = ["router", "TagsService"]
