"""Category module for FeedPulse."""

from apps.categories.api import router
from apps.categories.service import CategoriesService

__all__ = ["router", "CategoriesService"]
