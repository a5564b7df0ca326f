"""Feed subscription module for FeedPulse."""

from apps.feeds.api import router
from apps.feeds.service import FeedsService

__all__ = ["router", "FeedsService"]
