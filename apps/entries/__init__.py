"""Entry module for FeedPulse."""

from apps.entries.api import router
from apps.entries.service import EntriesService

__all__ = ["router", "EntriesService"]
