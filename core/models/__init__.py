"""ORM models for FeedPulse."""

from core.models.base import Base, TimestampMixin, UTCDateTime
from core.models.feed import Category, Entry, Feed, Tag, entry_tags
from core.models.types import Marker, Page, Stats
from core.models.user import APIKey, User

__all__ = [
    "APIKey",
    "Base",
    "Category",
    "Entry",
    "Feed",
    "Marker",
    "Page",
    "Stats",
    "Tag",
    "TimestampMixin",
    "User",
    "UTCDateTime",
    "entry_tags",
]
