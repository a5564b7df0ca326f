"""Common utilities for FeedPulse."""

from common.utils import new_id, utc_now

__all__ = [
    "new_id",
    "utc_now",
]
