"""Feed synchronization: fetcher, per-user worker and fan-out scheduler."""

from .fetcher import FeedDescriptor, FeedFetcher, ParsedEntry, PullResult
from .scheduler import SchedulerState, SyncScheduler
from .worker import SyncWorker, store_new_entries

__all__ = [
    "FeedDescriptor",
    "FeedFetcher",
    "ParsedEntry",
    "PullResult",
    "SchedulerState",
    "SyncScheduler",
    "SyncWorker",
    "store_new_entries",
]
