"""Entry service for FeedPulse."""

from __future__ import annotations

from typing import List, Tuple

from core.exceptions import EntryNotFound, ModelNotFound
from core.models import Entry, Marker, Page, Stats
from core.repositories import EntriesRepository


class EntriesService:
    """Reading state and bookmarks of entries."""

    def __init__(self, entries: EntriesRepository):
        self.entries = entries

    async def list(self, user_id: str, page: Page) -> Tuple[List[Entry], str]:
        return await self.entries.list(user_id, page)

    async def get(self, user_id: str, entry_id: str) -> Entry:
        try:
            return await self.entries.entry_with_id(user_id, entry_id)
        except ModelNotFound:
            raise EntryNotFound()

    async def mark(self, user_id: str, entry_id: str, marker: Marker) -> None:
        try:
            await self.entries.mark(user_id, entry_id, marker)
        except ModelNotFound:
            raise EntryNotFound()

    async def mark_all(self, user_id: str, marker: Marker) -> None:
        await self.entries.mark_all(user_id, marker)

    async def set_saved(self, user_id: str, entry_id: str, saved: bool) -> None:
        try:
            await self.entries.set_saved(user_id, entry_id, saved)
        except ModelNotFound:
            raise EntryNotFound()

    async def stats(self, user_id: str) -> Stats:
        return await self.entries.stats(user_id)
