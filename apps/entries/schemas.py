"""Pydantic schemas for the entries API."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import AliasChoices, Field

from core.schemas import CamelModel


class EntryResponse(CamelModel):
    """Entry as returned by every entry listing.

    Attributes:
        feed_id: Feed the entry was read from.
        mark: ``read`` or ``unread``.
        is_saved: Whether the user saved the entry.
    """

    id: str
    feed_id: str
    guid: str
    title: str
    link: str
    author: str
    published: datetime
    mark: str
    is_saved: bool = Field(validation_alias=AliasChoices("saved", "is_saved", "isSaved"))
    created_at: datetime


class EntryListResponse(CamelModel):
    entries: List[EntryResponse]
    continuation_id: str = ""
