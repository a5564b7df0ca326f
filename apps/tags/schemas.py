"""Pydantic schemas for the tags API."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import Field

from core.schemas import CamelModel


class TagRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)


class TagResponse(CamelModel):
    id: str
    name: str
    created_at: datetime


class TagListResponse(CamelModel):
    tags: List[TagResponse]
    continuation_id: str = ""


class TagEntriesRequest(CamelModel):
    """Entry ids to tag; ids the user does not own are ignored."""

    entries: List[str] = Field(default_factory=list)
