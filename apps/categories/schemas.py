"""Pydantic schemas for the categories API."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import Field

from core.schemas import CamelModel


class CategoryRequest(CamelModel):
    """Create / rename body. Names are stored lower-cased."""

    name: str = Field(..., min_length=1, max_length=255)


class CategoryResponse(CamelModel):
    id: str
    name: str
    created_at: datetime


class CategoryListResponse(CamelModel):
    categories: List[CategoryResponse]
    continuation_id: str = ""


class CategoryFeedsRequest(CamelModel):
    """Feed ids to move into a category."""

    feeds: List[str] = Field(default_factory=list)
