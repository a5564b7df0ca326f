# ==========================================================================
# 订阅模块 - Pydantic 数据校验模式 (Schemas)
# --------------------------------------------------------------------------
#   - FeedCreateRequest : 新建订阅（会立即抓取一次）
#   - FeedUpdateRequest : 修改订阅标题 / 地址
#   - FeedResponse      : 订阅信息响应
#   - FeedListResponse  : 订阅分页列表
# ==========================================================================

"""Pydantic schemas for the feeds API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from core.schemas import CamelModel


class FeedCreateRequest(CamelModel):
    """Request body for ``POST /feeds``.

    Attributes:
        title: Display title; the upstream title is used when empty.
        subscription: RSS/Atom URL.
        category: Optional category id.
    """

    title: str = Field("", max_length=512)
    subscription: str = Field(..., min_length=1, max_length=2048)
    category: Optional[str] = None


class FeedUpdateRequest(CamelModel):
    title: Optional[str] = Field(None, max_length=512)
    subscription: Optional[str] = Field(None, min_length=1, max_length=2048)


class FeedResponse(CamelModel):
    id: str
    title: str
    subscription: str
    description: str
    source: str
    category_id: Optional[str] = None
    last_updated: Optional[datetime] = None
    status: str
    created_at: datetime


class FeedListResponse(CamelModel):
    feeds: List[FeedResponse]
    continuation_id: str = ""
