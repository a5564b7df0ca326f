# =============================================================================
# 模块: core/schemas.py
# 功能: 各应用 schemas 共用的 Pydantic 基类
#   - 对外 JSON 使用 camelCase（continuationId、lastUpdated ...）
#   - 允许以 snake_case 字段名构造，允许从 ORM 对象读取属性
# =============================================================================
"""Shared Pydantic base models for FeedPulse."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class StatsResponse(CamelModel):
    """Entry counters."""

    unread: int
    read: int
    saved: int
    total: int
