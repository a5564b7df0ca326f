# =============================================================================
# 模块: core/models/types.py
# 功能: 仓储层共享的值类型
#   - Marker: 条目阅读状态（持久化值 read / unread，查询时的 any 哨兵）
#   - Page: 游标分页参数
#   - Stats: 条目统计结果
# =============================================================================
"""Value types shared by repositories and services."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


class Marker(str, enum.Enum):
    """Read state of an entry.

    ``READ`` and ``UNREAD`` are persisted; ``ANY`` only exists as a listing
    filter that matches both.
    """

    READ = "read"
    UNREAD = "unread"
    ANY = "any"

    @classmethod
    def from_string(cls, value: str | None) -> Optional["Marker"]:
        """Parse a query-string marker; returns ``None`` when unrecognised."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass
class Page:
    """Cursor pagination request.

    Attributes:
        filter_id: Parent id the listing is restricted to (feed, category...).
        continuation_id: Id of the first row of the requested page; empty
            means start from the beginning.
        count: Maximum number of rows to return.
        newest: Entries only; newest first when true.
        marker: Entries only; ``Marker.ANY`` disables filtering.
        saved: Entries only; restrict to saved (True) or unsaved (False).
    """

    filter_id: str = ""
    continuation_id: str = ""
    count: int = 100
    newest: bool = True
    marker: Marker = Marker.ANY
    saved: Optional[bool] = None


@dataclass
class Stats:
    """Entry counters for a user, feed or category."""

    unread: int = 0
    read: int = 0
    saved: int = 0
    total: int = 0
