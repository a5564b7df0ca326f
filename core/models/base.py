# =============================================================================
# ORM 基础模型与通用混入类模块
# =============================================================================
# 本模块定义了 FeedPulse 中所有 SQLAlchemy ORM 模型的基类和通用混入（Mixin）。
# 主要职责：
#   1. 提供所有 ORM 模型的声明式基类（Base）
#   2. 提供 UTC 时间列类型（UTCDateTime），保证读回的时间总是带时区
#   3. 提供时间戳混入类（TimestampMixin），自动管理创建时间和更新时间字段
#
# 设计决策：
#   - 主键统一使用不透明字符串 id（common.utils.new_id），外键也引用该 id
#   - SQLite 不保存时区信息，UTCDateTime 在读写两端统一为 UTC
# =============================================================================

"""Base models and mixins for FeedPulse."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

# 不透明 id 的列长度（new_id 生成 24 位，预留余量）
ID_LENGTH = 32


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime column stored and returned in UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        # SQLite 读回的是 naive datetime
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for all ORM models.

    All SQLAlchemy models in FeedPulse must inherit from this base so they
    are registered in ``Base.metadata`` for schema creation.
    """

    pass


class TimestampMixin:
    """Mixin providing ``created_at`` and ``updated_at`` timestamps.

    The timestamps are generated in UTC at the Python layer. ``created_at``
    is also the stable ordering key for most paginated listings.
    """

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
