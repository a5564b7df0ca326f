# =============================================================================
# 订阅相关模型：分类、订阅源、条目、标签
# =============================================================================
# 所有表都带 user_id，所有查询都必须按 user_id 过滤。
#
# 唯一约束：
#   - categories (user_id, name)：名称写入前统一转小写，实现大小写不敏感
#   - tags (user_id, name)
#   - entries (user_id, feed_id, guid)：同步器依赖它保证条目幂等
#
# 级联删除由仓储层显式执行，数据库外键上的 ondelete 作为兜底。
# =============================================================================

"""Feed, category, entry and tag models for FeedPulse."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from core.models.base import ID_LENGTH, Base, TimestampMixin, UTCDateTime
from core.models.types import Marker

# 条目 GUID 最大长度，受 MySQL 联合唯一索引长度限制
GUID_LENGTH = 512


def _user_fk() -> Mapped[str]:
    return mapped_column(
        String(ID_LENGTH),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class Category(Base, TimestampMixin):
    """User-scoped grouping of feeds."""

    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_categories_user_name"),
    )

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    user_id: Mapped[str] = _user_fk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name})>"


class Feed(Base, TimestampMixin):
    """A subscription to an upstream RSS/Atom URL.

    Attributes:
        subscription: URL that is fetched.
        source: Site link advertised by the feed.
        last_updated: Time of the last successful fetch; ``None`` until the
            first one, which makes the feed immediately due.
        etag: HTTP validator replayed as ``If-None-Match``.
        status: Outcome of the last successful fetch.
    """

    __tablename__ = "feeds"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    user_id: Mapped[str] = _user_fk()
    category_id: Mapped[str | None] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(512), default="", nullable=False)
    subscription: Mapped[str] = mapped_column(String(2048), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    source: Mapped[str] = mapped_column(String(2048), default="", nullable=False)
    last_updated: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    etag: Mapped[str] = mapped_column(String(512), default="", nullable=False)
    status: Mapped[str] = mapped_column(String(32), default="", nullable=False)

    def __repr__(self) -> str:
        return f"<Feed(id={self.id}, subscription={self.subscription})>"


# 条目与标签的多对多关联表，带 user_id 以便按用户清理
entry_tags = Table(
    "entry_tags",
    Base.metadata,
    Column(
        "user_id",
        String(ID_LENGTH),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column(
        "tag_id",
        String(ID_LENGTH),
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "entry_id",
        String(ID_LENGTH),
        ForeignKey("entries.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Entry(Base, TimestampMixin):
    """One item of a feed.

    条目创建后只有 mark 和 saved 会被修改。
    """

    __tablename__ = "entries"
    __table_args__ = (
        UniqueConstraint("user_id", "feed_id", "guid", name="uq_entries_user_feed_guid"),
        Index("ix_entries_user_published", "user_id", "published"),
    )

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    user_id: Mapped[str] = _user_fk()
    feed_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("feeds.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    guid: Mapped[str] = mapped_column(String(GUID_LENGTH), nullable=False)
    title: Mapped[str] = mapped_column(String(1024), default="", nullable=False)
    link: Mapped[str] = mapped_column(String(2048), default="", nullable=False)
    author: Mapped[str] = mapped_column(String(512), default="", nullable=False)
    published: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    saved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    mark: Mapped[str] = mapped_column(
        String(16),
        default=Marker.UNREAD.value,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Entry(id={self.id}, guid={self.guid})>"


class Tag(Base, TimestampMixin):
    """User-scoped label applied to entries."""

    __tablename__ = "tags"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_tags_user_name"),
    )

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    user_id: Mapped[str] = _user_fk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name={self.name})>"
