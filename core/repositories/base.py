# =============================================================================
# 模块: core/repositories/base.py
# 功能: 仓储层能力接口（抽象基类）
# 架构角色:
#   - 服务层和同步器只依赖这里定义的接口，不依赖具体存储
#   - SQL 实现位于同目录的 users.py / categories.py / feeds.py / entries.py / tags.py
#
# 约定:
#   - 除 UsersRepository 外，所有方法都显式接收 user_id，不存在隐式的"当前用户"
#   - 查不到数据（或数据属于其他用户）时抛出 ModelNotFound
#   - 违反唯一约束时抛出 ModelConflict
#   - 列表方法返回 (items, next_continuation_id)，空字符串表示没有下一页
# =============================================================================
"""Repository capability sets for FeedPulse."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Sequence, Tuple

from core.models import APIKey, Category, Entry, Feed, Marker, Page, Stats, Tag, User


class UsersRepository(ABC):
    """Persistence for user accounts and issued keys."""

    @abstractmethod
    async def create(self, user: User) -> None:
        """Persist a new user. Raises ``ModelConflict`` on duplicate username."""

    @abstractmethod
    async def update(self, user: User) -> None:
        """Overwrite username, password and admin flag of an existing user."""

    @abstractmethod
    async def delete(self, user_id: str) -> None:
        """Delete a user and every row it owns."""

    @abstractmethod
    async def user_with_id(self, user_id: str) -> User:
        ...

    @abstractmethod
    async def user_with_name(self, username: str) -> User:
        """Exact, case-sensitive username lookup."""

    @abstractmethod
    async def list(self, page: Page) -> Tuple[List[User], str]:
        ...

    @abstractmethod
    async def add_api_key(self, user_id: str, key: APIKey) -> None:
        ...

    @abstractmethod
    async def consume_key(self, user_id: str, key: str) -> bool:
        """Delete an unexpired refresh key issued to the user.

        Returns whether such a key existed; a consumed key cannot be used again.
        """


class CategoriesRepository(ABC):
    """Persistence for categories and category-scoped feed operations."""

    @abstractmethod
    async def create(self, user_id: str, category: Category) -> None:
        ...

    @abstractmethod
    async def update(self, user_id: str, category: Category) -> None:
        ...

    @abstractmethod
    async def delete(self, user_id: str, category_id: str) -> None:
        """Delete a category; its feeds become uncategorized."""

    @abstractmethod
    async def category_with_id(self, user_id: str, category_id: str) -> Category:
        ...

    @abstractmethod
    async def category_with_name(self, user_id: str, name: str) -> Category:
        """Case-insensitive name lookup."""

    @abstractmethod
    async def list(self, user_id: str, page: Page) -> Tuple[List[Category], str]:
        ...

    @abstractmethod
    async def feeds(self, user_id: str, page: Page) -> Tuple[List[Feed], str]:
        """Feeds of the category named by ``page.filter_id``."""

    @abstractmethod
    async def uncategorized(self, user_id: str, page: Page) -> Tuple[List[Feed], str]:
        ...

    @abstractmethod
    async def add_feed(self, user_id: str, feed_id: str, category_id: str) -> None:
        """Move a feed into a category (a feed has at most one category)."""

    @abstractmethod
    async def mark(self, user_id: str, category_id: str, marker: Marker) -> None:
        ...

    @abstractmethod
    async def stats(self, user_id: str, category_id: str) -> Stats:
        ...


class FeedsRepository(ABC):
    """Persistence for feed subscriptions."""

    @abstractmethod
    async def create(self, user_id: str, feed: Feed) -> None:
        ...

    @abstractmethod
    async def update(self, user_id: str, feed: Feed) -> None:
        """Overwrite the mutable fields of an existing feed (not its category)."""

    @abstractmethod
    async def delete(self, user_id: str, feed_id: str) -> None:
        """Delete a feed together with its entries."""

    @abstractmethod
    async def feed_with_id(self, user_id: str, feed_id: str) -> Feed:
        ...

    @abstractmethod
    async def list(self, user_id: str, page: Page) -> Tuple[List[Feed], str]:
        ...

    @abstractmethod
    async def mark(self, user_id: str, feed_id: str, marker: Marker) -> None:
        ...

    @abstractmethod
    async def stats(self, user_id: str, feed_id: str) -> Stats:
        ...


class EntriesRepository(ABC):
    """Persistence for feed entries and entry tagging."""

    @abstractmethod
    async def create(self, user_id: str, entry: Entry) -> None:
        """Insert an entry. ``ModelNotFound`` when its feed is gone,
        ``ModelConflict`` when (feed, guid) already exists."""

    @abstractmethod
    async def entry_with_id(self, user_id: str, entry_id: str) -> Entry:
        ...

    @abstractmethod
    async def entry_with_guid(
        self, user_id: str, guid: str, feed_id: str | None = None
    ) -> Entry:
        ...

    @abstractmethod
    async def list(self, user_id: str, page: Page) -> Tuple[List[Entry], str]:
        ...

    @abstractmethod
    async def list_from_feed(self, user_id: str, page: Page) -> Tuple[List[Entry], str]:
        ...

    @abstractmethod
    async def list_from_category(self, user_id: str, page: Page) -> Tuple[List[Entry], str]:
        ...

    @abstractmethod
    async def list_from_tags(
        self, user_id: str, tag_ids: Sequence[str], page: Page
    ) -> Tuple[List[Entry], str]:
        """Entries carrying any of ``tag_ids``; each entry appears once."""

    @abstractmethod
    async def tag_entries(self, user_id: str, tag_id: str, entry_ids: Sequence[str]) -> None:
        ...

    @abstractmethod
    async def mark(self, user_id: str, entry_id: str, marker: Marker) -> None:
        ...

    @abstractmethod
    async def mark_all(self, user_id: str, marker: Marker) -> None:
        ...

    @abstractmethod
    async def set_saved(self, user_id: str, entry_id: str, saved: bool) -> None:
        ...

    @abstractmethod
    async def delete_old_entries(
        self, user_id: str, before: datetime, keep_saved: bool = True
    ) -> int:
        """Delete entries created before ``before``; returns the row count."""

    @abstractmethod
    async def stats(self, user_id: str) -> Stats:
        ...


class TagsRepository(ABC):
    """Persistence for entry tags."""

    @abstractmethod
    async def create(self, user_id: str, tag: Tag) -> None:
        ...

    @abstractmethod
    async def update(self, user_id: str, tag: Tag) -> None:
        ...

    @abstractmethod
    async def delete(self, user_id: str, tag_id: str) -> None:
        ...

    @abstractmethod
    async def tag_with_id(self, user_id: str, tag_id: str) -> Tag:
        ...

    @abstractmethod
    async def tag_with_name(self, user_id: str, name: str) -> Tag:
        ...

    @abstractmethod
    async def list(self, user_id: str, page: Page) -> Tuple[List[Tag], str]:
        ...
