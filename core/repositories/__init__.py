"""Repositories for FeedPulse.

``Repositories`` bundles one implementation of each capability set; the SQL
implementations are built from a session factory by
``create_sql_repositories``.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.repositories.base import (
    CategoriesRepository,
    EntriesRepository,
    FeedsRepository,
    TagsRepository,
    UsersRepository,
)
from core.repositories.categories import SqlCategoriesRepository
from core.repositories.entries import SqlEntriesRepository
from core.repositories.feeds import SqlFeedsRepository
from core.repositories.tags import SqlTagsRepository
from core.repositories.users import SqlUsersRepository


@dataclass
class Repositories:
    users: UsersRepository
    categories: CategoriesRepository
    feeds: FeedsRepository
    entries: EntriesRepository
    tags: TagsRepository


def create_sql_repositories(session_factory: async_sessionmaker[AsyncSession]) -> Repositories:
    """Build the SQL implementation of every repository."""
    return Repositories(
        users=SqlUsersRepository(session_factory),
        categories=SqlCategoriesRepository(session_factory),
        feeds=SqlFeedsRepository(session_factory),
        entries=SqlEntriesRepository(session_factory),
        tags=SqlTagsRepository(session_factory),
    )


__all__ = [
    "CategoriesRepository",
    "EntriesRepository",
    "FeedsRepository",
    "Repositories",
    "TagsRepository",
    "UsersRepository",
    "create_sql_repositories",
]
