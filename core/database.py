# =============================================================================
# 数据库连接与会话管理模块
# =============================================================================
# 本模块负责 FeedPulse 的数据库连接管理，是数据访问的基础层。
# 主要职责：
#   1. 根据配置创建 SQLAlchemy 异步数据库引擎（AsyncEngine）
#   2. 创建异步会话工厂（async_sessionmaker），交给仓储层使用
#   3. 提供数据库初始化（建表）和健康检查功能
#
# 架构设计说明：
#   - 引擎和会话工厂由 main.create_app 在启动时显式创建并注入到仓储，
#     不使用模块级单例，测试可以直接传入内存数据库的工厂。
#   - SQLite 连接开启 foreign_keys，保证外键的级联行为与 MySQL 一致。
# =============================================================================

"""Database connection and session management for FeedPulse."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.models.base import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite 默认不检查外键，每个新连接都需要开启
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_recycle: int = 3600,
    **kwargs: Any,
) -> AsyncEngine:
    """Create the async database engine.

    对 SQLite 会自动创建数据库文件所在目录并忽略连接池参数；
    其他数据库使用 pool_size / max_overflow / pool_recycle 配置连接池。

    Args:
        database_url: SQLAlchemy async URL.
        echo: Log SQL statements.
        pool_size: Persistent connections (non-SQLite only).
        max_overflow: Extra connections beyond ``pool_size`` (non-SQLite only).
        pool_recycle: Seconds before a pooled connection is recycled.
        **kwargs: Passed through to ``create_async_engine`` (e.g. poolclass).

    Returns:
        AsyncEngine: New engine.

    Raises:
        sqlalchemy.exc.ArgumentError: If the URL is malformed.
    """
    url = make_url(database_url)
    engine_kwargs: Dict[str, Any] = {"echo": echo}

    if url.get_backend_name() == "sqlite":
        database = url.database
        if database and database != ":memory:":
            Path(database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
    else:
        # 连接池参数：持久连接数、溢出连接数、回收时间（防止服务端超时断开）
        engine_kwargs.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_recycle=pool_recycle,
        )

    engine_kwargs.update(kwargs)
    engine = create_async_engine(url, **engine_kwargs)

    if url.get_backend_name() == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    logger.info(f"Database engine created ({url.get_backend_name()})")
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the async session factory for ``engine``.

    ``expire_on_commit=False`` keeps ORM objects readable after the session
    that loaded them has committed and closed, which repositories rely on.

    Args:
        engine: Engine to bind sessions to.

    Returns:
        async_sessionmaker[AsyncSession]: Session factory.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Initialize database schema.

    Creates all tables registered on ``Base.metadata`` if they do not already
    exist.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: If schema creation fails.
    """
    # 确保所有模型已注册到 Base.metadata
    import core.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created/verified")


async def check_db_connection(engine: AsyncEngine) -> bool:
    """Check whether the database connection is healthy.

    Executes a lightweight ``SELECT 1`` query using a fresh connection.

    Returns:
        bool: ``True`` if the query succeeds, otherwise ``False``.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        # 返回 False 而非抛出，由调用方决定如何处理
        logger.error(f"Database connection check failed: {e}")
        return False
