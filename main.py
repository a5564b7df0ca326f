# =============================================================================
# 模块: main.py
# 功能: FeedPulse 应用程序的主入口文件
# 架构角色: 作为整个 FastAPI 应用的启动和编排中心，负责：
#   1. 初始化日志系统
#   2. 管理应用生命周期（启动/关闭）：数据库、仓储、抓取器、同步调度器
#   3. 注册所有路由（认证、用户、分类、订阅、条目、标签、OPML）
#   4. 配置中间件（CORS 跨域）与异常处理器
#   5. 命令行入口 run()
#
# 设计决策:
#   - create_app() 是工厂函数，不存在全局数据库单例；
#     引擎、仓储、抓取器都挂在 app.state 上，由 core.dependencies 取用
#   - 测试可注入引擎和抓取器（例如内存 SQLite 与 httpx.MockTransport）
# =============================================================================
"""Main application entry point for FeedPulse."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncEngine

from apps.auth import ensure_superuser, router as auth_router
from apps.categories import router as categories_router
from apps.entries import router as entries_router
from apps.feeds import router as feeds_router
from apps.opml import router as opml_router
from apps.sync import FeedFetcher, SyncScheduler, SyncWorker
from apps.tags import router as tags_router
from apps.users import router as users_router
from common.http import create_async_client
from common.logger import setup_logging
from core.database import build_engine, build_session_factory, check_db_connection, init_db
from core.exceptions import FeedPulseError
from core.repositories import create_sql_repositories
from settings import Settings, load_settings, settings as default_settings, settings_to_env

# 初始化日志系统（命令行入口会按最终配置再初始化一次）
setup_logging(default_settings.log_level, default_settings.log_file)
logger = logging.getLogger(__name__)

API_PREFIX = "/v1"

# 热重载子进程据此决定是否在启动时同步一次
SYNC_NOW_ENV = "FEEDPULSE_SYNC_NOW"


def create_app(
    settings: Optional[Settings] = None,
    *,
    engine: Optional[AsyncEngine] = None,
    fetcher: Optional[FeedFetcher] = None,
    start_sync: Optional[bool] = None,
    sync_now: bool = False,
) -> FastAPI:
    """Build the FeedPulse application.

    Args:
        settings: Configuration; the module-level settings when omitted.
        engine: Database engine to use instead of one built from
            ``settings.database_url``. The caller keeps ownership.
        fetcher: Feed fetcher to use instead of one over a new httpx client.
            The caller keeps ownership.
        start_sync: Start the periodic sync; defaults to ``settings.sync_enabled``.
        sync_now: Run one sync pass right after startup.

    Returns:
        FastAPI: Configured application.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ======================== 启动阶段 ========================
        logger.info(f"Starting {settings.app_name}...")

        db_engine = engine or build_engine(
            settings.database_url,
            echo=settings.database_echo,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_recycle=settings.database_pool_recycle,
        )
        if not await check_db_connection(db_engine):
            logger.error("Database connection failed")
            raise RuntimeError("Cannot connect to database")
        await init_db(db_engine)

        repositories = create_sql_repositories(build_session_factory(db_engine))
        feed_fetcher = fetcher or FeedFetcher(
            create_async_client(settings.http_timeout, settings.http_user_agent)
        )

        await ensure_superuser(
            repositories.users,
            settings.superuser_username,
            settings.superuser_password,
        )

        interval = timedelta(minutes=settings.sync_interval_minutes)
        delete_after = (
            timedelta(days=settings.sync_delete_after_days)
            if settings.sync_delete_after_days > 0
            else None
        )
        worker = SyncWorker(
            repositories,
            feed_fetcher,
            interval,
            feed_page_size=settings.sync_feed_page_size,
            delete_after=delete_after,
        )
        scheduler = SyncScheduler(
            repositories.users,
            worker,
            interval,
            max_parallel_users=settings.sync_max_parallel_users,
        )

        app.state.settings = settings
        app.state.engine = db_engine
        app.state.repositories = repositories
        app.state.fetcher = feed_fetcher
        app.state.scheduler = scheduler

        if settings.sync_enabled if start_sync is None else start_sync:
            scheduler.start()
        initial_sync = asyncio.create_task(scheduler.run_once()) if sync_now else None

        logger.info(f"{settings.app_name} started successfully")

        yield

        # ======================== 关闭阶段 ========================
        logger.info(f"Shutting down {settings.app_name}...")
        await scheduler.stop()
        if initial_sync is not None:
            await initial_sync
        if fetcher is None:
            await feed_fetcher.close()
        if engine is None:
            await db_engine.dispose()
        logger.info(f"{settings.app_name} shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant RSS/Atom aggregation service",
        version="1.0.0",
        lifespan=lifespan,
    )
    # 依赖函数在 lifespan 完成前也能读到配置
    app.state.settings = settings

    # 注意: allow_origins=["*"] 时不应启用 allow_credentials=True
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    for router in (
        auth_router,
        users_router,
        categories_router,
        feeds_router,
        entries_router,
        tags_router,
        opml_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check with database connectivity and scheduler state."""
        db_ok = await check_db_connection(request.app.state.engine)
        return {
            "status": "healthy" if db_ok else "unhealthy",
            "components": {
                "database": "connected" if db_ok else "disconnected",
                "scheduler": request.app.state.scheduler.state.value,
            },
        }

    return app


def create_reload_app() -> FastAPI:
    """Application factory used by ``feedpulse --reload``.

    Settings are rebuilt from the environment exported by :func:`run`.
    """
    return create_app(Settings(), sync_now=os.environ.get(SYNC_NOW_ENV) == "1")


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(FeedPulseError)
    async def feedpulse_exception_handler(request: Request, exc: FeedPulseError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    # 请求体 / 查询参数校验失败统一返回 400
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    # 捕获所有未处理的异常，防止敏感错误信息泄露给客户端
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )


def _parse_listen(value: str) -> tuple[str, int]:
    """Split ``host:port`` (``[::1]:8080`` for IPv6)."""
    host, sep, port = value.rpartition(":")
    if not sep or not port.isdigit():
        raise argparse.ArgumentTypeError(f"expected host:port, got {value!r}")
    return host.strip("[]") or "0.0.0.0", int(port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="feedpulse", description="Run the FeedPulse server")
    parser.add_argument("--config", type=str, default=None, help="YAML configuration file")
    parser.add_argument("--db", type=str, default=None, help="Database URL")
    parser.add_argument(
        "--listen",
        type=_parse_listen,
        default=None,
        help="Address to bind to, as host:port",
    )
    parser.add_argument("--host", type=str, default=None, help="Host to bind to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    parser.add_argument(
        "--sync-interval",
        type=float,
        default=None,
        help="Minutes between two sync runs",
    )
    parser.add_argument("--jwt-secret", type=str, default=None, help="JWT signing secret")
    parser.add_argument("--sync-now", action="store_true", help="Sync all users at startup")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    return parser


def run(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``feedpulse`` console script (see pyproject.toml)."""
    import uvicorn

    args = build_parser().parse_args(argv)

    host, port = args.listen if args.listen else (args.host, args.port)
    try:
        app_settings = load_settings(
            args.config,
            database_url=args.db,
            app_host=host,
            app_port=port,
            sync_interval_minutes=args.sync_interval,
            jwt_secret_key=args.jwt_secret,
        )
    except (ValidationError, FileNotFoundError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging(app_settings.log_level, app_settings.log_file)

    if args.reload or app_settings.debug:
        # 热重载只能通过导入字符串加载应用，最终配置经环境变量交给子进程
        os.environ.update(settings_to_env(app_settings))
        os.environ[SYNC_NOW_ENV] = "1" if args.sync_now else "0"
        uvicorn.run(
            "main:create_reload_app",
            factory=True,
            host=app_settings.app_host,
            port=app_settings.app_port,
            reload=True,
        )
        return

    uvicorn.run(
        create_app(app_settings, sync_now=args.sync_now),
        host=app_settings.app_host,
        port=app_settings.app_port,
    )


# 供 uvicorn 以 "main:app" 方式加载
app = create_app()


# 直接运行本文件时的入口
if __name__ == "__main__":
    run()
