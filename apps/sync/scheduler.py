# =============================================================================
# 模块: apps/sync/scheduler.py
# 功能: 周期性同步调度器（扇出调度）
# 架构角色: 同步子系统的顶层编排器。定时枚举全部用户，把用户分发给
#           有界的工作协程池，每个工作协程调用 SyncWorker.sync_user。
#
# 状态机: idle -> start() -> running -> stop() -> draining -> idle
#
# 设计决策:
#   - 定时器使用 APScheduler 的 IntervalTrigger（max_instances=1, coalesce=True），
#     另外用 _run_task 保证任意时刻最多只有一次 sync_users 在执行，
#     执行期间到来的触发直接丢弃
#   - stop() 先关闭定时器，再等待正在执行的一轮结束，不打断进行中的请求
#   - 用户按 max_parallel_users 分页，每页通过有界队列分发，
#     整页处理完成后再读取下一页
#   - 单个用户的异常只记录日志；用户枚举失败则放弃本轮，下次触发从头开始
# =============================================================================

"""Fan-out sync scheduler for FeedPulse."""

from __future__ import annotations

import asyncio
import enum
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.models import Page
from core.repositories import UsersRepository

from .worker import SyncWorker

logger = logging.getLogger(__name__)

DEFAULT_MAX_PARALLEL_USERS = 100
SYNC_JOB_ID = "sync_users"


class SchedulerState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"


class SyncScheduler:
    """Runs ``sync_users`` every ``interval`` with bounded parallelism.

    Args:
        users: Users repository used to enumerate accounts.
        worker: Per-user synchronizer.
        interval: Time between ticks.
        max_parallel_users: Page size and upper bound on concurrent users.
    """

    def __init__(
        self,
        users: UsersRepository,
        worker: SyncWorker,
        interval: timedelta,
        max_parallel_users: int = DEFAULT_MAX_PARALLEL_USERS,
    ):
        if max_parallel_users < 1:
            raise ValueError("max_parallel_users must be at least 1")
        self.users = users
        self.worker = worker
        self.interval = interval
        self.max_parallel_users = max_parallel_users
        self._state = SchedulerState.IDLE
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._run_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_syncing(self) -> bool:
        """Whether a ``sync_users`` run is in flight."""
        return self._run_task is not None and not self._run_task.done()

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------
    def start(self) -> None:
        """Start the ticker. Must be called from a running event loop.

        Calling ``start`` while already running is a no-op.

        Raises:
            RuntimeError: If called while a previous ``stop`` is draining.
        """
        if self._state == SchedulerState.RUNNING:
            return
        if self._state == SchedulerState.DRAINING:
            raise RuntimeError("Sync scheduler is still draining")

        # 每次启动创建新的调度器实例，shutdown 后的实例不再复用
        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.add_job(
            self._tick,
            IntervalTrigger(seconds=self.interval.total_seconds()),
            id=SYNC_JOB_ID,
            name="Synchronize feeds of all users",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        self._state = SchedulerState.RUNNING
        logger.info(
            f"Sync scheduler started (interval={self.interval}, "
            f"max_parallel_users={self.max_parallel_users})"
        )

    async def stop(self) -> None:
        """Stop the ticker and wait for the in-flight run to finish.

        Subsequent calls are no-ops.
        """
        if self._state != SchedulerState.RUNNING:
            return

        self._state = SchedulerState.DRAINING
        if self._scheduler is not None:
            # wait=False：不阻塞事件循环，进行中的一轮由下面的 await 等待
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        if self._run_task is not None:
            logger.info("Waiting for in-flight sync run to finish")
            await asyncio.wait({self._run_task})

        self._state = SchedulerState.IDLE
        logger.info("Sync scheduler stopped")

    # ------------------------------------------------------------------
    # 触发与执行
    # ------------------------------------------------------------------
    async def _tick(self) -> None:
        if self._state != SchedulerState.RUNNING:
            return
        await self.run_once()

    async def run_once(self) -> bool:
        """Run ``sync_users`` now unless a run is already in flight.

        Returns:
            bool: ``False`` when the request was dropped because of an
                in-flight run.
        """
        if self.is_syncing:
            logger.warning("Previous sync run still in progress, tick dropped")
            return False

        self._run_task = asyncio.create_task(self._run())
        # shield：调度器关闭时取消的是本协程，而不是正在执行的一轮同步
        await asyncio.shield(self._run_task)
        return True

    async def _run(self) -> None:
        try:
            summary = await self.sync_users()
            logger.info(f"Sync run finished: {summary}")
        except Exception:
            logger.exception("Sync run aborted")

    async def sync_users(self) -> Dict[str, Any]:
        """Synchronize every user once.

        Users are read ``max_parallel_users`` at a time; each page is pushed
        through a bounded queue to ``min(len(first page), max_parallel_users)``
        consumer tasks and fully processed before the next page is read.

        Returns:
            Dict[str, Any]: ``{"users": synced, "failed": crashed}``.

        Raises:
            Exception: Whatever the users repository raises while listing.
        """
        limit = self.max_parallel_users
        queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=limit)
        summary = {"users": 0, "failed": 0}
        consumers: List[asyncio.Task] = []
        page = Page(count=limit)

        logger.info("Starting sync run")
        try:
            while True:
                users, next_id = await self.users.list(page)
                if not consumers:
                    consumers = [
                        asyncio.create_task(self._consume(queue, summary))
                        for _ in range(min(len(users), limit))
                    ]
                for user in users:
                    await queue.put(user.id)
                # 等待本页全部用户处理完成
                await queue.join()
                if not next_id:
                    break
                page = Page(continuation_id=next_id, count=limit)
        finally:
            # 关闭队列：每个消费者收到一个 None 后退出
            for _ in consumers:
                await queue.put(None)
            if consumers:
                await asyncio.gather(*consumers)

        return summary

    async def _consume(self, queue: "asyncio.Queue[Optional[str]]", summary: Dict[str, Any]) -> None:
        while True:
            user_id = await queue.get()
            try:
                if user_id is None:
                    return
                try:
                    await self.worker.sync_user(user_id)
                    summary["users"] += 1
                except Exception:
                    # 单个用户失败不影响其他用户
                    summary["failed"] += 1
                    logger.exception(f"Sync of user {user_id} crashed")
            finally:
                queue.task_done()
