"""Tests for apps/sync/scheduler: fan-out, coalescing and lifecycle.

调度器测试：用户分页扇出、并发上限、单用户故障隔离、触发合并与停止时的排空。
仓储与单用户同步器均以替身对象代替。
"""

from __future__ import annotations

import asyncio
import math
from datetime import timedelta
from types import SimpleNamespace
from typing import List, Optional
from unittest.mock import patch

import pytest

from apps.sync.scheduler import SchedulerState, SyncScheduler
from core.models import Page


class FakeUsers:
    """Users repository double with the same paging contract as the SQL one."""

    def __init__(self, count: int, fail_on_call: Optional[int] = None):
        self.users = [SimpleNamespace(id=f"user-{i:03d}") for i in range(count)]
        self.fail_on_call = fail_on_call
        self.calls: List[Page] = []

    async def list(self, page: Page):
        self.calls.append(page)
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise RuntimeError("database unavailable")
        start = 0
        if page.continuation_id:
            ids = [u.id for u in self.users]
            start = ids.index(page.continuation_id) if page.continuation_id in ids else 0
        rows = self.users[start:start + page.count]
        following = self.users[start + page.count:start + page.count + 1]
        return rows, following[0].id if following else ""


class FakeWorker:
    """Records synced users, tracks concurrency and can be held open."""

    def __init__(self, delay: float = 0.0, failing: tuple = ()):
        self.delay = delay
        self.failing = set(failing)
        self.synced: List[str] = []
        self.active = 0
        self.peak = 0
        self.gate: Optional[asyncio.Event] = None
        self.started = asyncio.Event()

    async def sync_user(self, user_id: str):
        self.active += 1
        self.peak = max(self.peak, self.active)
        self.started.set()
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(self.delay)
            if user_id in self.failing:
                raise RuntimeError(f"boom for {user_id}")
            self.synced.append(user_id)
            return {"user_id": user_id}
        finally:
            self.active -= 1


def _scheduler(users, worker, parallel: int = 100, interval=timedelta(hours=1)) -> SyncScheduler:
    return SyncScheduler(users, worker, interval, max_parallel_users=parallel)


class TestSyncUsers:
    """Verify one fan-out pass over all users.

    验证一轮同步覆盖全部用户且并发不超过上限。
    """

    @pytest.mark.asyncio
    async def test_every_user_synced_once(self):
        users, worker = FakeUsers(23), FakeWorker()

        summary = await _scheduler(users, worker, parallel=5).sync_users()

        assert summary == {"users": 23, "failed": 0}
        assert sorted(worker.synced) == [u.id for u in users.users]

    @pytest.mark.asyncio
    async def test_users_are_paged_by_parallelism(self):
        users, worker = FakeUsers(12), FakeWorker()

        await _scheduler(users, worker, parallel=5).sync_users()

        assert len(users.calls) == 3
        assert all(page.count == 5 for page in users.calls)
        assert users.calls[0].continuation_id == ""
        assert users.calls[1].continuation_id == "user-005"

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        users, worker = FakeUsers(20), FakeWorker(delay=0.01)

        await _scheduler(users, worker, parallel=4).sync_users()

        assert 1 < worker.peak <= 4

    @pytest.mark.asyncio
    async def test_no_users(self):
        users, worker = FakeUsers(0), FakeWorker()

        summary = await _scheduler(users, worker).sync_users()

        assert summary == {"users": 0, "failed": 0}
        assert worker.synced == []

    @pytest.mark.asyncio
    async def test_crashing_user_does_not_stop_others(self):
        users = FakeUsers(6)
        worker = FakeWorker(failing=("user-002",))

        with patch("apps.sync.scheduler.logger") as mock_logger:
            summary = await _scheduler(users, worker, parallel=2).sync_users()

        assert summary == {"users": 5, "failed": 1}
        assert "user-002" not in worker.synced
        mock_logger.exception.assert_called_once()

    @pytest.mark.asyncio
    async def test_listing_failure_aborts_run(self):
        users = FakeUsers(10, fail_on_call=2)
        worker = FakeWorker()

        with pytest.raises(RuntimeError, match="database unavailable"):
            await _scheduler(users, worker, parallel=4).sync_users()

        # 第一页已完成，消费者协程已全部退出
        assert len(worker.synced) == 4
        assert worker.active == 0

    @pytest.mark.asyncio
    async def test_completes_within_page_bound(self):
        """Verify one run takes about ceil(N/P) per-user sync times.

        N=10、P=5、每个用户耗时 0.05 秒时，一轮应约为两个单位时间。

        Returns:
            None: This test does not return a value.
        """
        per_user = 0.05
        users, worker = FakeUsers(10), FakeWorker(delay=per_user)
        loop = asyncio.get_running_loop()

        started = loop.time()
        await _scheduler(users, worker, parallel=5).sync_users()
        elapsed = loop.time() - started

        bound = math.ceil(10 / 5) * per_user
        assert elapsed < bound + 0.2

    def test_parallelism_must_be_positive(self):
        with pytest.raises(ValueError):
            SyncScheduler(FakeUsers(0), FakeWorker(), timedelta(minutes=1), max_parallel_users=0)


class TestRunOnce:
    @pytest.mark.asyncio
    async def test_overlapping_run_is_dropped(self):
        users, worker = FakeUsers(3), FakeWorker()
        worker.gate = asyncio.Event()
        scheduler = _scheduler(users, worker)

        first = asyncio.create_task(scheduler.run_once())
        await worker.started.wait()
        assert scheduler.is_syncing

        with patch("apps.sync.scheduler.logger") as mock_logger:
            assert await scheduler.run_once() is False
        mock_logger.warning.assert_called_once()

        worker.gate.set()
        assert await first is True
        assert not scheduler.is_syncing
        assert len(users.calls) == 1

    @pytest.mark.asyncio
    async def test_aborted_run_is_logged_and_next_run_starts_fresh(self):
        users = FakeUsers(3, fail_on_call=1)
        worker = FakeWorker()
        scheduler = _scheduler(users, worker)

        with patch("apps.sync.scheduler.logger") as mock_logger:
            assert await scheduler.run_once() is True
        mock_logger.exception.assert_called_once()

        assert await scheduler.run_once() is True
        assert sorted(worker.synced) == ["user-000", "user-001", "user-002"]
        assert users.calls[-1].continuation_id == ""


class TestLifecycle:
    """Verify start/stop transitions and draining.

    验证 idle -> running -> draining -> idle 的状态迁移。
    """

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        scheduler = _scheduler(FakeUsers(1), FakeWorker())
        assert scheduler.state == SchedulerState.IDLE

        scheduler.start()
        scheduler.start()
        assert scheduler.state == SchedulerState.RUNNING

        await scheduler.stop()
        assert scheduler.state == SchedulerState.IDLE
        await scheduler.stop()
        assert scheduler.state == SchedulerState.IDLE

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self):
        scheduler = _scheduler(FakeUsers(1), FakeWorker())
        await scheduler.stop()
        assert scheduler.state == SchedulerState.IDLE

    @pytest.mark.asyncio
    async def test_ticker_triggers_runs(self):
        users, worker = FakeUsers(2), FakeWorker()
        scheduler = _scheduler(users, worker, interval=timedelta(milliseconds=50))

        scheduler.start()
        try:
            for _ in range(100):
                if len(set(worker.synced)) >= 2:
                    break
                await asyncio.sleep(0.02)
        finally:
            await scheduler.stop()

        assert set(worker.synced) == {"user-000", "user-001"}

    @pytest.mark.asyncio
    async def test_stop_drains_in_flight_run(self):
        """Verify stop waits for the running pass and nothing runs afterwards.

        stop() 在进行中的一轮结束前不会返回；返回后不再有任何同步调用。

        Returns:
            None: This test does not return a value.
        """
        users, worker = FakeUsers(3), FakeWorker()
        worker.gate = asyncio.Event()
        scheduler = _scheduler(users, worker)
        scheduler.start()

        run = asyncio.create_task(scheduler.run_once())
        await worker.started.wait()
        stopping = asyncio.create_task(scheduler.stop())
        await asyncio.sleep(0.05)

        assert scheduler.state == SchedulerState.DRAINING
        assert not stopping.done()
        with pytest.raises(RuntimeError):
            scheduler.start()

        worker.gate.set()
        await stopping
        await run

        assert scheduler.state == SchedulerState.IDLE
        assert len(worker.synced) == 3
        synced_at_stop = list(worker.synced)
        await asyncio.sleep(0.05)
        assert worker.synced == synced_at_stop
        assert not scheduler.is_syncing

    @pytest.mark.asyncio
    async def test_restart_after_stop(self):
        scheduler = _scheduler(FakeUsers(1), FakeWorker())
        scheduler.start()
        await scheduler.stop()
        scheduler.start()
        assert scheduler.state == SchedulerState.RUNNING
        await scheduler.stop()
