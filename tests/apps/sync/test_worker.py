"""Tests for apps/sync/worker: per-user synchronization against a stub feed server.

单用户同步测试：条目写入、重复同步幂等、ETag 条件请求、失败隔离与过期清理。
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from apps.sync.fetcher import ParsedEntry
from apps.sync.worker import SyncWorker, store_new_entries
from common.utils import ensure_utc, new_id, utc_now
from core.models import Feed, Marker, Page

FEED_URL = "http://example.com/rss.xml"
GUIDS = [f"item{i}@test" for i in range(1, 6)]


async def _subscribe(repos, user_id: str, url: str = FEED_URL) -> Feed:
    feed = Feed(id=new_id(), title="", subscription=url)
    await repos.feeds.create(user_id, feed)
    return feed


async def _feed_guids(repos, user_id: str, feed_id: str):
    entries, _ = await repos.entries.list_from_feed(
        user_id, Page(filter_id=feed_id, count=10, marker=Marker.ANY)
    )
    return sorted(e.guid for e in entries)


def _worker(repos, fetcher, interval=timedelta(0), **kwargs) -> SyncWorker:
    return SyncWorker(repos, fetcher, interval, **kwargs)


class TestSyncUser:
    """Verify one pass of ``SyncWorker.sync_user``.

    验证单次用户同步的完整流程。
    """

    @pytest.mark.asyncio
    async def test_ingests_entries(self, repos, make_user, fetcher, feed_server, make_rss):
        user = await make_user()
        feed = await _subscribe(repos, user.id)
        feed_server.add(FEED_URL, make_rss(GUIDS, title="Remote Title"))

        summary = await _worker(repos, fetcher).sync_user(user.id)

        assert summary["fetched"] == 1
        assert summary["entries"] == 5
        assert await _feed_guids(repos, user.id, feed.id) == sorted(GUIDS)
        stored = await repos.feeds.feed_with_id(user.id, feed.id)
        assert stored.title == "Remote Title"
        assert stored.source == "http://example.com/"
        assert stored.status == "ok"
        assert stored.last_updated is not None

    @pytest.mark.asyncio
    async def test_resync_is_idempotent(self, repos, make_user, fetcher, feed_server, make_rss):
        user = await make_user()
        feed = await _subscribe(repos, user.id)
        feed_server.add(FEED_URL, make_rss(GUIDS))
        worker = _worker(repos, fetcher)

        await worker.sync_user(user.id)
        summary = await worker.sync_user(user.id)

        assert summary["fetched"] == 1
        assert summary["entries"] == 0
        assert await _feed_guids(repos, user.id, feed.id) == sorted(GUIDS)

    @pytest.mark.asyncio
    async def test_only_new_guids_are_added(self, repos, make_user, fetcher, feed_server, make_rss):
        user = await make_user()
        feed = await _subscribe(repos, user.id)
        worker = _worker(repos, fetcher)
        feed_server.add(FEED_URL, make_rss(GUIDS[:3]))
        await worker.sync_user(user.id)
        await repos.entries.mark_all(user.id, Marker.READ)

        feed_server.add(FEED_URL, make_rss(GUIDS))
        summary = await worker.sync_user(user.id)

        assert summary["entries"] == 2
        stats = await repos.feeds.stats(user.id, feed.id)
        # 已存在的条目不会被覆盖，阅读状态保持不变
        assert (stats.read, stats.unread, stats.total) == (3, 2, 5)

    @pytest.mark.asyncio
    async def test_etag_short_circuit(self, repos, make_user, fetcher, feed_server, make_rss):
        """Verify a 304 leaves the feed untouched and creates nothing.

        第一次同步记录 ETag，第二次同步携带 If-None-Match 得到 304，
        订阅的 last_updated 与 etag 均保持不变。

        Returns:
            None: This test does not return a value.
        """
        user = await make_user()
        feed = await _subscribe(repos, user.id)
        feed_server.add(FEED_URL, make_rss(GUIDS), etag='"123456"')
        worker = _worker(repos, fetcher)

        await worker.sync_user(user.id)
        first = await repos.feeds.feed_with_id(user.id, feed.id)
        assert first.etag == '"123456"'

        summary = await worker.sync_user(user.id)

        second = await repos.feeds.feed_with_id(user.id, feed.id)
        assert summary["not_modified"] == 1
        assert summary["entries"] == 0
        assert ensure_utc(second.last_updated) == ensure_utc(first.last_updated)
        assert second.etag == '"123456"'
        assert feed_server.requests[-1].headers["If-None-Match"] == '"123456"'
        assert (await repos.entries.stats(user.id)).total == 5

    @pytest.mark.asyncio
    async def test_feeds_not_due_are_skipped(self, repos, make_user, fetcher, feed_server, make_rss):
        user = await make_user()
        await _subscribe(repos, user.id)
        feed_server.add(FEED_URL, make_rss(GUIDS))
        worker = _worker(repos, fetcher, interval=timedelta(hours=1))

        await worker.sync_user(user.id)
        summary = await worker.sync_user(user.id)

        assert len(feed_server.requests) == 1
        assert summary["feeds"] == 1
        assert summary["fetched"] == 0

    @pytest.mark.asyncio
    async def test_failed_feed_does_not_stop_others(self, repos, make_user, fetcher, feed_server, make_rss):
        user = await make_user()
        broken = await _subscribe(repos, user.id, "http://example.com/broken.xml")
        healthy = await _subscribe(repos, user.id)
        feed_server.add("http://example.com/broken.xml", b"oops", status=500)
        feed_server.add(FEED_URL, make_rss(GUIDS))

        summary = await _worker(repos, fetcher).sync_user(user.id)

        assert summary["failed"] == 1
        assert summary["fetched"] == 1
        assert await _feed_guids(repos, user.id, broken.id) == []
        assert await _feed_guids(repos, user.id, healthy.id) == sorted(GUIDS)
        # 抓取失败不更新订阅
        assert (await repos.feeds.feed_with_id(user.id, broken.id)).last_updated is None

    @pytest.mark.asyncio
    async def test_pages_through_all_feeds(self, repos, make_user, fetcher, feed_server, make_rss):
        user = await make_user()
        urls = [f"http://example.com/{i}.xml" for i in range(5)]
        for i, url in enumerate(urls):
            await _subscribe(repos, user.id, url)
            feed_server.add(url, make_rss([f"{i}-a", f"{i}-b"]))

        summary = await _worker(repos, fetcher, feed_page_size=2).sync_user(user.id)

        assert summary["feeds"] == 5
        assert summary["fetched"] == 5
        assert (await repos.entries.stats(user.id)).total == 10

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, repos, make_user, fetcher, feed_server, make_rss):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await _subscribe(repos, alice.id)
        await _subscribe(repos, bob.id)
        feed_server.add(FEED_URL, make_rss(GUIDS))

        await _worker(repos, fetcher).sync_user(alice.id)

        assert (await repos.entries.stats(alice.id)).total == 5
        assert (await repos.entries.stats(bob.id)).total == 0

    @pytest.mark.asyncio
    async def test_retention_keeps_saved_entries(self, repos, make_user, fetcher, feed_server, make_rss):
        user = await make_user()
        feed = await _subscribe(repos, user.id)
        feed_server.add(FEED_URL, make_rss(GUIDS))
        await _worker(repos, fetcher).sync_user(user.id)
        entries, _ = await repos.entries.list_from_feed(user.id, Page(filter_id=feed.id))
        await repos.entries.set_saved(user.id, entries[0].id, True)

        # 时钟拨快两天，保留期为一天
        later = _worker(
            repos,
            fetcher,
            interval=timedelta(days=30),
            delete_after=timedelta(days=1),
            clock=lambda: utc_now() + timedelta(days=2),
        )
        await later.sync_user(user.id)

        remaining, _ = await repos.entries.list(user.id, Page())
        assert [e.id for e in remaining] == [entries[0].id]


class TestStoreNewEntries:
    @pytest.mark.asyncio
    async def test_duplicate_guids_in_one_document_are_stored_once(self, repos, make_user):
        user = await make_user()
        feed = await _subscribe(repos, user.id)
        item = ParsedEntry(guid="dup", title="t", link="", author="", published=utc_now())

        created = await store_new_entries(repos.entries, user.id, feed.id, [item, item])

        assert created == 1
        assert (await repos.entries.stats(user.id)).total == 1
