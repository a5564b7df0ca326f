"""Shared test fixtures for FeedPulse tests."""

from __future__ import annotations

import os
import sys
from typing import AsyncGenerator, Callable, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

# Ensure the project root is on sys.path so bare imports work
_PROJECT_ROOT = os.path.join(os.path.dirname(__file__), os.pardir)
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, os.path.abspath(_PROJECT_ROOT))

# Use in-memory SQLite for repository tests (faster, no external dependencies)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_JWT_SECRET = "test-secret-key"


def rss_document(
    guids: List[str],
    title: str = "Test Feed",
    link: str = "http://example.com/",
) -> bytes:
    """Build an RSS 2.0 document with one ``<item>`` per GUID.

    构造测试用 RSS 2.0 文档，每个 GUID 一个条目，发布时间依次递增。
    """
    items = "".join(
        f"""
        <item>
          <title>Item {i}</title>
          <link>http://example.com/{guid}</link>
          <guid>{guid}</guid>
          <author>author{i}@example.com</author>
          <pubDate>Mon, 0{1 + i % 9} Jan 2024 10:00:00 GMT</pubDate>
        </item>"""
        for i, guid in enumerate(guids)
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>{title}</title>
    <link>{link}</link>
    <description>Feed used in tests</description>{items}
  </channel>
</rss>""".encode("utf-8")


class StubFeedServer:
    """In-process feed server for ``httpx.MockTransport``.

    按 URL 返回预先登记的文档；登记了 ETag 时，请求携带相同的
    If-None-Match 将得到 304。记录所有请求以便断言。
    """

    def __init__(self) -> None:
        self.documents: Dict[str, bytes] = {}
        self.etags: Dict[str, str] = {}
        self.statuses: Dict[str, int] = {}
        self.requests: List[httpx.Request] = []

    def add(self, url: str, body: bytes, etag: Optional[str] = None, status: int = 200) -> None:
        self.documents[url] = body
        self.statuses[url] = status
        if etag is not None:
            self.etags[url] = etag

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url not in self.documents:
            return httpx.Response(404, content=b"not found")

        etag = self.etags.get(url)
        if etag is not None and request.headers.get("If-None-Match") == etag:
            return httpx.Response(304)

        headers = {"Content-Type": "application/rss+xml"}
        if etag is not None:
            headers["ETag"] = etag
        return httpx.Response(self.statuses[url], content=self.documents[url], headers=headers)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def make_rss() -> Callable[..., bytes]:
    return rss_document


@pytest.fixture
def feed_server() -> StubFeedServer:
    return StubFeedServer()


@pytest.fixture
def fetcher(feed_server: StubFeedServer):
    """Feed fetcher whose HTTP traffic goes to ``feed_server``."""
    from apps.sync.fetcher import FeedFetcher
    from common.http import create_async_client

    return FeedFetcher(create_async_client(transport=feed_server.transport()))


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database with the full schema.

    创建带完整表结构的内存数据库。StaticPool 保证所有连接共享同一个内存库。
    """
    from core.database import init_db

    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def repos(engine: AsyncEngine):
    """SQL repositories over the test database."""
    from core.database import build_session_factory
    from core.repositories import create_sql_repositories

    return create_sql_repositories(build_session_factory(engine))


@pytest_asyncio.fixture
async def make_user(repos) -> Callable:
    """Factory creating users directly through the repository."""
    from common.utils import new_id
    from core.models import User

    async def _make(username: str = "gopher", password: str = "testtesttest", superuser: bool = False):
        user = User(id=new_id(), username=username, is_superuser=superuser)
        user.set_password(password)
        await repos.users.create(user)
        return user

    return _make


@pytest.fixture
def test_settings(tmp_path):
    """Settings for API tests: file-backed SQLite, sync disabled."""
    from settings import Settings

    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'feedpulse-test.db'}",
        jwt_secret_key=TEST_JWT_SECRET,
        sync_enabled=False,
        allow_registration=True,
        superuser_username="admin",
        superuser_password="admin-password",
    )


@pytest.fixture
def client(test_settings, fetcher):
    """TestClient over a fully started application.

    应用通过 lifespan 完整启动（建表、创建管理员），订阅抓取走 MockTransport。
    """
    from fastapi.testclient import TestClient

    from main import create_app

    app = create_app(test_settings, fetcher=fetcher, start_sync=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client) -> Callable[..., Dict[str, str]]:
    """Return a helper that registers (or logs in) a user and builds bearer headers."""

    def _headers(username: str = "gopher", password: str = "testtesttest") -> Dict[str, str]:
        response = client.post(
            "/v1/auth/register", json={"username": username, "password": password}
        )
        if response.status_code == 409:
            response = client.post(
                "/v1/auth/login", json={"username": username, "password": password}
            )
        token = response.json()["accessToken"]
        return {"Authorization": f"Bearer {token}"}

    return _headers
