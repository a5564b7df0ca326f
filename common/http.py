# =============================================================================
# 模块: common/http.py
# 功能: 出站 HTTP 客户端工厂
# 架构角色: 作为通用 HTTP 基础设施层，被订阅抓取器（apps/sync/fetcher.py）调用。
#
# 设计决策:
#   - 使用 httpx.AsyncClient，抓取在 asyncio 事件循环中执行
#   - 超时参数细分为 connect/read/write/pool 四个维度，防止连接池耗尽导致的无限等待
#   - 不做重试：失败的订阅会在下一个同步周期重新抓取
#   - 允许注入 transport（测试中使用 httpx.MockTransport）
# =============================================================================
"""HTTP client helpers for FeedPulse."""

from __future__ import annotations

import logging
from typing import Dict, Optional

import httpx

logger = logging.getLogger(__name__)

# 订阅源内容的 Accept 头，优先 RSS/Atom
_ACCEPT_FEED = (
    "application/rss+xml, application/atom+xml, application/xml;q=0.9, "
    "text/xml;q=0.9, */*;q=0.8"
)


def build_headers(user_agent: str) -> Dict[str, str]:
    """Build the default request headers for feed fetching.

    Args:
        user_agent: User-Agent string.

    Returns:
        Dict[str, str]: Headers dictionary.
    """
    return {
        "User-Agent": user_agent,
        "Accept": _ACCEPT_FEED,
        "Accept-Encoding": "gzip, deflate",
    }


def create_async_client(
    timeout: float = 10.0,
    user_agent: str = "FeedPulse/1.0",
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create an ``httpx.AsyncClient`` configured for feed fetching.

    Args:
        timeout: Request timeout in seconds.
        user_agent: User-Agent header value.
        transport: Optional transport override.

    Returns:
        httpx.AsyncClient: New client; the caller owns and closes it.
    """
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            connect=min(timeout, 10.0),   # TCP 连接超时：上限 10 秒
            read=timeout,
            write=timeout,
            pool=min(timeout, 5.0),       # 等待连接池空闲位置超时：上限 5 秒
        ),
        headers=build_headers(user_agent),
        follow_redirects=True,
        limits=httpx.Limits(
            max_connections=50,
            max_keepalive_connections=10,
            keepalive_expiry=30.0,
        ),
        transport=transport,
    )
