# =============================================================================
# 模块: common/utils.py
# 功能: 通用工具函数集（时间、标识符、URL 规范化）
# 架构角色: 作为基础工具层，被仓储层（生成主键）、同步器（判断订阅是否到期）
#   和抓取器（生成稳定的条目 GUID）使用。
#
# 设计决策:
#   - 所有时间操作默认使用 UTC 时区
#   - new_id() 生成不透明字符串标识，调用方只能依赖其唯一性
# =============================================================================
from __future__ import annotations

import itertools
import secrets
import threading
import time
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

# 进程内自增计数器，配合毫秒时间戳保证同一毫秒内的唯一性
_id_counter = itertools.count()
_id_lock = threading.Lock()

# 常见的追踪参数（不影响内容本身）
_TRACKING_PARAMS = {
    "utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content",
    "fbclid", "gclid", "mc_cid", "mc_eid", "_ga", "_gl",
}


def utc_now() -> datetime:
    """Return the current UTC time.

    返回带有 UTC 时区信息的 datetime 对象。

    Returns:
        datetime: Current UTC datetime with timezone info.
    """
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes and convert aware ones to UTC.

    SQLite 读回的时间不带时区信息，统一视为 UTC。
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_id() -> str:
    """Return a new opaque identifier.

    由毫秒时间戳、进程内计数器和随机后缀组成的十六进制字符串（共 24 位）。

    Returns:
        str: Process-unique identifier.
    """
    with _id_lock:
        seq = next(_id_counter) & 0xFFFF
    millis = int(time.time() * 1000)
    return f"{millis:012x}{seq:04x}{secrets.token_hex(4)}"


def normalize_url_for_dedup(url: str) -> str:
    """Normalize URLs for deduplication.

    移除追踪参数与 fragment，域名转小写。

    Args:
        url: Original URL.

    Returns:
        str: Normalized URL.
    """
    if not url:
        return ""

    try:
        parsed = urlparse(url)
    except ValueError:
        return url

    params = {
        key: values
        for key, values in parse_qs(parsed.query).items()
        if key.lower() not in _TRACKING_PARAMS
    }
    new_query = urlencode(params, doseq=True) if params else ""
    return urlunparse((
        parsed.scheme,
        parsed.netloc.lower(),
        parsed.path,
        parsed.params,
        new_query,
        "",
    ))
