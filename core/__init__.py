"""Core module for FeedPulse."""

from core.database import build_engine, build_session_factory, init_db
from core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)

__all__ = [
    "build_engine",
    "build_session_factory",
    "init_db",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "hash_password",
    "verify_password",
]
