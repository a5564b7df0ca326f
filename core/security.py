# =============================================================================
# 安全工具模块
# =============================================================================
# 本模块提供 FeedPulse 的核心安全功能：
#   1. 密码哈希与验证（基于 bcrypt 算法，盐值单独保存）
#   2. JWT 访问令牌和刷新令牌的创建与解析（HS256）
#
# 设计决策：
#   - JWT 令牌分为 access 和 refresh 两种类型，通过 payload 中的 "type" 字段区分，
#     刷新令牌不能用作访问令牌
#   - 密钥和过期时间由调用方显式传入（来自 app.state.settings），不读取全局配置
# =============================================================================

"""Security utilities for FeedPulse.

Provides password hashing and JWT token management.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def generate_salt() -> str:
    """Return a new bcrypt salt string."""
    return bcrypt.gensalt().decode("utf-8")


def hash_password(password: str, salt: str | None = None) -> str:
    """Hash a plaintext password using bcrypt.

    The password is truncated to 72 bytes to match bcrypt's input limit.

    Args:
        password: Plaintext password to hash.
        salt: Bcrypt salt; a fresh one is generated when omitted.

    Returns:
        str: Bcrypt hash string including salt.
    """
    # bcrypt 算法有 72 字节的输入限制，显式截断保证行为一致
    password_bytes = password.encode("utf-8")[:72]
    salt_bytes = salt.encode("utf-8") if salt else bcrypt.gensalt()
    return bcrypt.hashpw(password_bytes, salt_bytes).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a bcrypt hash.

    Uses constant-time comparison via ``bcrypt.checkpw``.

    Args:
        plain_password: Password provided by the user.
        hashed_password: Stored bcrypt hash.

    Returns:
        bool: ``True`` if the password matches the hash, otherwise ``False``.
    """
    password_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except ValueError:
        # 存储的哈希格式损坏
        return False


def _create_token(
    data: dict[str, Any],
    token_type: str,
    expires_delta: timedelta,
    secret_key: str,
    algorithm: str,
) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire, "type": token_type})
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def create_access_token(
    data: dict[str, Any],
    secret_key: str,
    expires_delta: timedelta,
    algorithm: str = "HS256",
) -> str:
    """Create a signed JWT access token.

    Adds the ``exp`` claim and a ``type=access`` marker to the payload.

    Args:
        data: Payload data to embed in the token (``sub`` = user id).
        secret_key: HMAC secret.
        expires_delta: Token lifetime.
        algorithm: Signing algorithm.

    Returns:
        str: Encoded JWT access token.
    """
    return _create_token(data, ACCESS_TOKEN, expires_delta, secret_key, algorithm)


def create_refresh_token(
    data: dict[str, Any],
    secret_key: str,
    expires_delta: timedelta,
    algorithm: str = "HS256",
) -> str:
    """Create a signed JWT refresh token.

    Adds the ``exp`` claim and a ``type=refresh`` marker to the payload.
    A random ``jti`` keeps tokens issued within the same second distinct.
    """
    payload = {**data, "jti": secrets.token_hex(8)}
    return _create_token(payload, REFRESH_TOKEN, expires_delta, secret_key, algorithm)


def decode_token(
    token: str,
    secret_key: str,
    algorithm: str = "HS256",
) -> dict[str, Any] | None:
    """Decode and verify a JWT token.

    Validates signature, algorithm, and expiration. Returns ``None`` on any
    JWT error instead of raising.

    Args:
        token: Encoded JWT string.
        secret_key: HMAC secret.
        algorithm: Only algorithm accepted.

    Returns:
        dict[str, Any] | None: Decoded payload if valid, otherwise ``None``.
    """
    try:
        # algorithms 参数限定只接受指定的算法，防止算法替换攻击
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError:
        return None

