"""Tests for core/security: password hashing and JWT tokens.

针对密码哈希与 JWT 令牌工具函数的测试。
"""

from __future__ import annotations

from datetime import timedelta

from core.security import (
    ACCESS_TOKEN,
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_salt,
    hash_password,
    verify_password,
)

SECRET = "unit-test-secret"


class TestPasswordHashing:
    """Verify bcrypt hashing and verification."""

    def test_hash_and_verify(self):
        hashed = hash_password("correct horse")
        assert hashed != "correct horse"
        assert verify_password("correct horse", hashed) is True
        assert verify_password("wrong horse", hashed) is False

    def test_explicit_salt_is_deterministic(self):
        salt = generate_salt()
        assert hash_password("pw", salt) == hash_password("pw", salt)
        assert hash_password("pw", salt) != hash_password("pw", generate_salt())

    def test_corrupt_hash_does_not_raise(self):
        assert verify_password("pw", "not-a-bcrypt-hash") is False

    def test_long_passwords_are_truncated_consistently(self):
        long_password = "x" * 100
        hashed = hash_password(long_password)
        assert verify_password(long_password, hashed) is True


class TestTokens:
    """Verify access and refresh token round trips.

    验证令牌类型标记、签名校验与过期处理。
    """

    def test_access_token_payload(self):
        token = create_access_token({"sub": "user-1"}, SECRET, timedelta(minutes=5))
        payload = decode_token(token, SECRET)
        assert payload["sub"] == "user-1"
        assert payload["type"] == ACCESS_TOKEN

    def test_refresh_tokens_are_unique(self):
        first = create_refresh_token({"sub": "user-1"}, SECRET, timedelta(days=1))
        second = create_refresh_token({"sub": "user-1"}, SECRET, timedelta(days=1))
        assert first != second
        assert decode_token(first, SECRET)["type"] == REFRESH_TOKEN

    def test_wrong_secret_is_rejected(self):
        token = create_access_token({"sub": "user-1"}, SECRET, timedelta(minutes=5))
        assert decode_token(token, "another-secret") is None

    def test_expired_token_is_rejected(self):
        token = create_access_token({"sub": "user-1"}, SECRET, timedelta(seconds=-10))
        assert decode_token(token, SECRET) is None

    def test_garbage_is_rejected(self):
        assert decode_token("not.a.token", SECRET) is None

