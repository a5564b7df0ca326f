# =============================================================================
# 用户与 API 密钥模型
# =============================================================================
# User：系统的租户单位，拥有所有分类、订阅、条目和标签。
# APIKey：登录或注册时签发的刷新令牌记录，用于 /auth/renew 校验归属。
# =============================================================================

"""User model for FeedPulse."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from core.models.base import ID_LENGTH, Base, TimestampMixin, UTCDateTime


class User(Base, TimestampMixin):
    """User account.

    保存登录凭据和管理员标记。用户名区分大小写。

    Attributes:
        id: Opaque identifier.
        username: Unique, case-sensitive username.
        password_hash: Bcrypt hash of the password.
        password_salt: Bcrypt salt used for ``password_hash``.
        is_superuser: Whether the user may manage other accounts.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    username: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    password_salt: Mapped[str] = mapped_column(String(64), nullable=False)
    is_superuser: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"

    def set_password(self, password: str) -> None:
        """Hash ``password`` with a fresh salt and store both.

        Args:
            password: Plaintext password.
        """
        from core.security import generate_salt, hash_password

        self.password_salt = generate_salt()
        self.password_hash = hash_password(password, self.password_salt)

    def check_password(self, password: str) -> bool:
        """Check whether a plaintext password matches.

        Args:
            password: Plaintext password to verify.

        Returns:
            bool: ``True`` if the password matches the stored hash.
        """
        from core.security import verify_password

        return verify_password(password, self.password_hash)


class APIKey(Base, TimestampMixin):
    """Issued token record.

    刷新令牌在签发时写入此表，续期时必须能在此找到且属于请求用户。
    """

    __tablename__ = "api_keys"

    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    key: Mapped[str] = mapped_column(String(1024), nullable=False)
    # access / refresh
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
