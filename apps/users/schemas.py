"""Pydantic schemas for the user administration API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from core.schemas import CamelModel


class UserCreateRequest(CamelModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=128)
    is_superuser: bool = False


class UserUpdateRequest(CamelModel):
    """Rename an account and/or reset its password; omitted fields stay."""

    username: Optional[str] = Field(None, min_length=1, max_length=64)
    password: Optional[str] = Field(None, min_length=1, max_length=128)


class UserResponse(CamelModel):
    """Public view of an account (never includes password material)."""

    id: str
    username: str
    is_superuser: bool
    created_at: datetime


class UserListResponse(CamelModel):
    users: List[UserResponse]
    continuation_id: str = ""
