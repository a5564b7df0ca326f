# ==========================================================================
# 用户管理 API 模块
# --------------------------------------------------------------------------
# 仅限超级管理员访问：
#   POST   /users        : 创建用户
#   GET    /users        : 分页列出用户
#   GET    /users/{id}   : 查询用户
#   PUT    /users/{id}   : 修改用户名或密码
#   DELETE /users/{id}   : 删除用户及其全部数据
# ==========================================================================

"""User administration API endpoints for FeedPulse."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from core.dependencies import PageParams, Superuser, get_repositories

from .schemas import UserCreateRequest, UserListResponse, UserResponse, UserUpdateRequest
from .service import UsersService

router = APIRouter(prefix="/users", tags=["users"])


def get_users_service(request: Request) -> UsersService:
    return UsersService(get_repositories(request).users)


UsersServiceDep = Annotated[UsersService, Depends(get_users_service)]


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreateRequest,
    admin: Superuser,
    service: UsersServiceDep,
):
    return await service.create(body.username, body.password, body.is_superuser)


@router.get("", response_model=UserListResponse)
async def list_users(admin: Superuser, page: PageParams, service: UsersServiceDep) -> dict:
    users, next_id = await service.list(page)
    return {"users": users, "continuation_id": next_id}


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, admin: Superuser, service: UsersServiceDep):
    return await service.get(user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    body: UserUpdateRequest,
    admin: Superuser,
    service: UsersServiceDep,
):
    return await service.update(user_id, body.username, body.password)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: str, admin: Superuser, service: UsersServiceDep) -> Response:
    await service.delete(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
