# ==========================================================================
# 条目 API 模块
# --------------------------------------------------------------------------
#   GET        /entries            : 当前用户全部条目（支持 markedAs / orderBy / saved）
#   PUT        /entries/mark       : 全部标记已读 / 未读
#   GET        /entries/stats      : 条目统计
#   GET        /entries/{id}       : 查询条目
#   PUT        /entries/{id}/mark  : 标记单个条目
#   PUT/DELETE /entries/{id}/save  : 收藏 / 取消收藏
#
# 注意：固定路径（/mark、/stats）必须在 /{entry_id} 之前注册
# ==========================================================================

"""Entry API endpoints for FeedPulse."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from core.dependencies import CurrentUser, EntryPageParams, MarkerParam, get_repositories
from core.schemas import StatsResponse

from .schemas import EntryListResponse, EntryResponse
from .service import EntriesService

router = APIRouter(prefix="/entries", tags=["entries"])


def get_entries_service(request: Request) -> EntriesService:
    return EntriesService(get_repositories(request).entries)


EntriesServiceDep = Annotated[EntriesService, Depends(get_entries_service)]


@router.get("", response_model=EntryListResponse)
async def list_entries(user: CurrentUser, page: EntryPageParams, service: EntriesServiceDep) -> dict:
    entries, next_id = await service.list(user.id, page)
    return {"entries": entries, "continuation_id": next_id}


@router.put("/mark", status_code=status.HTTP_204_NO_CONTENT)
async def mark_all_entries(
    marker: MarkerParam,
    user: CurrentUser,
    service: EntriesServiceDep,
) -> Response:
    await service.mark_all(user.id, marker)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stats", response_model=StatsResponse)
async def entry_stats(user: CurrentUser, service: EntriesServiceDep):
    return await service.stats(user.id)


@router.get("/{entry_id}", response_model=EntryResponse)
async def get_entry(entry_id: str, user: CurrentUser, service: EntriesServiceDep):
    return await service.get(user.id, entry_id)


@router.put("/{entry_id}/mark", status_code=status.HTTP_204_NO_CONTENT)
async def mark_entry(
    entry_id: str,
    marker: MarkerParam,
    user: CurrentUser,
    service: EntriesServiceDep,
) -> Response:
    await service.mark(user.id, entry_id, marker)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{entry_id}/save", status_code=status.HTTP_204_NO_CONTENT)
async def save_entry(entry_id: str, user: CurrentUser, service: EntriesServiceDep) -> Response:
    await service.set_saved(user.id, entry_id, True)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{entry_id}/save", status_code=status.HTTP_204_NO_CONTENT)
async def unsave_entry(entry_id: str, user: CurrentUser, service: EntriesServiceDep) -> Response:
    await service.set_saved(user.id, entry_id, False)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
