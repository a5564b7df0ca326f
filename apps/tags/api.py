# ==========================================================================
# 标签 API 模块
# --------------------------------------------------------------------------
#   GET/POST       /tags                         : 列表 / 新建
#   GET            /tags/entries?tagId=..&tagId= : 多标签联合查询条目
#   GET/PUT/DELETE /tags/{id}                    : 查询 / 重命名 / 删除
#   GET/PUT        /tags/{id}/entries            : 标签下的条目 / 为条目打标签
# ==========================================================================

"""Tag API endpoints for FeedPulse."""

from __future__ import annotations

from typing import Annotated, List

from fastapi import APIRouter, Depends, Query, Request, Response, status

from apps.entries.schemas import EntryListResponse
from core.dependencies import CurrentUser, EntryPageParams, PageParams, get_repositories

from .schemas import TagEntriesRequest, TagListResponse, TagRequest, TagResponse
from .service import TagsService

router = APIRouter(prefix="/tags", tags=["tags"])


def get_tags_service(request: Request) -> TagsService:
    return TagsService(get_repositories(request))


TagsServiceDep = Annotated[TagsService, Depends(get_tags_service)]


@router.post("", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(body: TagRequest, user: CurrentUser, service: TagsServiceDep):
    return await service.create(user.id, body.name)


@router.get("", response_model=TagListResponse)
async def list_tags(user: CurrentUser, page: PageParams, service: TagsServiceDep) -> dict:
    tags, next_id = await service.list(user.id, page)
    return {"tags": tags, "continuation_id": next_id}


@router.get("/entries", response_model=EntryListResponse)
async def entries_from_tags(
    user: CurrentUser,
    page: EntryPageParams,
    service: TagsServiceDep,
    tag_ids: List[str] = Query([], alias="tagId"),
) -> dict:
    entries, next_id = await service.entries_from_tags(user.id, tag_ids, page)
    return {"entries": entries, "continuation_id": next_id}


@router.get("/{tag_id}", response_model=TagResponse)
async def get_tag(tag_id: str, user: CurrentUser, service: TagsServiceDep):
    return await service.get(user.id, tag_id)


@router.put("/{tag_id}", response_model=TagResponse)
async def update_tag(tag_id: str, body: TagRequest, user: CurrentUser, service: TagsServiceDep):
    return await service.update(user.id, tag_id, body.name)


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(tag_id: str, user: CurrentUser, service: TagsServiceDep) -> Response:
    await service.delete(user.id, tag_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{tag_id}/entries", response_model=EntryListResponse)
async def tag_entries_list(
    tag_id: str,
    user: CurrentUser,
    page: EntryPageParams,
    service: TagsServiceDep,
) -> dict:
    entries, next_id = await service.entries(user.id, tag_id, page)
    return {"entries": entries, "continuation_id": next_id}


@router.put("/{tag_id}/entries", status_code=status.HTTP_204_NO_CONTENT)
async def tag_entries(
    tag_id: str,
    body: TagEntriesRequest,
    user: CurrentUser,
    service: TagsServiceDep,
) -> Response:
    await service.tag_entries(user.id, tag_id, body.entries)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
