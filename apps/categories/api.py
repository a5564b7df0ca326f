# ==========================================================================
# 分类 API 模块
# --------------------------------------------------------------------------
#   GET/POST       /categories                      : 列表 / 新建
#   GET            /categories/uncategorized/feeds  : 未分类的订阅
#   GET/PUT/DELETE /categories/{id}                 : 查询 / 重命名 / 删除
#   GET/PUT        /categories/{id}/feeds           : 分类下的订阅 / 移入订阅
#   GET            /categories/{id}/entries         : 分类下的条目
#   PUT            /categories/{id}/mark            : 批量标记
#   GET            /categories/{id}/stats           : 条目统计
# ==========================================================================

"""Category API endpoints for FeedPulse."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from apps.entries.schemas import EntryListResponse
from apps.feeds.schemas import FeedListResponse
from core.dependencies import (
    CurrentUser,
    EntryPageParams,
    MarkerParam,
    PageParams,
    get_repositories,
)
from core.schemas import StatsResponse

from .schemas import (
    CategoryFeedsRequest,
    CategoryListResponse,
    CategoryRequest,
    CategoryResponse,
)
from .service import CategoriesService

router = APIRouter(prefix="/categories", tags=["categories"])


def get_categories_service(request: Request) -> CategoriesService:
    return CategoriesService(get_repositories(request))


CategoriesServiceDep = Annotated[CategoriesService, Depends(get_categories_service)]


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    body: CategoryRequest,
    user: CurrentUser,
    service: CategoriesServiceDep,
):
    return await service.create(user.id, body.name)


@router.get("", response_model=CategoryListResponse)
async def list_categories(
    user: CurrentUser,
    page: PageParams,
    service: CategoriesServiceDep,
) -> dict:
    categories, next_id = await service.list(user.id, page)
    return {"categories": categories, "continuation_id": next_id}


# 固定路径需在 /{category_id} 之前注册
@router.get("/uncategorized/feeds", response_model=FeedListResponse)
async def uncategorized_feeds(
    user: CurrentUser,
    page: PageParams,
    service: CategoriesServiceDep,
) -> dict:
    feeds, next_id = await service.uncategorized(user.id, page)
    return {"feeds": feeds, "continuation_id": next_id}


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: str, user: CurrentUser, service: CategoriesServiceDep):
    return await service.get(user.id, category_id)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    body: CategoryRequest,
    user: CurrentUser,
    service: CategoriesServiceDep,
):
    return await service.update(user.id, category_id, body.name)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: str,
    user: CurrentUser,
    service: CategoriesServiceDep,
) -> Response:
    await service.delete(user.id, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{category_id}/feeds", response_model=FeedListResponse)
async def category_feeds(
    category_id: str,
    user: CurrentUser,
    page: PageParams,
    service: CategoriesServiceDep,
) -> dict:
    feeds, next_id = await service.feeds(user.id, category_id, page)
    return {"feeds": feeds, "continuation_id": next_id}


@router.put("/{category_id}/feeds", status_code=status.HTTP_204_NO_CONTENT)
async def add_category_feeds(
    category_id: str,
    body: CategoryFeedsRequest,
    user: CurrentUser,
    service: CategoriesServiceDep,
) -> Response:
    await service.add_feeds(user.id, category_id, body.feeds)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{category_id}/entries", response_model=EntryListResponse)
async def category_entries(
    category_id: str,
    user: CurrentUser,
    page: EntryPageParams,
    service: CategoriesServiceDep,
) -> dict:
    entries, next_id = await service.entries(user.id, category_id, page)
    return {"entries": entries, "continuation_id": next_id}


@router.put("/{category_id}/mark", status_code=status.HTTP_204_NO_CONTENT)
async def mark_category(
    category_id: str,
    marker: MarkerParam,
    user: CurrentUser,
    service: CategoriesServiceDep,
) -> Response:
    await service.mark(user.id, category_id, marker)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{category_id}/stats", response_model=StatsResponse)
async def category_stats(category_id: str, user: CurrentUser, service: CategoriesServiceDep):
    return await service.stats(user.id, category_id)
