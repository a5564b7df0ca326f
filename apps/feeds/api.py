# ==========================================================================
# 订阅 API 模块
# --------------------------------------------------------------------------
# 提供以下端点（需要访问令牌）：
#   GET/POST   /feeds               : 列表 / 新建（新建时立即抓取）
#   GET/PUT/DELETE /feeds/{id}      : 查询 / 修改 / 删除（连带条目）
#   GET        /feeds/{id}/entries  : 订阅下的条目
#   PUT        /feeds/{id}/mark     : 批量标记已读 / 未读
#   GET        /feeds/{id}/stats    : 条目统计
# ==========================================================================

"""Feed subscription API endpoints for FeedPulse."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from apps.entries.schemas import EntryListResponse
from core.dependencies import (
    CurrentUser,
    EntryPageParams,
    MarkerParam,
    PageParams,
    get_fetcher,
    get_repositories,
)
from core.schemas import StatsResponse

from .schemas import FeedCreateRequest, FeedListResponse, FeedResponse, FeedUpdateRequest
from .service import FeedsService

router = APIRouter(prefix="/feeds", tags=["feeds"])


def get_feeds_service(request: Request) -> FeedsService:
    return FeedsService(get_repositories(request), get_fetcher(request))


FeedsServiceDep = Annotated[FeedsService, Depends(get_feeds_service)]


@router.post("", response_model=FeedResponse, status_code=status.HTTP_201_CREATED)
async def create_feed(body: FeedCreateRequest, user: CurrentUser, service: FeedsServiceDep):
    """Subscribe to a feed.

    Raises:
        UpstreamError: If the subscription cannot be fetched (400).
    """
    return await service.create(
        user.id,
        body.subscription,
        title=body.title,
        category_id=body.category,
    )


@router.get("", response_model=FeedListResponse)
async def list_feeds(user: CurrentUser, page: PageParams, service: FeedsServiceDep) -> dict:
    feeds, next_id = await service.list(user.id, page)
    return {"feeds": feeds, "continuation_id": next_id}


@router.get("/{feed_id}", response_model=FeedResponse)
async def get_feed(feed_id: str, user: CurrentUser, service: FeedsServiceDep):
    return await service.get(user.id, feed_id)


@router.put("/{feed_id}", response_model=FeedResponse)
async def update_feed(
    feed_id: str,
    body: FeedUpdateRequest,
    user: CurrentUser,
    service: FeedsServiceDep,
):
    return await service.update(
        user.id, feed_id, title=body.title, subscription=body.subscription
    )


@router.delete("/{feed_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_feed(feed_id: str, user: CurrentUser, service: FeedsServiceDep) -> Response:
    await service.delete(user.id, feed_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{feed_id}/entries", response_model=EntryListResponse)
async def feed_entries(
    feed_id: str,
    user: CurrentUser,
    page: EntryPageParams,
    service: FeedsServiceDep,
) -> dict:
    entries, next_id = await service.entries(user.id, feed_id, page)
    return {"entries": entries, "continuation_id": next_id}


@router.put("/{feed_id}/mark", status_code=status.HTTP_204_NO_CONTENT)
async def mark_feed(
    feed_id: str,
    marker: MarkerParam,
    user: CurrentUser,
    service: FeedsServiceDep,
) -> Response:
    await service.mark(user.id, feed_id, marker)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{feed_id}/stats", response_model=StatsResponse)
async def feed_stats(feed_id: str, user: CurrentUser, service: FeedsServiceDep):
    return await service.stats(user.id, feed_id)
