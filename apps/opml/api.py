# ==========================================================================
# OPML API 模块
# --------------------------------------------------------------------------
#   POST /import : 导入 OPML（Content-Type: application/xml / text/xml / text/x-opml）
#   GET  /export : 导出 OPML（application/xml）
# ==========================================================================

"""OPML import/export API endpoints for FeedPulse."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from core.dependencies import CurrentUser, get_repositories
from core.exceptions import BadRequestError

from .service import OPMLService

router = APIRouter(tags=["opml"])

SUPPORTED_CONTENT_TYPES = {"application/xml", "text/xml", "text/x-opml"}


def get_opml_service(request: Request) -> OPMLService:
    return OPMLService(get_repositories(request))


OPMLServiceDep = Annotated[OPMLService, Depends(get_opml_service)]


@router.post("/import", status_code=status.HTTP_204_NO_CONTENT)
async def import_opml(request: Request, user: CurrentUser, service: OPMLServiceDep) -> Response:
    """Import subscriptions from an OPML document.

    Raises:
        BadRequestError: Unsupported Content-Type or malformed document (400).
    """
    # 去掉 "; charset=utf-8" 之类的参数
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type not in SUPPORTED_CONTENT_TYPES:
        raise BadRequestError(f"Unsupported import type: {content_type or 'none'}")

    data = await request.body()
    if data.strip():
        await service.import_opml(user.id, data)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/export")
async def export_opml(user: CurrentUser, service: OPMLServiceDep) -> Response:
    data = await service.export_opml(user.id)
    return Response(content=data, media_type="application/xml")
