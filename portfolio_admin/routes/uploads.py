"""Asset upload into a kind's folder, and public asset serving."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile

from portfolio_admin.errors import ConsoleError, NotFoundError
from portfolio_admin.logic.console import AdminConsole
from portfolio_admin.logic.content_service import IncomingFile
from portfolio_admin.routes.deps import get_console, require_session

router = APIRouter(dependencies=[Depends(require_session)])
assets_router = APIRouter()
logger = logging.getLogger(__name__)

ASSET_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Content-Security-Policy": "default-src 'none'; sandbox",
}


@router.post("/uploads/{kind}", summary="Upload one or more files into the kind's draft")
def upload_files(
    kind: str,
    files: List[UploadFile] = File(...),
    thumb: bool = Query(False),
    console: AdminConsole = Depends(get_console),
):
    incoming = [
        IncomingFile(name=f.filename or "", data=f.file.read(), content_type=f.content_type)
        for f in files
    ]
    return console.content.upload(kind, incoming, is_thumb=thumb).as_dict()


@assets_router.get("/assets/{path:path}", summary="Fetch a stored asset")
def get_asset(path: str, console: AdminConsole = Depends(get_console)):
    try:
        found = console.gateway.objects.get(path)
    except ConsoleError:
        logger.error("assets.read_failed path=%s", path, exc_info=True)
        raise
    if found is None:
        raise NotFoundError(f"No asset at {path}", detail={"path": path})
    data, content_type = found
    return Response(content=data, media_type=content_type or "application/octet-stream", headers=ASSET_HEADERS)


__all__ = ["router", "assets_router"]
