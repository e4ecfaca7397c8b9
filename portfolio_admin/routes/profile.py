"""Singleton profile document (``main/profile``)."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends

from portfolio_admin.logic.console import AdminConsole
from portfolio_admin.routes.deps import get_console, require_session

router = APIRouter(dependencies=[Depends(require_session)])


@router.get("/profile", summary="Get the profile")
def get_profile(console: AdminConsole = Depends(get_console)):
    return {"profile": console.content.load_profile()}


@router.put("/profile", summary="Replace the profile")
def put_profile(payload: Dict[str, Any] = Body(...), console: AdminConsole = Depends(get_console)):
    return {"profile": console.content.save_profile(payload)}


__all__ = ["router"]
