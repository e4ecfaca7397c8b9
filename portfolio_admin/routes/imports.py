"""Seed file migration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from portfolio_admin.logic.console import AdminConsole
from portfolio_admin.routes.deps import get_console, require_session

router = APIRouter(dependencies=[Depends(require_session)])


@router.post("/import", summary="Migrate every seed section")
def import_all(console: AdminConsole = Depends(get_console)):
    reports = console.importer.import_all()
    return {"reports": [r.as_dict() for r in reports], "ok": all(r.ok for r in reports)}


@router.post("/import/{section}", summary="Migrate one seed section")
def import_section(section: str, console: AdminConsole = Depends(get_console)):
    return console.importer.import_section(section).as_dict()


__all__ = ["router"]
