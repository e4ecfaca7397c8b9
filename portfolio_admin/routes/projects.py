"""Project endpoints: ordered listing, CRUD and drag-and-drop reorder.

Listing goes through the collection synchronizer, so every GET repairs
missing, duplicate or gapped ``displayOrder`` values before responding.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Response

from portfolio_admin.logic.console import AdminConsole
from portfolio_admin.models.requests import ReorderRequest
from portfolio_admin.routes.deps import get_console, require_session

router = APIRouter(dependencies=[Depends(require_session)])

KIND = "project"


@router.get("/projects", summary="List projects in display order")
def list_projects(console: AdminConsole = Depends(get_console)):
    items = console.content.load(KIND, notify=True)
    result = console.synchronizer.last_result
    return {
        "items": items,
        "count": len(items),
        "repair": result.repair if result else None,
        "repair_writes": result.writes if result else 0,
    }


@router.post("/projects", status_code=201, summary="Create a project")
def create_project(payload: Dict[str, Any] = Body(...), console: AdminConsole = Depends(get_console)):
    return console.content.create(KIND, payload)


@router.post("/projects/reorder", summary="Move one project to a new position")
def reorder_projects(body: ReorderRequest, console: AdminConsole = Depends(get_console)):
    result = console.reorder.move(body.source_index, body.destination_index)
    return {"items": result.records, "moved": result.moved, "writes": result.writes}


@router.patch("/projects/{record_id}", summary="Update a project")
def update_project(record_id: str, payload: Dict[str, Any] = Body(...), console: AdminConsole = Depends(get_console)):
    return console.content.update(KIND, record_id, payload)


@router.delete("/projects/{record_id}", status_code=204, summary="Delete a project")
def delete_project(record_id: str, console: AdminConsole = Depends(get_console)):
    console.content.delete(KIND, record_id)
    return Response(status_code=204)


__all__ = ["router"]
