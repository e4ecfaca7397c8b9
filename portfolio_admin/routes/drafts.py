"""Edit-mode endpoints: open, patch, tag, save and cancel a form draft.

Each entity kind holds one ``EditState`` (idle, creating or editing) in the
console state. Saving persists the draft through the content service and
returns the kind to idle.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Response

from portfolio_admin.logic.console import AdminConsole
from portfolio_admin.logic.edit_state import describe
from portfolio_admin.logic.entities import get_spec
from portfolio_admin.models.requests import TagRequest
from portfolio_admin.routes.deps import get_console, require_session

router = APIRouter(dependencies=[Depends(require_session)])

PROJECT = "project"
PROFILE = "profile"


@router.get("/drafts/{kind}", summary="Current edit state of a kind")
def get_draft(kind: str, console: AdminConsole = Depends(get_console)):
    get_spec(kind)
    return describe(console.state.edit_state(kind))


@router.post("/drafts/{kind}", status_code=201, summary="Open a blank create form")
def open_create(kind: str, console: AdminConsole = Depends(get_console)):
    if kind == PROFILE:
        return describe(console.content.open_edit(PROFILE))
    return describe(console.content.open_create(kind))


@router.post("/drafts/project/tags", summary="Add a tag to the project draft")
def add_tag(body: TagRequest, console: AdminConsole = Depends(get_console)):
    return describe(console.content.add_draft_tag(PROJECT, body.tag))


@router.delete("/drafts/project/tags/{tag}", summary="Remove a tag from the project draft")
def remove_tag(tag: str, console: AdminConsole = Depends(get_console)):
    return describe(console.content.remove_draft_tag(PROJECT, tag))


@router.post("/drafts/{kind}/save", summary="Persist the open draft")
def save_draft(kind: str, console: AdminConsole = Depends(get_console)):
    return {"record": console.content.save_draft(kind), **describe(console.state.edit_state(kind))}


@router.post("/drafts/{kind}/{record_id}", status_code=201, summary="Open an edit form for a record")
def open_edit(kind: str, record_id: str, console: AdminConsole = Depends(get_console)):
    return describe(console.content.open_edit(kind, record_id))


@router.patch("/drafts/{kind}", summary="Merge fields into the open draft")
def patch_draft(kind: str, fields: Dict[str, Any] = Body(...), console: AdminConsole = Depends(get_console)):
    return describe(console.content.update_draft(kind, fields))


@router.delete("/drafts/{kind}", status_code=204, summary="Cancel the open form")
def cancel_draft(kind: str, console: AdminConsole = Depends(get_console)):
    console.content.cancel_edit(kind)
    return Response(status_code=204)


__all__ = ["router"]
