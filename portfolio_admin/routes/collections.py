"""CRUD endpoints for the unordered list collections.

Certificates, skills, work and education share one handler set; each
collection gets its own concrete paths so the OpenAPI document lists them
individually.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Response

from portfolio_admin.logic.console import AdminConsole
from portfolio_admin.logic.entities import CERTIFICATES, EDUCATION, SKILLS, WORK, spec_for_collection
from portfolio_admin.routes.deps import get_console, require_session

router = APIRouter(dependencies=[Depends(require_session)])


def _register(collection: str) -> None:
    kind = spec_for_collection(collection).kind

    def list_records(console: AdminConsole = Depends(get_console)):
        items = console.content.load(kind, notify=True)
        return {"items": items, "count": len(items)}

    def create_record(payload: Dict[str, Any] = Body(...), console: AdminConsole = Depends(get_console)):
        return console.content.create(kind, payload)

    def update_record(
        record_id: str,
        payload: Dict[str, Any] = Body(...),
        console: AdminConsole = Depends(get_console),
    ):
        return console.content.update(kind, record_id, payload)

    def delete_record(record_id: str, console: AdminConsole = Depends(get_console)):
        console.content.delete(kind, record_id)
        return Response(status_code=204)

    router.add_api_route(
        f"/{collection}", list_records, methods=["GET"], name=f"list_{collection}", summary=f"List {collection}"
    )
    router.add_api_route(
        f"/{collection}",
        create_record,
        methods=["POST"],
        status_code=201,
        name=f"create_{kind}",
        summary=f"Create a {kind}",
    )
    router.add_api_route(
        f"/{collection}/{{record_id}}",
        update_record,
        methods=["PATCH"],
        name=f"update_{kind}",
        summary=f"Update a {kind}",
    )
    router.add_api_route(
        f"/{collection}/{{record_id}}",
        delete_record,
        methods=["DELETE"],
        status_code=204,
        name=f"delete_{kind}",
        summary=f"Delete a {kind}",
    )


for _collection in (CERTIFICATES, SKILLS, WORK, EDUCATION):
    _register(_collection)


__all__ = ["router"]
