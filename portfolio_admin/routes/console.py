"""Console-level endpoints: message, dashboard, settings and reload."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from portfolio_admin.logic.console import AdminConsole
from portfolio_admin.models.requests import BackendOverrideRequest
from portfolio_admin.routes.deps import get_console, require_session

router = APIRouter(dependencies=[Depends(require_session)])


@router.get("/message", summary="Currently visible message, if any")
def current_message(console: AdminConsole = Depends(get_console)):
    message = console.state.messages.current()
    return {"message": message.as_dict() if message else None, "busy": console.state.busy.snapshot()}


@router.get("/dashboard", summary="Connection check and collection counts")
def dashboard(console: AdminConsole = Depends(get_console)):
    return console.content.dashboard()


@router.get("/settings/backend-config", summary="Active backend configuration (key masked)")
def get_backend_config(console: AdminConsole = Depends(get_console)):
    return {"backend": console.backend_config()}


@router.put("/settings/backend-config", summary="Persist a replacement backend configuration")
def put_backend_config(body: BackendOverrideRequest, console: AdminConsole = Depends(get_console)):
    return console.override_backend(body.config)


@router.post("/settings/reload", summary="Reload every collection into console state")
def force_reload(console: AdminConsole = Depends(get_console)):
    return console.content.reload_all()


__all__ = ["router"]
