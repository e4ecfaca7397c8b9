"""Operator sign-in, sign-out and session probe."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from portfolio_admin.errors import AuthError
from portfolio_admin.logic.auth import Session
from portfolio_admin.logic.console import AdminConsole
from portfolio_admin.logic.console_state import LOGIN
from portfolio_admin.models.requests import LoginRequest
from portfolio_admin.routes.deps import bearer_token, get_console, require_session

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/auth/login", summary="Sign in as the console operator")
def login(body: LoginRequest, console: AdminConsole = Depends(get_console)):
    with console.state.busy.guard(LOGIN):
        try:
            session = console.auth.sign_in(body.email, body.password)
        except AuthError as e:
            console.state.messages.error(f"Error logging in: {e.message}")
            raise
    console.state.messages.success("Logged in successfully!")
    return session.as_dict()


@router.post("/auth/logout", summary="Sign out and revoke the session token")
def logout(session: Session = Depends(require_session), console: AdminConsole = Depends(get_console)):
    console.auth.sign_out(session.token)
    console.state.messages.success("Logged out successfully!")
    return {"signed_out": True}


@router.get("/auth/session", summary="Report whether the bearer token is a live session")
def session_status(token: Optional[str] = Depends(bearer_token), console: AdminConsole = Depends(get_console)):
    if token is None:
        return {"authenticated": False}
    try:
        session = console.auth.verify(token)
    except AuthError as e:
        logger.info("auth.session_probe_rejected reason=%s", e.message)
        return {"authenticated": False}
    return {"authenticated": True, "email": session.email, "expires_at": session.expires_at.isoformat()}


__all__ = ["router"]
