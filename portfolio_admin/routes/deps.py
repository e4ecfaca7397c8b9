"""Shared route dependencies: the console instance and the bearer session."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from portfolio_admin.errors import AuthError
from portfolio_admin.logic.auth import Session
from portfolio_admin.logic.console import AdminConsole


def get_console(request: Request) -> AdminConsole:
    return request.app.state.console


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_session(
    token: Optional[str] = Depends(bearer_token),
    console: AdminConsole = Depends(get_console),
) -> Session:
    if token is None:
        raise AuthError("Not authenticated")
    return console.auth.verify(token)


__all__ = ["get_console", "bearer_token", "require_session"]
