"""Problem+JSON utilities and global exception handlers.

Every error leaves the service as an RFC 7807 ``application/problem+json``
body carrying ``title``, ``status``, ``detail`` and a stable ``code``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from portfolio_admin.errors import ConsoleError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem_body(title: str, status: int, detail: str, code: str, **extra: Any) -> dict:
    body = {"title": title, "status": status, "detail": detail, "code": code}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


async def handle_console_error(request: Request, exc: ConsoleError) -> JSONResponse:  # noqa: D401
    logger.info(
        "problem.console_error path=%s code=%s status=%s message=%s",
        request.url.path,
        exc.code,
        exc.status,
        exc.message,
    )
    body = problem_body(exc.title, exc.status, exc.message or exc.title, exc.code, context=exc.detail or None)
    headers = {"WWW-Authenticate": "Bearer"} if exc.status == 401 else None
    return JSONResponse(body, status_code=exc.status, media_type=PROBLEM_MEDIA_TYPE, headers=headers)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        body = {"status": status, **exc.detail}
    else:
        body = problem_body("Error", status, str(exc.detail or ""), f"HTTP_{status}")
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()} or None
    return JSONResponse(body, status_code=status, media_type=PROBLEM_MEDIA_TYPE, headers=headers)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    errors = [
        {"loc": list(e.get("loc", ())), "msg": str(e.get("msg", "")), "type": str(e.get("type", ""))}
        for e in exc.errors()
    ]
    body = problem_body("Invalid Request", 422, "Request validation failed", "REQUEST_INVALID", errors=errors)
    return JSONResponse(body, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("problem.unexpected_error path=%s", request.url.path, exc_info=exc)
    body = problem_body("Internal Server Error", 500, "Unexpected server error", "INTERNAL_ERROR")
    return JSONResponse(body, status_code=500, media_type=PROBLEM_MEDIA_TYPE)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem_body",
    "handle_console_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
