"""CORS configuration helpers.

The console front end runs on its own origin; allowed origins come from
``AppConfig.allowed_origins``.
"""

from __future__ import annotations

from typing import Iterable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portfolio_admin.http.request_id import REQUEST_ID_HEADER

EXPOSE_HEADERS: list[str] = [REQUEST_ID_HEADER]
ALLOW_METHODS: list[str] = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
ALLOW_HEADERS: list[str] = ["Authorization", "Content-Type", REQUEST_ID_HEADER]


def apply_cors(app: FastAPI, *, origins: Iterable[str] | None = None) -> None:
    allowed = list(origins or ["*"])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed,
        # Browsers reject credentials with a wildcard origin
        allow_credentials="*" not in allowed,
        allow_methods=ALLOW_METHODS,
        allow_headers=ALLOW_HEADERS,
        expose_headers=EXPOSE_HEADERS,
    )


__all__ = ["apply_cors", "EXPOSE_HEADERS", "ALLOW_METHODS", "ALLOW_HEADERS"]
