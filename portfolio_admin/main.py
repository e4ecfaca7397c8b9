from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from portfolio_admin.config import AppConfig, load_config
from portfolio_admin.errors import ConsoleError
from portfolio_admin.http.problem import (
    handle_console_error,
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from portfolio_admin.http.request_id import RequestIdMiddleware
from portfolio_admin.logging_setup import configure_logging
from portfolio_admin.logic.console import AdminConsole, build_console
from portfolio_admin.middleware.cors import apply_cors
from portfolio_admin.routes import api_router, assets_router

logger = logging.getLogger(__name__)


def _health_check(console: AdminConsole):
    def check() -> dict:
        counts = console.state.counts()
        return {
            "status": "ok",
            "authenticated": console.auth.current() is not None,
            "loaded": {name: n for name, n in counts.items() if n},
        }

    return check


def create_app(console: Optional[AdminConsole] = None, config: Optional[AppConfig] = None) -> FastAPI:
    """Build the console service.

    Without an explicit ``console`` the configuration is loaded (or taken from
    ``config``) and the SQL-backed console is built from it.
    """
    if console is None:
        config = config or load_config()
    configure_logging(config.log_level if config else None)
    if console is None:
        console = build_console(config)

    app = FastAPI(title="Portfolio Admin Console")
    app.state.console = console

    app.add_exception_handler(ConsoleError, handle_console_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    apply_cors(app, origins=config.allowed_origins if config else None)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router, prefix="/api/v1")
    # Asset URLs must be fetchable by the public site without a session
    app.include_router(assets_router)

    health_check = _health_check(console)

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return health_check()

    logger.info("app.created routes=%s", len(app.routes))
    return app


# Intentionally do not instantiate the app at import time; run with
# `uvicorn --factory portfolio_admin.main:create_app`.
