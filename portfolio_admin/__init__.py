"""Portfolio admin console service.

This package exposes a FastAPI application factory for the operator console
of a portfolio site: ordered project management with display-order repair,
CRUD for the resume collections, asset uploads and the one-shot seed import.
Business logic lives in `portfolio_admin/logic/` and route handlers in
`portfolio_admin/routes/`.
"""

from __future__ import annotations

from portfolio_admin.main import create_app

__all__ = ["create_app"]
