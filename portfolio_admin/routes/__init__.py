"""APIRouter registration for the portfolio admin console."""

from __future__ import annotations

from fastapi import APIRouter

from portfolio_admin.routes.auth import router as auth_router
from portfolio_admin.routes.collections import router as collections_router
from portfolio_admin.routes.console import router as console_router
from portfolio_admin.routes.drafts import router as drafts_router
from portfolio_admin.routes.imports import router as imports_router
from portfolio_admin.routes.profile import router as profile_router
from portfolio_admin.routes.projects import router as projects_router
from portfolio_admin.routes.uploads import assets_router
from portfolio_admin.routes.uploads import router as uploads_router

api_router = APIRouter()
api_router.include_router(auth_router, tags=["Auth"])
api_router.include_router(projects_router, tags=["Projects"])
api_router.include_router(collections_router, tags=["Collections"])
api_router.include_router(profile_router, tags=["Profile"])
api_router.include_router(drafts_router, tags=["Drafts"])
api_router.include_router(uploads_router, tags=["Uploads"])
api_router.include_router(imports_router, tags=["Import"])
api_router.include_router(console_router, tags=["Console"])

__all__ = ["api_router", "assets_router"]
