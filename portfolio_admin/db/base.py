"""SQLAlchemy engine construction for the SQL-backed stores.

The document and object stores run on any SQLAlchemy URL taken from
``AppConfig.database_url``; SQLite is the development and CI default. No ORM
models are defined; stores use the Core tables in `portfolio_admin.db.schema`.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def _engine_kwargs(url: str) -> dict:
    parsed = make_url(url)
    kwargs: dict = {"future": True, "pool_pre_ping": True}
    if parsed.get_backend_name() != "sqlite":
        return kwargs
    # Sync handlers run in the threadpool
    kwargs["connect_args"] = {"check_same_thread": False}
    database = parsed.database or ""
    if database in ("", ":memory:"):
        # One shared connection, or every checkout sees an empty database
        kwargs["poolclass"] = StaticPool
    else:
        Path(database).parent.mkdir(parents=True, exist_ok=True)
    return kwargs


def get_engine(url: str) -> Engine:
    """Return the process-wide Engine for ``url``.

    Asking for a different URL disposes the previous engine first.
    """
    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None and _ENGINE_URL == url:
        return _ENGINE
    if _ENGINE is not None:
        logger.info("db.engine_replaced old_dialect=%s", _ENGINE.dialect.name)
        _ENGINE.dispose()
    _ENGINE = create_engine(url, **_engine_kwargs(url))
    _ENGINE_URL = url
    logger.info("db.engine_created dialect=%s", _ENGINE.dialect.name)
    return _ENGINE


def dispose_engine() -> None:
    """Drop the cached engine (tests switch URLs between runs)."""
    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _ENGINE_URL = None
