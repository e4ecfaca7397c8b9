"""Object store repositories for binary assets (images).

Assets are addressed by ``folder/file_name`` paths; writing to an existing
path overwrites it. ``put`` returns a durable fetch URL built from the
store's ``base_url``.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol, Tuple
from urllib.parse import quote

from sqlalchemy import delete, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from portfolio_admin.db.schema import assets
from portfolio_admin.errors import ReadError, UploadError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "/assets"


class ObjectStore(Protocol):
    def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> str: ...

    def get(self, path: str) -> Optional[Tuple[bytes, Optional[str]]]: ...


def asset_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{quote(path, safe='/')}"


class InMemoryObjectStore:
    """Dict-backed object store: ``{path: (bytes, content_type)}``."""

    def __init__(
        self,
        store: Optional[Dict[str, Tuple[bytes, Optional[str]]]] = None,
        base_url: str = DEFAULT_BASE_URL,
    ) -> None:
        self.store: Dict[str, Tuple[bytes, Optional[str]]] = store if store is not None else {}
        self.base_url = base_url

    def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        self.store[path] = (bytes(data), content_type)
        return asset_url(self.base_url, path)

    def get(self, path: str) -> Optional[Tuple[bytes, Optional[str]]]:
        return self.store.get(path)


class SqlObjectStore:
    def __init__(self, engine: Engine, base_url: str = DEFAULT_BASE_URL) -> None:
        self.engine = engine
        self.base_url = base_url

    def put(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        blob = bytes(data)
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(assets).where(assets.c.path == path))
                conn.execute(
                    insert(assets).values(path=path, content_type=content_type, size=len(blob), data=blob)
                )
        except SQLAlchemyError as e:
            logger.error("assets.put_failed path=%s", path, exc_info=True)
            raise UploadError(f"Failed to store {path}: {e}") from e
        return asset_url(self.base_url, path)

    def get(self, path: str) -> Optional[Tuple[bytes, Optional[str]]]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(assets.c.data, assets.c.content_type).where(assets.c.path == path)
                ).fetchone()
        except SQLAlchemyError as e:
            logger.error("assets.get_failed path=%s", path, exc_info=True)
            raise ReadError(f"Failed to read {path}: {e}") from e
        return (bytes(row[0]), row[1]) if row else None


__all__ = ["ObjectStore", "InMemoryObjectStore", "SqlObjectStore", "asset_url", "DEFAULT_BASE_URL"]
