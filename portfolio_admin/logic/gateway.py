"""Remote data gateway over the document store and object store.

Single entry point for backend access. Every record handed out is a plain
dict carrying its own ``id``; every write stamps ``updatedAt`` and only the
first write of a record stamps ``createdAt``. Backend failures surface as
``ReadError``, ``WriteError`` or ``UploadError``.
"""

from __future__ import annotations

import logging
import posixpath
from datetime import datetime, timezone
from typing import Callable, Dict, List, Mapping, Optional, Sequence, TypedDict

from portfolio_admin.errors import ConsoleError, ReadError, UploadError, WriteError
from portfolio_admin.logic.repository_assets import ObjectStore
from portfolio_admin.logic.repository_documents import DocumentStore, Snapshot

logger = logging.getLogger(__name__)

PROBE_COLLECTION = "connection_test"
DEFAULT_CONTENT_PREFIXES: tuple[str, ...] = ("image/",)
# Scriptable when served from the API origin
BLOCKED_CONTENT_TYPES: frozenset[str] = frozenset({"image/svg+xml"})


class AssetInfo(TypedDict):
    name: str
    path: str
    url: str


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _records(snapshot: Snapshot) -> List[Dict]:
    return [{**data, "id": doc_id} for doc_id, data in snapshot]


class RemoteDataGateway:
    def __init__(
        self,
        documents: DocumentStore,
        objects: ObjectStore,
        *,
        clock: Callable[[], datetime] = utc_now,
        max_upload_bytes: int = 10 * 1024 * 1024,
        allowed_content_prefixes: Sequence[str] = DEFAULT_CONTENT_PREFIXES,
    ) -> None:
        self.documents = documents
        self.objects = objects
        self.clock = clock
        self.max_upload_bytes = max_upload_bytes
        self.allowed_content_prefixes = tuple(allowed_content_prefixes)

    def timestamp(self) -> str:
        return self.clock().isoformat()

    # -------------------- records --------------------
    def create_record(self, collection: str, payload: Mapping) -> str:
        """Insert a record and write the assigned id back into it."""
        now = self.timestamp()
        data = {k: v for k, v in dict(payload).items() if k != "id"}
        data["createdAt"] = now
        data["updatedAt"] = now
        try:
            doc_id = self.documents.add(collection, data)
        except WriteError:
            raise
        except Exception as e:
            logger.error("gateway.create_failed collection=%s", collection, exc_info=True)
            raise WriteError(f"Failed to create record in {collection}: {e}") from e
        try:
            self.documents.update(collection, doc_id, {"id": doc_id})
        except Exception as e:
            logger.error("gateway.create_id_write_failed collection=%s id=%s", collection, doc_id, exc_info=True)
            # A record without its id is dropped by every load
            self._discard(collection, doc_id)
            if isinstance(e, WriteError):
                raise
            raise WriteError(f"Failed to create record in {collection}: {e}") from e
        logger.info("gateway.created collection=%s id=%s", collection, doc_id)
        return doc_id

    def _discard(self, collection: str, doc_id: str) -> None:
        try:
            self.documents.delete(collection, doc_id)
        except Exception:
            logger.warning("gateway.discard_failed collection=%s id=%s", collection, doc_id, exc_info=True)

    def read_all(self, collection: str, order_by: Optional[str] = None, descending: bool = False) -> List[Dict]:
        """Read a collection, preferring server-side ordering when requested.

        A failed ordered query (e.g. missing index) falls back to an unordered
        read. An empty collection yields ``[]``.
        """
        if order_by:
            try:
                return _records(self.documents.get_all(collection, order_by=order_by, descending=descending))
            except Exception as e:
                logger.warning(
                    "gateway.ordered_read_failed collection=%s order_by=%s error=%s; using unordered read",
                    collection,
                    order_by,
                    e,
                )
        return self.read_unordered(collection)

    def read_unordered(self, collection: str) -> List[Dict]:
        try:
            return _records(self.documents.get_all(collection))
        except ReadError:
            raise
        except Exception as e:
            logger.error("gateway.read_failed collection=%s", collection, exc_info=True)
            raise ReadError(f"Failed to read {collection}: {e}") from e

    def read_one(self, collection: str, record_id: str) -> Optional[Dict]:
        try:
            data = self.documents.get(collection, record_id)
        except ReadError:
            raise
        except Exception as e:
            logger.error("gateway.read_one_failed collection=%s id=%s", collection, record_id, exc_info=True)
            raise ReadError(f"Failed to read {collection}/{record_id}: {e}") from e
        if data is None:
            return None
        return {**data, "id": record_id}

    def update_record(self, collection: str, record_id: str, partial: Mapping) -> None:
        """Merge fields into an existing record, refreshing ``updatedAt``."""
        if not record_id:
            raise WriteError(f"No record id provided for update in {collection}")
        fields = {k: v for k, v in dict(partial).items() if k not in ("id", "createdAt")}
        fields["updatedAt"] = self.timestamp()
        try:
            self.documents.update(collection, record_id, fields)
        except WriteError:
            raise
        except Exception as e:
            logger.error("gateway.update_failed collection=%s id=%s", collection, record_id, exc_info=True)
            raise WriteError(f"Failed to update {collection}/{record_id}: {e}") from e

    def delete_record(self, collection: str, record_id: str) -> None:
        if not record_id:
            raise WriteError(f"No record id provided for deletion in {collection}")
        try:
            self.documents.delete(collection, record_id)
        except WriteError:
            raise
        except Exception as e:
            logger.error("gateway.delete_failed collection=%s id=%s", collection, record_id, exc_info=True)
            raise WriteError(f"Failed to delete {collection}/{record_id}: {e}") from e
        logger.info("gateway.deleted collection=%s id=%s", collection, record_id)

    def set_document(self, collection: str, key: str, payload: Mapping) -> Dict:
        """Replace a fixed-key document, keeping its original ``createdAt``."""
        existing = self.read_one(collection, key)
        now = self.timestamp()
        data = {k: v for k, v in dict(payload).items() if k != "id"}
        data["createdAt"] = (existing or {}).get("createdAt") or now
        data["updatedAt"] = now
        try:
            self.documents.set(collection, key, data)
        except WriteError:
            raise
        except Exception as e:
            logger.error("gateway.set_failed collection=%s key=%s", collection, key, exc_info=True)
            raise WriteError(f"Failed to write {collection}/{key}: {e}") from e
        return data

    # -------------------- assets --------------------
    def upload_asset(
        self,
        folder: str,
        data: bytes,
        file_name: str,
        content_type: Optional[str] = None,
    ) -> AssetInfo:
        """Store bytes under ``folder/file_name`` and return a durable URL."""
        name = posixpath.basename((file_name or "").replace("\\", "/")).strip()
        if not name:
            raise UploadError("File name is required")
        if not data:
            raise UploadError(f"{name} is empty", detail={"file": name})
        if len(data) > self.max_upload_bytes:
            raise UploadError(
                f"{name} exceeds the {self.max_upload_bytes} byte limit",
                detail={"file": name, "size": len(data)},
            )
        media_type = (content_type or "").split(";")[0].strip().lower()
        if content_type and (
            not media_type.startswith(self.allowed_content_prefixes) or media_type in BLOCKED_CONTENT_TYPES
        ):
            raise UploadError(
                f"{name} has unsupported content type {content_type}",
                detail={"file": name, "content_type": content_type},
            )
        path = f"{folder.strip('/')}/{name}"
        try:
            url = self.objects.put(path, data, content_type)
        except UploadError:
            raise
        except Exception as e:
            logger.error("gateway.upload_failed path=%s", path, exc_info=True)
            raise UploadError(f"Failed to upload {name}: {e}", detail={"file": name}) from e
        logger.info("gateway.uploaded path=%s bytes=%s", path, len(data))
        return AssetInfo(name=name, path=path, url=url)

    # -------------------- diagnostics --------------------
    def probe_connection(self) -> None:
        """Write and delete a throwaway document; raises on failure."""
        try:
            doc_id = self.documents.add(PROBE_COLLECTION, {"message": "Testing connection", "timestamp": self.timestamp()})
            self.documents.delete(PROBE_COLLECTION, doc_id)
        except ConsoleError:
            raise
        except Exception as e:
            raise WriteError(f"Database connection failed: {e}") from e


__all__ = ["AssetInfo", "RemoteDataGateway", "utc_now", "PROBE_COLLECTION"]
