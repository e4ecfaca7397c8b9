"""Document store repositories.

A document store holds schemaless JSON documents grouped into named
collections. Two implementations share the ``DocumentStore`` protocol:

- ``InMemoryDocumentStore`` keeps documents in an injectable dict (tests and
  local development).
- ``SqlDocumentStore`` persists documents through SQLAlchemy Core.

Both emulate the hosted store's query rule that an ordered read requires an
index on the order field (``ReadError`` otherwise). Documents lacking the
order field sort after all others. Unordered reads return documents in
insertion order.
"""

from __future__ import annotations

import copy
import json
import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Set, Tuple

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from portfolio_admin.db.schema import documents
from portfolio_admin.errors import NotFoundError, ReadError, WriteError

logger = logging.getLogger(__name__)

# (doc_id, data) pairs as returned by collection reads
Snapshot = List[Tuple[str, Dict]]

DEFAULT_INDEXES: Dict[str, Set[str]] = {
    "projects": {"displayOrder", "createdAt"},
    "certificates": {"createdAt"},
    "skills": {"category"},
    "work": {"years"},
    "education": {"graduated"},
}


class DocumentStore(Protocol):
    def add(self, collection: str, data: Mapping) -> str: ...

    def get_all(self, collection: str, order_by: Optional[str] = None, descending: bool = False) -> Snapshot: ...

    def get(self, collection: str, doc_id: str) -> Optional[Dict]: ...

    def update(self, collection: str, doc_id: str, fields: Mapping) -> None: ...

    def set(self, collection: str, doc_id: str, data: Mapping) -> None: ...

    def delete(self, collection: str, doc_id: str) -> None: ...


def new_document_id() -> str:
    return uuid.uuid4().hex[:20]


def _order_token(value) -> Tuple[int, object]:
    # Numbers sort before strings, mirroring the hosted store's type ordering
    if isinstance(value, bool):
        return (0, int(value))
    if isinstance(value, (int, float)) and not (isinstance(value, float) and math.isnan(value)):
        return (1, value)
    return (2, str(value))


def apply_query_order(
    rows: Snapshot,
    collection: str,
    order_by: str,
    descending: bool,
    indexes: Mapping[str, Set[str]],
) -> Snapshot:
    """Order a snapshot the way an indexed server-side query would."""
    if order_by not in indexes.get(collection, set()):
        raise ReadError(
            f"The query requires an index on {collection}.{order_by}",
            detail={"collection": collection, "order_by": order_by},
        )
    present = [(doc_id, data) for doc_id, data in rows if data.get(order_by) is not None]
    absent = [(doc_id, data) for doc_id, data in rows if data.get(order_by) is None]
    return sorted(present, key=lambda row: _order_token(row[1][order_by]), reverse=descending) + absent


class InMemoryDocumentStore:
    """Dict-backed document store: ``{collection: {doc_id: data}}``."""

    def __init__(
        self,
        store: Optional[Dict[str, Dict[str, Dict]]] = None,
        indexes: Optional[Mapping[str, Iterable[str]]] = None,
    ) -> None:
        self.store: Dict[str, Dict[str, Dict]] = store if store is not None else {}
        source = DEFAULT_INDEXES if indexes is None else indexes
        self.indexes: Dict[str, Set[str]] = {k: set(v) for k, v in source.items()}

    def _collection(self, collection: str) -> Dict[str, Dict]:
        return self.store.setdefault(collection, {})

    def add(self, collection: str, data: Mapping) -> str:
        doc_id = new_document_id()
        self._collection(collection)[doc_id] = copy.deepcopy(dict(data))
        return doc_id

    def get_all(self, collection: str, order_by: Optional[str] = None, descending: bool = False) -> Snapshot:
        rows = [(doc_id, copy.deepcopy(data)) for doc_id, data in self._collection(collection).items()]
        if order_by:
            return apply_query_order(rows, collection, order_by, descending, self.indexes)
        return rows

    def get(self, collection: str, doc_id: str) -> Optional[Dict]:
        data = self._collection(collection).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    def update(self, collection: str, doc_id: str, fields: Mapping) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise NotFoundError(f"No document to update: {collection}/{doc_id}")
        docs[doc_id].update(copy.deepcopy(dict(fields)))

    def set(self, collection: str, doc_id: str, data: Mapping) -> None:
        self._collection(collection)[doc_id] = copy.deepcopy(dict(data))

    def delete(self, collection: str, doc_id: str) -> None:
        self._collection(collection).pop(doc_id, None)


def _dumps(data: Mapping) -> str:
    return json.dumps(dict(data), ensure_ascii=False, default=str)


class SqlDocumentStore:
    """SQLAlchemy-backed document store.

    Payloads are stored as JSON text; ordering is evaluated after fetch with
    the same index rules as the in-memory store.
    """

    def __init__(self, engine: Engine, indexes: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        self.engine = engine
        source = DEFAULT_INDEXES if indexes is None else indexes
        self.indexes: Dict[str, Set[str]] = {k: set(v) for k, v in source.items()}

    def add(self, collection: str, data: Mapping) -> str:
        doc_id = new_document_id()
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    insert(documents).values(
                        collection=collection,
                        doc_id=doc_id,
                        payload=_dumps(data),
                        inserted_at=datetime.now(timezone.utc),
                    )
                )
        except SQLAlchemyError as e:
            logger.error("documents.add_failed collection=%s", collection, exc_info=True)
            raise WriteError(f"Failed to add document to {collection}: {e}") from e
        return doc_id

    def get_all(self, collection: str, order_by: Optional[str] = None, descending: bool = False) -> Snapshot:
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    select(documents.c.doc_id, documents.c.payload)
                    .where(documents.c.collection == collection)
                    .order_by(documents.c.inserted_at, documents.c.doc_id)
                ).fetchall()
            rows = [(str(r[0]), json.loads(r[1])) for r in result]
        except (SQLAlchemyError, json.JSONDecodeError) as e:
            logger.error("documents.get_all_failed collection=%s", collection, exc_info=True)
            raise ReadError(f"Failed to read {collection}: {e}") from e
        if order_by:
            return apply_query_order(rows, collection, order_by, descending, self.indexes)
        return rows

    def get(self, collection: str, doc_id: str) -> Optional[Dict]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    select(documents.c.payload).where(
                        documents.c.collection == collection,
                        documents.c.doc_id == doc_id,
                    )
                ).fetchone()
            return json.loads(row[0]) if row else None
        except (SQLAlchemyError, json.JSONDecodeError) as e:
            logger.error("documents.get_failed collection=%s doc_id=%s", collection, doc_id, exc_info=True)
            raise ReadError(f"Failed to read {collection}/{doc_id}: {e}") from e

    def update(self, collection: str, doc_id: str, fields: Mapping) -> None:
        try:
            with self.engine.begin() as conn:
                row = conn.execute(
                    select(documents.c.payload).where(
                        documents.c.collection == collection,
                        documents.c.doc_id == doc_id,
                    )
                ).fetchone()
                if row is None:
                    raise NotFoundError(f"No document to update: {collection}/{doc_id}")
                merged = json.loads(row[0])
                merged.update(dict(fields))
                conn.execute(
                    update(documents)
                    .where(documents.c.collection == collection, documents.c.doc_id == doc_id)
                    .values(payload=_dumps(merged))
                )
        except (SQLAlchemyError, json.JSONDecodeError) as e:
            logger.error("documents.update_failed collection=%s doc_id=%s", collection, doc_id, exc_info=True)
            raise WriteError(f"Failed to update {collection}/{doc_id}: {e}") from e

    def set(self, collection: str, doc_id: str, data: Mapping) -> None:
        try:
            with self.engine.begin() as conn:
                existing = conn.execute(
                    select(documents.c.doc_id).where(
                        documents.c.collection == collection,
                        documents.c.doc_id == doc_id,
                    )
                ).fetchone()
                if existing is None:
                    conn.execute(
                        insert(documents).values(
                            collection=collection,
                            doc_id=doc_id,
                            payload=_dumps(data),
                            inserted_at=datetime.now(timezone.utc),
                        )
                    )
                else:
                    conn.execute(
                        update(documents)
                        .where(documents.c.collection == collection, documents.c.doc_id == doc_id)
                        .values(payload=_dumps(data))
                    )
        except SQLAlchemyError as e:
            logger.error("documents.set_failed collection=%s doc_id=%s", collection, doc_id, exc_info=True)
            raise WriteError(f"Failed to write {collection}/{doc_id}: {e}") from e

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    delete(documents).where(
                        documents.c.collection == collection,
                        documents.c.doc_id == doc_id,
                    )
                )
        except SQLAlchemyError as e:
            logger.error("documents.delete_failed collection=%s doc_id=%s", collection, doc_id, exc_info=True)
            raise WriteError(f"Failed to delete {collection}/{doc_id}: {e}") from e


__all__ = [
    "DEFAULT_INDEXES",
    "DocumentStore",
    "InMemoryDocumentStore",
    "SqlDocumentStore",
    "Snapshot",
    "apply_query_order",
    "new_document_id",
]
