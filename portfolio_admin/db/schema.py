"""Table definitions for the SQL-backed stores.

Documents are schemaless: each row holds one JSON payload keyed by
(collection, doc_id). Assets hold raw bytes keyed by their storage path.
"""

from __future__ import annotations

import logging

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    LargeBinary,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()

documents = Table(
    "documents",
    metadata,
    Column("collection", String(128), primary_key=True),
    Column("doc_id", String(128), primary_key=True),
    Column("payload", Text, nullable=False),
    Column("inserted_at", DateTime(timezone=True), nullable=False),
)

assets = Table(
    "assets",
    metadata,
    Column("path", String(512), primary_key=True),
    Column("content_type", String(128), nullable=True),
    Column("size", Integer, nullable=False),
    Column("data", LargeBinary, nullable=False),
)


def ensure_schema(engine: Engine) -> None:
    """Create the store tables when absent."""
    metadata.create_all(engine, checkfirst=True)
    logger.info("db.schema_ready tables=%s", sorted(metadata.tables))


__all__ = ["metadata", "documents", "assets", "ensure_schema"]
