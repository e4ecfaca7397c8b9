"""Database bootstrap utilities for the portfolio admin console.

Exposes engine construction and schema creation for the SQL-backed document
and object stores. The DB layer does not leak rows into route handlers;
stores hand plain dicts to the gateway.
"""

from portfolio_admin.db.base import dispose_engine, get_engine
from portfolio_admin.db.schema import ensure_schema

__all__ = [
    "get_engine",
    "dispose_engine",
    "ensure_schema",
]
