"""Ordered collection synchronization.

Produces a correctly ordered, field-complete view of an ordered collection
(``projects``) from a backend that may return documents in any order with
missing, invalid, duplicate or gapped ``displayOrder`` values.

Load pipeline:

1. read all records unordered (no dependence on a server-side index);
2. sort client-side with ``compare_records``;
3. classify the order keys (``detect_repair``);
4. repair when needed and persist only the values that changed, one write
   at a time;
5. hand the consistent list to ``ConsoleState``.

When the pipeline itself fails, a bare unordered read is attempted before
giving up with ``LoadError``; on total failure the collection is left empty.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import cmp_to_key
from typing import Any, Dict, List, Optional

from portfolio_admin.errors import ConsoleError, LoadError
from portfolio_admin.logic.console_state import ConsoleState
from portfolio_admin.logic.gateway import RemoteDataGateway

logger = logging.getLogger(__name__)

ORDER_FIELD = "displayOrder"

REPAIR_NONE = "none"
# Missing/invalid/duplicate keys: rebuild the whole order from creation time
REPAIR_RENUMBER = "renumber"
# Valid unique keys with gaps: close the gaps keeping the current order
REPAIR_COMPACT = "compact"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def order_value(record: Dict[str, Any], field_name: str = ORDER_FIELD) -> Optional[float]:
    """Return the numeric order key, or None when missing, null or NaN."""
    value = record.get(field_name)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def created_at_value(record: Dict[str, Any]) -> float:
    """Return ``createdAt`` as epoch seconds; unknown values count as the epoch."""
    value = record.get("createdAt")
    if value is None:
        return 0.0
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return (dt - _EPOCH).total_seconds()
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        # Numeric timestamps are epoch milliseconds
        return float(value) / 1000.0
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if isinstance(seconds, (int, float)):
            nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
            return float(seconds) + float(nanos) / 1e9
        return 0.0
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return created_at_value({"createdAt": datetime.fromisoformat(text)})
        except ValueError:
            return 0.0
    return 0.0


def compare_records(a: Dict[str, Any], b: Dict[str, Any]) -> int:
    """Defined order keys ascending first, then undefined ones newest first."""
    a_order = order_value(a)
    b_order = order_value(b)
    if a_order is not None and b_order is not None:
        return (a_order > b_order) - (a_order < b_order)
    if a_order is not None:
        return -1
    if b_order is not None:
        return 1
    a_created = created_at_value(a)
    b_created = created_at_value(b)
    return (b_created > a_created) - (b_created < a_created)


def sort_records(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(records, key=cmp_to_key(compare_records))


def sort_by_created_desc(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(records, key=created_at_value, reverse=True)


def detect_repair(records: List[Dict[str, Any]]) -> str:
    """Classify the order keys of a sorted list.

    Missing, null or NaN keys and duplicate keys need a full renumbering.
    Unique valid keys that are not exactly ``1..N`` only need compacting.
    """
    values = [order_value(r) for r in records]
    if any(v is None for v in values):
        return REPAIR_RENUMBER
    if len(set(values)) != len(values):
        return REPAIR_RENUMBER
    if sorted(values) != [float(i) for i in range(1, len(values) + 1)]:
        return REPAIR_COMPACT
    return REPAIR_NONE


def is_dense(records: List[Dict[str, Any]]) -> bool:
    return detect_repair(records) == REPAIR_NONE


@dataclass
class SyncResult:
    records: List[Dict[str, Any]] = field(default_factory=list)
    repair: str = REPAIR_NONE
    writes: int = 0
    repair_failed: bool = False
    used_fallback: bool = False


class CollectionSynchronizer:
    def __init__(self, gateway: RemoteDataGateway, state: ConsoleState) -> None:
        self.gateway = gateway
        self.state = state
        self.last_result: Optional[SyncResult] = None

    def load_ordered(self, collection: str, notify: bool = True) -> List[Dict[str, Any]]:
        """Load, order and self-heal ``collection`` into console state.

        Returns the final list. Raises LoadError only when both the primary
        pipeline and the bare unordered read fail; the state then holds [].
        """
        messages = self.state.messages
        try:
            result = self._load_and_repair(collection)
        except Exception as primary_error:
            logger.error("collection_sync.primary_failed collection=%s", collection, exc_info=True)
            try:
                records = _with_ids(self.gateway.read_unordered(collection), collection)
            except Exception as fallback_error:
                logger.error("collection_sync.fallback_failed collection=%s", collection, exc_info=True)
                self.state.set_collection(collection, [])
                self.state.last_errors[collection] = str(fallback_error)
                message = _describe(fallback_error)
                if notify:
                    messages.error(f"Critical error loading {collection}: {message}")
                raise LoadError(
                    f"Failed to load {collection}: {message}",
                    detail={"collection": collection, "primary_error": _describe(primary_error)},
                ) from fallback_error
            result = SyncResult(records=records, used_fallback=True)

        self.state.set_collection(collection, result.records)
        self.state.last_errors.pop(collection, None)
        self.last_result = result
        count = len(result.records)
        logger.info(
            "collection_sync.loaded collection=%s count=%s repair=%s writes=%s fallback=%s",
            collection,
            count,
            result.repair,
            result.writes,
            result.used_fallback,
        )
        if notify:
            if result.repair_failed:
                messages.error(f"Failed to update {collection} display orders; they will be repaired on the next load")
            elif count == 0:
                messages.info(f"No {collection} found. Create your first one to get started.")
            elif result.used_fallback:
                messages.success(f"Loaded {count} {collection} (fallback)")
            elif result.writes:
                messages.success(f"Loaded {count} {collection}; display orders updated")
            else:
                messages.success(f"Loaded {count} {collection} successfully")
        return copy.deepcopy(result.records)

    def _load_and_repair(self, collection: str) -> SyncResult:
        records = sort_records(_with_ids(self.gateway.read_unordered(collection), collection))
        repair = detect_repair(records)
        result = SyncResult(records=records, repair=repair)
        if repair == REPAIR_NONE:
            return result
        logger.warning(
            "collection_sync.repair_needed collection=%s kind=%s orders=%s",
            collection,
            repair,
            [r.get(ORDER_FIELD) for r in records],
        )
        if repair == REPAIR_RENUMBER:
            records = sort_by_created_desc(records)
            result.records = records
        for index, record in enumerate(records):
            new_order = index + 1
            if order_value(record) == float(new_order) and isinstance(record.get(ORDER_FIELD), int):
                continue
            try:
                self.gateway.update_record(collection, record["id"], {ORDER_FIELD: new_order})
            except ConsoleError:
                logger.error(
                    "collection_sync.repair_write_failed collection=%s id=%s",
                    collection,
                    record.get("id"),
                    exc_info=True,
                )
                result.repair_failed = True
                break
            logger.info(
                "collection_sync.repaired collection=%s id=%s from=%s to=%s",
                collection,
                record["id"],
                record.get(ORDER_FIELD),
                new_order,
            )
            record[ORDER_FIELD] = new_order
            result.writes += 1
        return result


def _with_ids(records: List[Dict[str, Any]], collection: str) -> List[Dict[str, Any]]:
    valid = [r for r in records if r and r.get("id")]
    if len(valid) != len(records):
        logger.warning("collection_sync.dropped_without_id collection=%s dropped=%s", collection, len(records) - len(valid))
    return valid


def _describe(error: BaseException) -> str:
    return getattr(error, "message", "") or str(error) or error.__class__.__name__


__all__ = [
    "CollectionSynchronizer",
    "SyncResult",
    "ORDER_FIELD",
    "REPAIR_NONE",
    "REPAIR_RENUMBER",
    "REPAIR_COMPACT",
    "compare_records",
    "created_at_value",
    "detect_repair",
    "is_dense",
    "order_value",
    "sort_by_created_desc",
    "sort_records",
]
