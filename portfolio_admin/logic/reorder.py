"""Drag-and-drop reordering for ordered collections.

A move relocates one element (remove at ``source``, insert at
``destination``), shows the new order immediately, then rewrites every
element's ``displayOrder`` to ``position + 1``, one write at a time. The
first failed write stops the sequence and the collection is reloaded from
the backend instead of guessing at the partial state.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from portfolio_admin.errors import ConsoleError, LoadError, ReorderError, WriteError
from portfolio_admin.logic.collection_sync import ORDER_FIELD, CollectionSynchronizer
from portfolio_admin.logic.console_state import REORDER, ConsoleState
from portfolio_admin.logic.entities import PROJECTS
from portfolio_admin.logic.gateway import RemoteDataGateway

logger = logging.getLogger(__name__)


@dataclass
class ReorderResult:
    records: List[Dict[str, Any]] = field(default_factory=list)
    moved: bool = False
    writes: int = 0


def move_item(records: List[Dict[str, Any]], source_index: int, destination_index: int) -> List[Dict[str, Any]]:
    """Return a copy of ``records`` with one element relocated."""
    moved = copy.deepcopy(records)
    item = moved.pop(source_index)
    moved.insert(destination_index, item)
    return moved


def _valid_index(value: Any, size: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < size


class ReorderController:
    def __init__(
        self,
        gateway: RemoteDataGateway,
        synchronizer: CollectionSynchronizer,
        state: ConsoleState,
        collection: str = PROJECTS,
    ) -> None:
        self.gateway = gateway
        self.synchronizer = synchronizer
        self.state = state
        self.collection = collection

    def move(self, source_index: int, destination_index: int) -> ReorderResult:
        with self.state.busy.guard(REORDER):
            return self._move(source_index, destination_index)

    def _move(self, source_index: int, destination_index: int) -> ReorderResult:
        messages = self.state.messages
        current = self.state.get_collection(self.collection)
        if not current:
            messages.error(f"Cannot reorder - no {self.collection} to reorder")
            raise ReorderError(f"Cannot reorder an empty {self.collection} list")
        size = len(current)
        if not (_valid_index(source_index, size) and _valid_index(destination_index, size)):
            logger.error(
                "reorder.invalid_indices collection=%s source=%s destination=%s size=%s",
                self.collection,
                source_index,
                destination_index,
                size,
            )
            messages.error("Invalid reordering operation")
            raise ReorderError(
                "Invalid reordering operation",
                detail={"source_index": source_index, "destination_index": destination_index, "size": size},
            )
        if source_index == destination_index:
            return ReorderResult(records=current)

        reordered = move_item(current, source_index, destination_index)
        # Optimistic: show the new order before any write lands
        self.state.set_collection(self.collection, reordered)
        logger.info(
            "reorder.start collection=%s source=%s destination=%s size=%s",
            self.collection,
            source_index,
            destination_index,
            size,
        )

        writes = 0
        for position, record in enumerate(reordered):
            record_id = record.get("id")
            if not record_id:
                logger.error("reorder.record_without_id collection=%s position=%s", self.collection, position)
                continue
            try:
                self.gateway.update_record(self.collection, record_id, {ORDER_FIELD: position + 1})
            except ConsoleError as e:
                logger.error(
                    "reorder.write_failed collection=%s id=%s position=%s writes=%s",
                    self.collection,
                    record_id,
                    position,
                    writes,
                    exc_info=True,
                )
                self._resync()
                messages.error(f"Error updating {self.collection} order: {e.message or e}")
                raise WriteError(
                    f"Error updating {self.collection} order: {e.message or e}",
                    detail={"failed_id": record_id, "writes": writes},
                ) from e
            record[ORDER_FIELD] = position + 1
            writes += 1

        self.state.set_collection(self.collection, reordered)
        messages.success(f"{self.collection.capitalize()} order updated successfully!")
        logger.info("reorder.done collection=%s writes=%s", self.collection, writes)
        return ReorderResult(records=copy.deepcopy(reordered), moved=True, writes=writes)

    def _resync(self) -> None:
        try:
            self.synchronizer.load_ordered(self.collection, notify=False)
        except LoadError:
            logger.error("reorder.resync_failed collection=%s", self.collection, exc_info=True)


__all__ = ["ReorderController", "ReorderResult", "move_item"]
