"""Console state holder.

Single source of truth for what the console currently shows: the loaded
list per collection, the profile, the visible message, busy flags per
operation family and the edit mode per entity kind. Lists are only replaced
wholesale (by the synchronizer on load and the reorder controller on move);
readers get copies.
"""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from portfolio_admin.errors import BusyError
from portfolio_admin.logic.edit_state import EditState, Idle
from portfolio_admin.logic.entities import ENTITY_SPECS, LIST_COLLECTIONS
from portfolio_admin.logic.messages import DEFAULT_TTL_SECONDS, MessageBoard

LOGIN = "login"
SAVE = "save"
UPLOAD = "upload"
REORDER = "reorder"
IMPORT = "import"
BUSY_FAMILIES = (LOGIN, SAVE, UPLOAD, REORDER, IMPORT)


class BusyFlags:
    """One boolean per operation family.

    Re-entering a busy family raises BusyError; different families never
    block each other.
    """

    def __init__(self) -> None:
        self._flags: Dict[str, bool] = {family: False for family in BUSY_FAMILIES}
        self._lock = threading.Lock()

    def is_busy(self, family: str) -> bool:
        return self._flags.get(family, False)

    def snapshot(self) -> Dict[str, bool]:
        return dict(self._flags)

    @contextmanager
    def guard(self, family: str) -> Iterator[None]:
        with self._lock:
            if self._flags.get(family):
                raise BusyError(f"A {family} operation is already in progress", detail={"family": family})
            self._flags[family] = True
        try:
            yield
        finally:
            self._flags[family] = False


class ConsoleState:
    def __init__(self, messages: Optional[MessageBoard] = None) -> None:
        self.messages = messages or MessageBoard(ttl=DEFAULT_TTL_SECONDS)
        self.busy = BusyFlags()
        self._collections: Dict[str, List[Dict]] = {name: [] for name in LIST_COLLECTIONS}
        self._profile: Optional[Dict] = None
        self._edits: Dict[str, EditState] = {kind: Idle() for kind in ENTITY_SPECS}
        self.last_errors: Dict[str, str] = {}

    # -------------------- collections --------------------
    def get_collection(self, name: str) -> List[Dict]:
        return copy.deepcopy(self._collections.get(name, []))

    def set_collection(self, name: str, records: Optional[List[Dict]]) -> None:
        self._collections[name] = copy.deepcopy(list(records or []))

    def counts(self) -> Dict[str, int]:
        return {name: len(records) for name, records in self._collections.items()}

    # -------------------- profile --------------------
    @property
    def profile(self) -> Optional[Dict]:
        return copy.deepcopy(self._profile)

    def set_profile(self, profile: Optional[Dict]) -> None:
        self._profile = copy.deepcopy(profile) if profile is not None else None

    # -------------------- edit modes --------------------
    def edit_state(self, kind: str) -> EditState:
        return self._edits.get(kind, Idle())

    def set_edit_state(self, kind: str, state: EditState) -> None:
        self._edits[kind] = state

    def reset_edit_state(self, kind: str) -> None:
        self._edits[kind] = Idle()


__all__ = ["BusyFlags", "ConsoleState", "BUSY_FAMILIES", "LOGIN", "SAVE", "UPLOAD", "REORDER", "IMPORT"]
