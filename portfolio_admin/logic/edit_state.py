"""Per-entity edit mode.

Each entity kind is in exactly one of three modes: ``Idle`` (no form open),
``Creating`` (a new-record draft) or ``Editing`` (a draft of an existing
record). Drafts are plain dicts; transitions return new state objects.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from portfolio_admin.errors import ValidationError


@dataclass(frozen=True)
class Idle:
    mode: str = "idle"


@dataclass(frozen=True)
class Creating:
    draft: Dict[str, Any] = field(default_factory=dict)
    mode: str = "creating"


@dataclass(frozen=True)
class Editing:
    record_id: str
    draft: Dict[str, Any] = field(default_factory=dict)
    mode: str = "editing"


EditState = Union[Idle, Creating, Editing]


def start_create(blank: Mapping[str, Any]) -> Creating:
    return Creating(draft=copy.deepcopy(dict(blank)))


def start_edit(record: Mapping[str, Any], record_id: Optional[str] = None) -> Editing:
    rid = record_id or record.get("id")
    if not rid:
        raise ValidationError("No record selected for editing")
    return Editing(record_id=str(rid), draft=copy.deepcopy(dict(record)))


def draft_of(state: EditState) -> Optional[Dict[str, Any]]:
    if isinstance(state, (Creating, Editing)):
        return copy.deepcopy(state.draft)
    return None


def with_draft(state: EditState, draft: Mapping[str, Any]) -> EditState:
    """Return ``state`` carrying ``draft``; an idle state cannot hold one."""
    if isinstance(state, Creating):
        return Creating(draft=dict(draft))
    if isinstance(state, Editing):
        return Editing(record_id=state.record_id, draft=dict(draft))
    raise ValidationError("No open form to update")


def merge_fields(state: EditState, fields: Mapping[str, Any]) -> EditState:
    draft = draft_of(state)
    if draft is None:
        raise ValidationError("No open form to update")
    draft.update({k: v for k, v in fields.items() if k != "id"})
    return with_draft(state, draft)


def add_tag(draft: Dict[str, Any], tag: str) -> Dict[str, Any]:
    """Append a trimmed tag unless blank or already present."""
    cleaned = (tag or "").strip()
    tags = list(draft.get("tags") or [])
    if cleaned and cleaned not in tags:
        tags.append(cleaned)
    draft["tags"] = tags
    return draft


def remove_tag(draft: Dict[str, Any], tag: str) -> Dict[str, Any]:
    draft["tags"] = [t for t in (draft.get("tags") or []) if t != tag]
    return draft


def describe(state: EditState) -> dict:
    body: dict = {"mode": state.mode}
    if isinstance(state, Editing):
        body["record_id"] = state.record_id
    if isinstance(state, (Creating, Editing)):
        body["draft"] = copy.deepcopy(state.draft)
    return body


__all__ = [
    "Idle",
    "Creating",
    "Editing",
    "EditState",
    "start_create",
    "start_edit",
    "draft_of",
    "with_draft",
    "merge_fields",
    "add_tag",
    "remove_tag",
    "describe",
]
