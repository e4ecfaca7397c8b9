"""Content management operations for every entity kind.

List kinds (project, certificate, skill, work, education) share one code
path driven by their ``EntitySpec``; projects load through the
``CollectionSynchronizer`` so their order is repaired on every load, the
other collections are read ordered by their field and re-sorted locally in
case the server-side ordering was unavailable. The profile is a singleton
document at ``main/profile`` with its own load/save path.

Every user-initiated operation posts a message: ``success`` on completion,
``error`` on failure (after logging). Backend failures are re-raised as
``ConsoleError`` subclasses for the HTTP layer to map.
"""

from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from portfolio_admin.errors import ConsoleError, LoadError, NotFoundError, UploadError, ValidationError
from portfolio_admin.logic.collection_sync import ORDER_FIELD, CollectionSynchronizer, order_value
from portfolio_admin.logic.console_state import SAVE, UPLOAD, ConsoleState
from portfolio_admin.logic.edit_state import (
    Creating,
    Editing,
    Idle,
    add_tag,
    draft_of,
    merge_fields,
    remove_tag,
    start_create,
    start_edit,
    with_draft,
)
from portfolio_admin.logic.entities import (
    ENTITY_SPECS,
    LIST_COLLECTIONS,
    PROFILE_COLLECTION,
    PROFILE_KEY,
    PROJECTS,
    EntitySpec,
    get_spec,
    spec_for_collection,
    upload_capability,
    validate_required,
)
from portfolio_admin.logic.gateway import AssetInfo, RemoteDataGateway

logger = logging.getLogger(__name__)

PROFILE = "profile"
FALLBACK_DISPLAY_ORDER = 999


@dataclass(frozen=True)
class IncomingFile:
    name: str
    data: bytes
    content_type: Optional[str] = None


@dataclass
class UploadReport:
    uploaded: List[AssetInfo] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    progress: int = 0
    draft: Optional[Dict[str, Any]] = None

    def as_dict(self) -> dict:
        return {
            "uploaded": [dict(a) for a in self.uploaded],
            "failed": list(self.failed),
            "progress": self.progress,
            "draft": self.draft,
        }


def _sort_token(value: Any) -> tuple:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, float(value), "")
    return (1, 0.0, str(value))


def sort_by_field(records: List[Dict[str, Any]], field_name: str, descending: bool = False) -> List[Dict[str, Any]]:
    """Stable sort by one field; records missing the field always go last."""
    present = [r for r in records if r.get(field_name) not in (None, "")]
    absent = [r for r in records if r.get(field_name) in (None, "")]
    return sorted(present, key=lambda r: _sort_token(r[field_name]), reverse=descending) + absent


def _is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _coerce_display_order(value: Any) -> int:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Display order must be a number", missing=[ORDER_FIELD]) from None
    if math.isnan(number) or math.isinf(number):
        raise ValidationError("Display order must be a number", missing=[ORDER_FIELD])
    return int(number)


def _lower_label(spec: EntitySpec) -> str:
    return spec.label.lower()


class ContentService:
    def __init__(
        self,
        gateway: RemoteDataGateway,
        synchronizer: CollectionSynchronizer,
        state: ConsoleState,
    ) -> None:
        self.gateway = gateway
        self.synchronizer = synchronizer
        self.state = state

    @contextmanager
    def _posting_errors(self):
        """Post the message of a rejected request before it propagates."""
        try:
            yield
        except (ValidationError, UploadError) as e:
            self.state.messages.error(e.message)
            raise

    # -------------------- loading --------------------
    def load(self, kind: str, notify: bool = False) -> List[Dict[str, Any]]:
        spec = self._list_spec(kind)
        if spec.collection == PROJECTS:
            return self.synchronizer.load_ordered(PROJECTS, notify=notify)
        try:
            records = self.gateway.read_all(spec.collection, spec.order_by, spec.descending)
        except ConsoleError as e:
            logger.error("content.load_failed collection=%s", spec.collection, exc_info=True)
            self.state.last_errors[spec.collection] = e.message or str(e)
            self.state.messages.error(f"Error loading {_lower_label(spec)}: {e.message or e}")
            raise LoadError(f"Failed to load {spec.collection}: {e.message or e}") from e
        valid = [r for r in records if r and r.get("id")]
        if len(valid) != len(records):
            logger.warning("content.dropped_without_id collection=%s dropped=%s", spec.collection, len(records) - len(valid))
        if spec.order_by:
            valid = sort_by_field(valid, spec.order_by, spec.descending)
        self.state.set_collection(spec.collection, valid)
        self.state.last_errors.pop(spec.collection, None)
        logger.info("content.loaded collection=%s count=%s", spec.collection, len(valid))
        if notify:
            self.state.messages.success(f"Loaded {len(valid)} {spec.collection} successfully")
        return valid

    def load_collection(self, collection: str, notify: bool = False) -> List[Dict[str, Any]]:
        if collection in (PROFILE, PROFILE_COLLECTION):
            profile = self.load_profile()
            return [profile] if profile else []
        with self._posting_errors():
            spec = spec_for_collection(collection)
        return self.load(spec.kind, notify=notify)

    def load_profile(self) -> Optional[Dict[str, Any]]:
        try:
            profile = self.gateway.read_one(PROFILE_COLLECTION, PROFILE_KEY)
        except ConsoleError as e:
            logger.error("content.profile_load_failed", exc_info=True)
            self.state.messages.error(f"Error loading profile: {e.message or e}")
            raise LoadError(f"Failed to load profile: {e.message or e}") from e
        self.state.set_profile(profile)
        return profile

    def reload_all(self) -> Dict[str, Any]:
        """Reload every collection and the profile into console state."""
        self.state.messages.info("Forcing a complete data reload...")
        failures: Dict[str, str] = {}
        for collection in LIST_COLLECTIONS:
            try:
                self.load(spec_for_collection(collection).kind)
            except ConsoleError as e:
                failures[collection] = e.message or str(e)
        try:
            self.load_profile()
        except ConsoleError as e:
            failures[PROFILE] = e.message or str(e)
        if failures:
            self.state.messages.error(f"Error loading data: {', '.join(sorted(failures))}")
        else:
            self.state.messages.success("All data loaded successfully")
        return {"counts": self.state.counts(), "errors": failures}

    # -------------------- list CRUD --------------------
    def create(self, kind: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        spec = self._list_spec(kind)
        with self.state.busy.guard(SAVE):
            return self._create(spec, payload)

    def update(self, kind: str, record_id: str, partial: Mapping[str, Any]) -> Dict[str, Any]:
        spec = self._list_spec(kind)
        with self.state.busy.guard(SAVE):
            return self._update(spec, record_id, partial)

    def delete(self, kind: str, record_id: str) -> None:
        spec = self._list_spec(kind)
        with self.state.busy.guard(SAVE):
            try:
                self.gateway.delete_record(spec.collection, record_id)
            except ConsoleError as e:
                self.state.messages.error(f"Error deleting {_lower_label(spec)}: {e.message or e}")
                raise
            self._reload_quietly(spec)
            self.state.messages.success(f"{spec.label} deleted successfully")

    def next_display_order(self) -> int:
        """Current maximum ``displayOrder`` plus one; 999 when it cannot be read."""
        try:
            records = self.gateway.read_unordered(PROJECTS)
        except ConsoleError:
            logger.warning("content.display_order_unknown; using %s", FALLBACK_DISPLAY_ORDER, exc_info=True)
            return FALLBACK_DISPLAY_ORDER
        values = [v for v in (order_value(r) for r in records) if v is not None]
        return int(max(values)) + 1 if values else 1

    def _create(self, spec: EntitySpec, payload: Mapping[str, Any]) -> Dict[str, Any]:
        data = {k: v for k, v in dict(payload).items() if k not in ("id", "createdAt", "updatedAt")}
        with self._posting_errors():
            validate_required(spec, data)
        if spec.collection == PROJECTS:
            data["tags"] = list(data.get("tags") or [])
            if _is_absent(data.get(ORDER_FIELD)):
                data[ORDER_FIELD] = self.next_display_order()
            else:
                with self._posting_errors():
                    data[ORDER_FIELD] = _coerce_display_order(data[ORDER_FIELD])
        try:
            record_id = self.gateway.create_record(spec.collection, data)
        except ConsoleError as e:
            self.state.messages.error(f"Error creating {_lower_label(spec)}: {e.message or e}")
            raise
        self._reload_quietly(spec)
        self.state.messages.success(f"{spec.label} created successfully!")
        return self.gateway.read_one(spec.collection, record_id) or {**data, "id": record_id}

    def _update(self, spec: EntitySpec, record_id: str, partial: Mapping[str, Any]) -> Dict[str, Any]:
        if not record_id:
            self.state.messages.error(f"No {_lower_label(spec)} selected for update")
            raise ValidationError(f"No {_lower_label(spec)} selected for update", missing=["id"])
        try:
            existing = self.gateway.read_one(spec.collection, record_id)
        except ConsoleError as e:
            self.state.messages.error(f"Error updating {_lower_label(spec)}: {e.message or e}")
            raise
        if existing is None:
            self.state.messages.error(f"Error updating {_lower_label(spec)}: record not found")
            raise NotFoundError(f"No {_lower_label(spec)} with id {record_id}", detail={"id": record_id})
        merged = {**existing, **{k: v for k, v in dict(partial).items() if k not in ("id", "createdAt", "updatedAt")}}
        with self._posting_errors():
            validate_required(spec, merged)
        if spec.collection == PROJECTS:
            merged["tags"] = list(merged.get("tags") or [])
            if not _is_absent(merged.get(ORDER_FIELD)):
                with self._posting_errors():
                    merged[ORDER_FIELD] = _coerce_display_order(merged[ORDER_FIELD])
        changes = {k: v for k, v in merged.items() if k not in ("id", "createdAt", "updatedAt")}
        try:
            self.gateway.update_record(spec.collection, record_id, changes)
        except ConsoleError as e:
            self.state.messages.error(f"Error updating {_lower_label(spec)}: {e.message or e}")
            raise
        self._reload_quietly(spec)
        self.state.messages.success(f"{spec.label} updated successfully!")
        return self.gateway.read_one(spec.collection, record_id) or {**merged, "id": record_id}

    def _reload_quietly(self, spec: EntitySpec) -> None:
        try:
            self.load(spec.kind)
        except ConsoleError:
            logger.error("content.reload_failed collection=%s", spec.collection, exc_info=True)

    # -------------------- profile --------------------
    def save_profile(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        with self.state.busy.guard(SAVE):
            return self._save_profile(payload)

    def _save_profile(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        spec = ENTITY_SPECS[PROFILE]
        data = {k: v for k, v in dict(payload).items() if k not in ("id", "createdAt", "updatedAt")}
        with self._posting_errors():
            validate_required(spec, data)
        try:
            stored = self.gateway.set_document(PROFILE_COLLECTION, PROFILE_KEY, data)
        except ConsoleError as e:
            self.state.messages.error(f"Error updating profile: {e.message or e}")
            raise
        profile = {**stored, "id": PROFILE_KEY}
        self.state.set_profile(profile)
        self.state.messages.success("Profile updated successfully!")
        return profile

    # -------------------- edit state --------------------
    def open_create(self, kind: str) -> Creating:
        spec = self._list_spec(kind)
        state = start_create(spec.new_draft())
        self.state.set_edit_state(kind, state)
        return state

    def open_edit(self, kind: str, record_id: Optional[str] = None) -> Editing:
        with self._posting_errors():
            spec = get_spec(kind)
        if kind == PROFILE:
            profile = self.state.profile or self.load_profile()
            if not profile:
                self.state.messages.error("No profile data available")
                raise NotFoundError("No profile data available")
            state = start_edit(profile, PROFILE_KEY)
        else:
            record = next((r for r in self.state.get_collection(spec.collection) if r.get("id") == record_id), None)
            if record is None and record_id:
                record = self.gateway.read_one(spec.collection, record_id)
            if record is None:
                self.state.messages.error(f"No {_lower_label(spec)} selected for update")
                raise NotFoundError(f"No {_lower_label(spec)} with id {record_id}", detail={"id": record_id})
            state = start_edit(record)
        self.state.set_edit_state(kind, state)
        return state

    def update_draft(self, kind: str, fields: Mapping[str, Any]):
        with self._posting_errors():
            get_spec(kind)
            state = merge_fields(self.state.edit_state(kind), fields)
        self.state.set_edit_state(kind, state)
        return state

    def add_draft_tag(self, kind: str, tag: str):
        with self._posting_errors():
            current = self.state.edit_state(kind)
            draft = draft_of(current)
            if draft is None:
                raise ValidationError("No open form to update")
        state = with_draft(current, add_tag(draft, tag))
        self.state.set_edit_state(kind, state)
        return state

    def remove_draft_tag(self, kind: str, tag: str):
        with self._posting_errors():
            current = self.state.edit_state(kind)
            draft = draft_of(current)
            if draft is None:
                raise ValidationError("No open form to update")
        state = with_draft(current, remove_tag(draft, tag))
        self.state.set_edit_state(kind, state)
        return state

    def cancel_edit(self, kind: str) -> None:
        with self._posting_errors():
            get_spec(kind)
        self.state.reset_edit_state(kind)

    def save_draft(self, kind: str) -> Dict[str, Any]:
        """Persist the open draft (create or update), then close the form."""
        with self._posting_errors():
            spec = get_spec(kind)
            current = self.state.edit_state(kind)
            if isinstance(current, Idle):
                raise ValidationError("No open form to save")
        with self.state.busy.guard(SAVE):
            if kind == PROFILE:
                saved = self._save_profile(current.draft)
            elif isinstance(current, Creating):
                saved = self._create(spec, current.draft)
            else:
                saved = self._update(spec, current.record_id, current.draft)
        self.state.reset_edit_state(kind)
        return saved

    # -------------------- uploads --------------------
    def upload(self, kind: str, files: Sequence[IncomingFile], is_thumb: bool = False) -> UploadReport:
        """Upload files into the kind's folder and apply each URL to the draft.

        A file the store rejects is skipped and reported in ``failed``; the
        remaining files still upload.
        """
        if not files:
            self.state.messages.error("No files selected")
            raise UploadError("No files selected")
        capability = upload_capability(kind)
        folder = capability.folder_for(is_thumb)
        with self.state.busy.guard(UPLOAD):
            current = self._draft_target(kind)
            draft = draft_of(current) if current is not None else None
            report = UploadReport()
            total = len(files)
            for done, incoming in enumerate(files, start=1):
                try:
                    asset = self.gateway.upload_asset(folder, incoming.data, incoming.name, incoming.content_type)
                except UploadError as e:
                    logger.error("content.upload_skipped kind=%s file=%s error=%s", kind, incoming.name, e.message)
                    report.failed.append(incoming.name)
                else:
                    report.uploaded.append(asset)
                    if draft is not None:
                        draft = capability.apply(draft, asset["url"], is_thumb)
                report.progress = int(done * 100 / total)
                logger.debug("content.upload_progress kind=%s progress=%s", kind, report.progress)
            if current is not None and draft is not None:
                self.state.set_edit_state(kind, with_draft(current, draft))
                report.draft = draft
            if report.failed:
                self.state.messages.error(f"Error uploading images: {', '.join(report.failed)}")
            else:
                self.state.messages.success("Images uploaded successfully!")
            return report

    def _draft_target(self, kind: str):
        if kind not in ENTITY_SPECS:
            return None
        current = self.state.edit_state(kind)
        if not isinstance(current, Idle):
            return current
        if kind == PROFILE:
            return start_edit(self.state.profile or {"id": PROFILE_KEY}, PROFILE_KEY)
        return start_create(ENTITY_SPECS[kind].new_draft())

    # -------------------- diagnostics --------------------
    def dashboard(self) -> Dict[str, Any]:
        """Probe the store and count every collection.

        A failing collection is reported under ``errors`` without aborting
        the other counts.
        """
        self.state.messages.info("Checking collections...")
        connected = True
        connection_error: Optional[str] = None
        try:
            self.gateway.probe_connection()
        except ConsoleError as e:
            connected = False
            connection_error = e.message or str(e)
            logger.error("content.probe_failed error=%s", connection_error)
        counts: Dict[str, Optional[int]] = {}
        errors: Dict[str, str] = {}
        for collection in LIST_COLLECTIONS:
            try:
                counts[collection] = len(self.gateway.read_unordered(collection))
            except ConsoleError as e:
                counts[collection] = None
                errors[collection] = e.message or str(e)
        if connected:
            self.state.messages.success("Database write successful! Try adding content now.")
        else:
            self.state.messages.error(f"Database test failed: {connection_error}")
        return {
            "connected": connected,
            "connection_error": connection_error,
            "counts": counts,
            "errors": errors,
            "busy": self.state.busy.snapshot(),
        }

    def _list_spec(self, kind: str) -> EntitySpec:
        with self._posting_errors():
            spec = get_spec(kind)
            if kind == PROFILE:
                raise ValidationError("The profile is a single document; use the profile operations")
        return spec

__all__ = [
    "ContentService",
    "IncomingFile",
    "UploadReport",
    "FALLBACK_DISPLAY_ORDER",
    "sort_by_field",
]
