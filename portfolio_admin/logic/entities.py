"""Entity kinds managed by the console.

One ``EntitySpec`` per kind: backing collection, required fields, the
client-side list ordering, the blank draft used when creating, and the
upload capability (target folder plus how an uploaded URL lands on the
entity). Lookups happen once per operation instead of branching on kind
strings throughout the services.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from portfolio_admin.errors import ValidationError

PROJECTS = "projects"
CERTIFICATES = "certificates"
SKILLS = "skills"
WORK = "work"
EDUCATION = "education"
PROFILE_COLLECTION = "main"
PROFILE_KEY = "profile"

LIST_COLLECTIONS: Tuple[str, ...] = (PROJECTS, CERTIFICATES, SKILLS, WORK, EDUCATION)


def _set_image(entity: Dict, url: str, is_thumb: bool) -> Dict:
    entity["image"] = url
    return entity


def _add_project_image(entity: Dict, url: str, is_thumb: bool) -> Dict:
    if is_thumb:
        entity["thumbnail"] = url
    else:
        entity.setdefault("images", [])
        if entity["images"] is None:
            entity["images"] = []
        entity["images"].append(url)
    return entity


def _ignore_upload(entity: Dict, url: str, is_thumb: bool) -> Dict:
    return entity


@dataclass(frozen=True)
class UploadCapability:
    folder: str
    apply: Callable[[Dict, str, bool], Dict]
    thumb_folder: Optional[str] = None

    def folder_for(self, is_thumb: bool) -> str:
        if is_thumb and self.thumb_folder:
            return self.thumb_folder
        return self.folder


MISC_UPLOAD = UploadCapability(folder="misc", apply=_ignore_upload)


@dataclass(frozen=True)
class EntitySpec:
    kind: str
    collection: str
    label: str
    required: Tuple[str, ...]
    blank: Mapping[str, Any] = field(default_factory=dict)
    order_by: Optional[str] = None
    descending: bool = False
    upload: UploadCapability = MISC_UPLOAD
    field_labels: Mapping[str, str] = field(default_factory=dict)

    def new_draft(self) -> Dict:
        return copy.deepcopy(dict(self.blank))


ENTITY_SPECS: Dict[str, EntitySpec] = {
    "project": EntitySpec(
        kind="project",
        collection=PROJECTS,
        label="Project",
        required=("title", "category"),
        blank={"title": "", "category": "", "url": "", "images": [], "tags": []},
        order_by="displayOrder",
        upload=UploadCapability(
            folder="portfolio/details",
            thumb_folder="portfolio/thumbnails",
            apply=_add_project_image,
        ),
    ),
    "certificate": EntitySpec(
        kind="certificate",
        collection=CERTIFICATES,
        label="Certificate",
        required=("course", "school"),
        blank={"school": "", "course": "", "date": "", "image": ""},
        order_by="createdAt",
        descending=True,
        upload=UploadCapability(folder="certificates", apply=_set_image),
    ),
    "skill": EntitySpec(
        kind="skill",
        collection=SKILLS,
        label="Skill",
        required=("name", "level", "category"),
        blank={"name": "", "level": "75%", "category": "Frontend"},
        order_by="category",
    ),
    "work": EntitySpec(
        kind="work",
        collection=WORK,
        label="Work experience",
        required=("company", "title", "years"),
        blank={"company": "", "title": "", "years": "", "description": ""},
        order_by="years",
        descending=True,
    ),
    "education": EntitySpec(
        kind="education",
        collection=EDUCATION,
        label="Education",
        required=("school", "degree", "graduated"),
        blank={"school": "", "degree": "", "graduated": "", "description": ""},
        order_by="graduated",
        descending=True,
        field_labels={"graduated": "graduation year"},
    ),
    "profile": EntitySpec(
        kind="profile",
        collection=PROFILE_COLLECTION,
        label="Profile",
        required=("name", "bio"),
        upload=UploadCapability(folder="profile", apply=_set_image),
    ),
}

KIND_BY_COLLECTION: Dict[str, str] = {
    spec.collection: kind for kind, spec in ENTITY_SPECS.items() if kind != "profile"
}


def get_spec(kind: str) -> EntitySpec:
    try:
        return ENTITY_SPECS[kind]
    except KeyError:
        raise ValidationError(f"Unknown entity kind: {kind}") from None


def spec_for_collection(collection: str) -> EntitySpec:
    kind = KIND_BY_COLLECTION.get(collection)
    if kind is None:
        raise ValidationError(f"Unknown collection: {collection}")
    return ENTITY_SPECS[kind]


def upload_capability(kind: str) -> UploadCapability:
    spec = ENTITY_SPECS.get(kind)
    return spec.upload if spec is not None else MISC_UPLOAD


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _required_message(labels: list[str]) -> str:
    names = [labels[0].capitalize()] + labels[1:]
    if len(names) == 1:
        joined = names[0]
    elif len(names) == 2:
        joined = f"{names[0]} and {names[1]}"
    else:
        joined = ", ".join(names[:-1]) + f", and {names[-1]}"
    return f"{joined} {'is' if len(names) == 1 else 'are'} required"


def validate_required(spec: EntitySpec, payload: Mapping[str, Any]) -> None:
    """Raise ValidationError when any required field is empty."""
    missing = [f for f in spec.required if _is_blank(payload.get(f))]
    if missing:
        labels = [spec.field_labels.get(f, f) for f in spec.required]
        raise ValidationError(_required_message(labels), missing=missing)


__all__ = [
    "ENTITY_SPECS",
    "EntitySpec",
    "UploadCapability",
    "LIST_COLLECTIONS",
    "PROJECTS",
    "CERTIFICATES",
    "SKILLS",
    "WORK",
    "EDUCATION",
    "PROFILE_COLLECTION",
    "PROFILE_KEY",
    "get_spec",
    "spec_for_collection",
    "upload_capability",
    "validate_required",
]
