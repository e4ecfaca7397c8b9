"""One-shot migration of the static seed file into the document store.

Seed shape::

    {"main": {...profile...},
     "resume": {"skills": [...], "work": [...], "education": [...], "certificates": [...]}}

Each section imports independently. A missing or empty section raises
SeedImportError for that section only; a failing record is logged and
skipped, and the report carries ``success_count`` of ``total_count``. The
affected collection is reloaded after every batch.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from portfolio_admin.errors import ConsoleError, SeedImportError
from portfolio_admin.logic.console_state import IMPORT, ConsoleState
from portfolio_admin.logic.entities import (
    CERTIFICATES,
    EDUCATION,
    PROFILE_COLLECTION,
    PROFILE_KEY,
    SKILLS,
    WORK,
)
from portfolio_admin.logic.gateway import RemoteDataGateway

logger = logging.getLogger(__name__)

PROFILE_SECTION = "profile"
ARRAY_SECTIONS: Tuple[str, ...] = (SKILLS, WORK, EDUCATION, CERTIFICATES)
IMPORT_ORDER: Tuple[str, ...] = (PROFILE_SECTION,) + ARRAY_SECTIONS

SECTION_LABELS: Dict[str, str] = {
    PROFILE_SECTION: "profile",
    SKILLS: "skills",
    WORK: "work experience",
    EDUCATION: "education",
    CERTIFICATES: "certificates",
}

DEFAULT_SKILL_CATEGORY = "Other Skills"
SKILL_CATEGORY_TABLE: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Frontend", ("JavaScript", "React", "HTML5", "CSS", "TypeScript", "Angular", "GraphQL", "Svelte")),
    ("Backend", ("Node.js", "Python", "PHP/Hack", "SQL/MySQL", "MongoDB", "Firebase")),
    ("Tools & DevOps", ("Git", "Mercurial", "CI/CD", "Docker", "Vercel", "AWS", "GCP")),
)
RELATIVE_PATH_MARKER = "./"


def skill_category(name: Any) -> str:
    for category, members in SKILL_CATEGORY_TABLE:
        if name in members:
            return category
    return DEFAULT_SKILL_CATEGORY


def strip_relative_marker(path: Any) -> Any:
    if isinstance(path, str) and path.startswith(RELATIVE_PATH_MARKER):
        return path[len(RELATIVE_PATH_MARKER):]
    return path


def parse_occupation(value: Any) -> Any:
    """Turn a legacy ``"[a, b]"`` occupation string into ``["a", "b"]``.

    Anything else, or a string that cannot be parsed, is returned unchanged.
    """
    if not (isinstance(value, str) and value.startswith("[") and value.endswith("]")):
        return value
    try:
        parsed = json.loads(value)
        if isinstance(parsed, list):
            return [str(item).strip() for item in parsed]
    except json.JSONDecodeError:
        pass
    try:
        inner = value[1:-1]
        if "[" in inner or "]" in inner:
            raise ValueError("nested brackets in occupation string")
        return [item.strip().strip("'\"").strip() for item in inner.split(",") if item.strip()]
    except ValueError as e:
        logger.warning("bulk_import.occupation_unparsed value=%s error=%s", value, e)
        return value


def load_seed(path: Path) -> Dict[str, Any]:
    """Read the seed document; an unreadable file is a seed import failure."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("bulk_import.seed_unreadable path=%s", path, exc_info=True)
        raise SeedImportError("seed", f"Could not read seed file {path}: {e}") from e
    if not isinstance(data, dict):
        raise SeedImportError("seed", f"Seed file {path} must contain a JSON object")
    return data


@dataclass
class ImportReport:
    section: str
    success_count: int = 0
    total_count: int = 0
    failures: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.success_count == self.total_count

    def summary(self) -> str:
        label = SECTION_LABELS.get(self.section, self.section)
        if self.error:
            return f"Error migrating {label}: {self.error}"
        if self.section == PROFILE_SECTION:
            return "Profile migration complete."
        return f"{label.capitalize()} migration complete. Added {self.success_count} of {self.total_count} {label}."

    def as_dict(self) -> dict:
        return {
            "section": self.section,
            "success_count": self.success_count,
            "total_count": self.total_count,
            "failures": list(self.failures),
            "error": self.error,
            "summary": self.summary(),
        }


class SeedImporter:
    def __init__(
        self,
        gateway: RemoteDataGateway,
        state: ConsoleState,
        seed_loader: Callable[[], Mapping[str, Any]],
        reload: Callable[[str], Any],
    ) -> None:
        self.gateway = gateway
        self.state = state
        self.seed_loader = seed_loader
        self.reload = reload
        self._preparers: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
            SKILLS: self._prepare_skill,
            CERTIFICATES: self._prepare_certificate,
        }

    # -------------------- entry points --------------------
    def import_section(self, section: str) -> ImportReport:
        with self.state.busy.guard(IMPORT):
            return self._import_section(section)

    def import_all(self) -> List[ImportReport]:
        with self.state.busy.guard(IMPORT):
            self.state.messages.info("Starting full data migration...")
            reports: List[ImportReport] = []
            for section in IMPORT_ORDER:
                try:
                    reports.append(self._import_section(section))
                except ConsoleError as e:
                    reports.append(ImportReport(section=section, error=e.message or str(e)))
            failed = [r.section for r in reports if not r.ok]
            if failed:
                self.state.messages.error(f"Data migration finished with problems in: {', '.join(failed)}")
            else:
                self.state.messages.success("Full data migration complete!")
            return reports

    # -------------------- sections --------------------
    def _import_section(self, section: str) -> ImportReport:
        if section not in IMPORT_ORDER:
            raise SeedImportError(section, f"Unknown import section: {section}")
        label = SECTION_LABELS[section]
        self.state.messages.info(f"Starting {label} migration...")
        try:
            seed = self.seed_loader()
            if section == PROFILE_SECTION:
                report = self._import_profile(seed)
            else:
                report = self._import_array(section, seed)
        except SeedImportError as e:
            logger.error("bulk_import.section_failed section=%s error=%s", section, e.message)
            self.state.messages.error(f"Error migrating {label}: {e.message}")
            raise
        logger.info(
            "bulk_import.section_done section=%s success=%s total=%s",
            section,
            report.success_count,
            report.total_count,
        )
        if report.ok:
            self.state.messages.success(report.summary())
        else:
            self.state.messages.error(report.summary())
        return report

    def _import_profile(self, seed: Mapping[str, Any]) -> ImportReport:
        main = seed.get("main") if isinstance(seed, Mapping) else None
        if not isinstance(main, Mapping) or not main:
            raise SeedImportError(PROFILE_SECTION)
        profile = dict(main)
        profile["occupation"] = parse_occupation(profile.get("occupation"))
        if profile["occupation"] is None:
            profile.pop("occupation")
        report = ImportReport(section=PROFILE_SECTION, total_count=1)
        try:
            self.gateway.set_document(PROFILE_COLLECTION, PROFILE_KEY, profile)
            report.success_count = 1
        except ConsoleError as e:
            logger.error("bulk_import.profile_write_failed", exc_info=True)
            report.failures.append(PROFILE_KEY)
            report.error = e.message or str(e)
        self._reload(PROFILE_SECTION)
        return report

    def _import_array(self, section: str, seed: Mapping[str, Any]) -> ImportReport:
        resume = seed.get("resume") if isinstance(seed, Mapping) else None
        items = resume.get(section) if isinstance(resume, Mapping) else None
        if not isinstance(items, list) or not items:
            raise SeedImportError(section, f"No {SECTION_LABELS[section]} data found in the seed file")
        report = ImportReport(section=section, total_count=len(items))
        prepare = self._preparers.get(section, dict)
        for position, item in enumerate(items):
            name = _record_label(item, position)
            try:
                if not isinstance(item, Mapping):
                    raise SeedImportError(section, f"Entry {position + 1} is not an object")
                self.gateway.create_record(section, prepare(dict(item)))
                report.success_count += 1
            except ConsoleError as e:
                logger.error("bulk_import.record_failed section=%s record=%s error=%s", section, name, e.message or e)
                report.failures.append(name)
        self._reload(section)
        return report

    def _reload(self, section: str) -> None:
        try:
            self.reload(section)
        except ConsoleError:
            logger.error("bulk_import.reload_failed section=%s", section, exc_info=True)

    # -------------------- record preparation --------------------
    @staticmethod
    def _prepare_skill(item: Dict[str, Any]) -> Dict[str, Any]:
        item["category"] = skill_category(item.get("name"))
        return item

    @staticmethod
    def _prepare_certificate(item: Dict[str, Any]) -> Dict[str, Any]:
        if "image" in item:
            item["image"] = strip_relative_marker(item["image"])
        return item


def _record_label(item: Any, position: int) -> str:
    if isinstance(item, Mapping):
        for key in ("name", "company", "school", "course", "title"):
            if item.get(key):
                return str(item[key])
    return f"#{position + 1}"


__all__ = [
    "ImportReport",
    "SeedImporter",
    "IMPORT_ORDER",
    "SKILL_CATEGORY_TABLE",
    "DEFAULT_SKILL_CATEGORY",
    "load_seed",
    "parse_occupation",
    "skill_category",
    "strip_relative_marker",
]
