"""Configuration utilities for the portfolio admin console.

This module loads application configuration with the following rules:
- Primary source: `portfolio_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.

The backend connection blob (API key, project id, storage bucket, ...) can be
replaced at runtime through `apply_backend_override`; the replacement is
persisted to `config/backend.json` and only takes effect after a restart.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError as PydanticValidationError,
    field_validator,
)

from portfolio_admin.errors import ConfigError


CONFIG_DIR = Path("config")
ROOT_PORTFOLIO_CONFIG = Path("portfolio_config.json")
BACKEND_OVERRIDE_FILE = "backend.json"
logger = logging.getLogger(__name__)

_DEV_BACKEND = {
    "apiKey": "dev-api-key",
    "projectId": "portfolio-dev",
    "storageBucket": "portfolio-dev.local",
}


def _read_config_file(config_dir: Path, rel_path: str) -> Optional[str]:
    path = config_dir / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        # Recoverable: log and ignore unreadable override
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class BackendConfig(BaseModel):
    """Connection parameters for the hosted document and object stores."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    api_key: str = Field(alias="apiKey")
    project_id: str = Field(alias="projectId")
    storage_bucket: str = Field(alias="storageBucket")
    auth_domain: Optional[str] = Field(default=None, alias="authDomain")
    messaging_sender_id: Optional[str] = Field(default=None, alias="messagingSenderId")
    app_id: Optional[str] = Field(default=None, alias="appId")

    @field_validator("api_key", "project_id", "storage_bucket")
    @classmethod
    def must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("backend configuration is missing required fields")
        return v.strip()

    def public_view(self) -> dict:
        """Return the blob with the API key masked."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        key = data.get("apiKey", "")
        data["apiKey"] = (key[:4] + "…") if len(key) > 4 else "…"
        return data


class AppConfig(BaseModel):
    backend: BackendConfig
    database_url: str = Field(default="sqlite+pysqlite:///:memory:")
    seed_path: Path = Field(default=Path("resumeData.json"))
    config_dir: Path = Field(default=CONFIG_DIR)
    admin_email: str = Field(default="admin@portfolio.dev")
    admin_password: Optional[str] = None
    admin_password_hash: Optional[str] = None
    session_secret: Optional[str] = None
    session_ttl_minutes: int = Field(default=60 * 12, gt=0)
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])
    message_ttl_seconds: float = Field(default=5.0, gt=0)
    log_level: str = Field(default="INFO")

    @field_validator("database_url")
    @classmethod
    def database_url_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database_url must be a non-empty string")
        return v


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def parse_backend_config(text: str) -> BackendConfig:
    """Parse and validate a backend JSON blob.

    Raises ConfigError for empty input, malformed JSON or missing fields.
    """
    if not text or not text.strip():
        raise ConfigError("Please enter a valid backend configuration")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON format: {e.msg}") from e
    if not isinstance(data, dict):
        raise ConfigError("Backend configuration must be a JSON object")
    try:
        return BackendConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigError("Configuration is missing required fields", detail={"errors": e.errors(include_url=False, include_context=False)}) from e


def load_backend_config(config_dir: Path = CONFIG_DIR, base: Optional[dict] = None) -> BackendConfig:
    raw = _env("PORTFOLIO_BACKEND_CONFIG") or _read_config_file(config_dir, BACKEND_OVERRIDE_FILE)
    if raw:
        return parse_backend_config(raw)
    blob = (base or {}).get("backend")
    if isinstance(blob, dict):
        return BackendConfig.model_validate(blob)
    return BackendConfig.model_validate(_DEV_BACKEND)


def load_config(config_dir: Optional[Path] = None, root_config: Optional[Path] = None) -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) portfolio_config.json at project root (primary base)
    4) Safe defaults for development
    """
    config_dir = Path(_env("PORTFOLIO_CONFIG_DIR") or config_dir or CONFIG_DIR)
    base = _read_json_file(Path(root_config or ROOT_PORTFOLIO_CONFIG))

    def _base(key: str, default: Optional[str] = None) -> Optional[str]:
        value = base.get(key)
        return str(value) if value is not None else default

    database_url = (
        _env("DATABASE_URL")
        or _read_config_file(config_dir, "database.url")
        or _base("database_url")
        or "sqlite+pysqlite:///:memory:"
    )
    seed_path = _env("PORTFOLIO_SEED_PATH") or _read_config_file(config_dir, "seed.path") or _base("seed_path", "resumeData.json")
    origins_text = _env("PORTFOLIO_ALLOWED_ORIGINS") or _read_config_file(config_dir, "cors.origins")
    if origins_text is None and isinstance(base.get("allowed_origins"), list):
        origins = [str(o) for o in base["allowed_origins"]]
    else:
        origins_text = origins_text or _base("allowed_origins", "*")
        origins = [o.strip() for o in str(origins_text).split(",") if o.strip()]

    try:
        cfg = AppConfig(
            backend=load_backend_config(config_dir, base),
            database_url=database_url,
            seed_path=Path(str(seed_path)),
            config_dir=config_dir,
            admin_email=_env("PORTFOLIO_ADMIN_EMAIL") or _base("admin_email", "admin@portfolio.dev"),
            admin_password=_env("PORTFOLIO_ADMIN_PASSWORD") or _read_config_file(config_dir, "admin.password"),
            admin_password_hash=_env("PORTFOLIO_ADMIN_PASSWORD_HASH") or _base("admin_password_hash"),
            session_secret=_env("PORTFOLIO_SESSION_SECRET") or _read_config_file(config_dir, "session.secret") or _base("session_secret"),
            session_ttl_minutes=int(_env("PORTFOLIO_SESSION_TTL_MINUTES") or _base("session_ttl_minutes", "720")),
            max_upload_bytes=int(_env("PORTFOLIO_MAX_UPLOAD_BYTES") or _base("max_upload_bytes", str(10 * 1024 * 1024))),
            allowed_origins=origins or ["*"],
            log_level=_env("PORTFOLIO_LOG_LEVEL") or _base("log_level", "INFO"),
        )
        return cfg
    except PydanticValidationError as e:
        # Surface actionable message
        logger.error("Invalid application configuration: %s", e)
        raise


def apply_backend_override(text: str, config_dir: Path = CONFIG_DIR) -> BackendConfig:
    """Validate and persist a replacement backend blob.

    The running application keeps its current connections; callers must tell
    the operator that a restart is required.
    """
    cfg = parse_backend_config(text)
    config_dir.mkdir(parents=True, exist_ok=True)
    path = config_dir / BACKEND_OVERRIDE_FILE
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(cfg.model_dump(by_alias=True, exclude_none=True), indent=2), encoding="utf-8")
    os.replace(tmp_path, path)
    logger.info("backend_config.override_saved path=%s project_id=%s", path, cfg.project_id)
    return cfg


__all__ = [
    "AppConfig",
    "BackendConfig",
    "apply_backend_override",
    "load_backend_config",
    "load_config",
    "parse_backend_config",
]
