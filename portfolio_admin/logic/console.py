"""Admin console composition.

``AdminConsole`` wires the gateway, console state, synchronizer, reorder
controller, content service, seed importer and auth provider together.
``build_console`` backs it with the SQL stores from the application config;
``build_in_memory_console`` backs it with dict stores for tests and demos.
"""

from __future__ import annotations

import logging
import secrets
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from portfolio_admin.config import AppConfig, BackendConfig, apply_backend_override
from portfolio_admin.db import ensure_schema, get_engine
from portfolio_admin.errors import ConfigError
from portfolio_admin.logic.auth import AuthProvider, hash_password
from portfolio_admin.logic.bulk_import import SeedImporter, load_seed
from portfolio_admin.logic.collection_sync import CollectionSynchronizer
from portfolio_admin.logic.console_state import ConsoleState
from portfolio_admin.logic.content_service import ContentService
from portfolio_admin.logic.entities import ENTITY_SPECS
from portfolio_admin.logic.gateway import RemoteDataGateway
from portfolio_admin.logic.messages import MessageBoard
from portfolio_admin.logic.reorder import ReorderController
from portfolio_admin.logic.repository_assets import (
    DEFAULT_BASE_URL,
    InMemoryObjectStore,
    ObjectStore,
    SqlObjectStore,
)
from portfolio_admin.logic.repository_documents import (
    DocumentStore,
    InMemoryDocumentStore,
    SqlDocumentStore,
)

logger = logging.getLogger(__name__)

DEV_ADMIN_PASSWORD = "admin123"


class AdminConsole:
    def __init__(
        self,
        gateway: RemoteDataGateway,
        auth: AuthProvider,
        *,
        state: Optional[ConsoleState] = None,
        seed_loader: Optional[Callable[[], Mapping[str, Any]]] = None,
        backend: Optional[BackendConfig] = None,
        config_dir: Path = Path("config"),
    ) -> None:
        self.gateway = gateway
        self.auth = auth
        self.state = state or ConsoleState()
        self.backend = backend
        self.config_dir = config_dir
        self.synchronizer = CollectionSynchronizer(gateway, self.state)
        self.reorder = ReorderController(gateway, self.synchronizer, self.state)
        self.content = ContentService(gateway, self.synchronizer, self.state)
        self.importer = SeedImporter(
            gateway,
            self.state,
            seed_loader or _no_seed,
            self.content.load_collection,
        )
        # Signing out drops the visible message and any open drafts
        auth.subscribe(self._on_session_change)

    def _on_session_change(self, session) -> None:
        if session is None:
            self.state.messages.clear()
            for kind in ENTITY_SPECS:
                self.state.reset_edit_state(kind)

    # -------------------- settings --------------------
    def backend_config(self) -> Dict[str, Any]:
        if self.backend is None:
            return {}
        return self.backend.public_view()

    def override_backend(self, text: str) -> Dict[str, Any]:
        """Validate and persist a replacement backend blob; takes effect on restart."""
        try:
            cfg = apply_backend_override(text, self.config_dir)
        except ConfigError as e:
            self.state.messages.error(e.message)
            raise
        self.state.messages.success("Backend configuration updated. Restart the service to apply it.")
        return {"restart_required": True, "backend": cfg.public_view()}


def _no_seed() -> Mapping[str, Any]:
    return {}


def _admin_hash(config: AppConfig, dev_defaults: bool) -> str:
    if config.admin_password_hash:
        return config.admin_password_hash
    if config.admin_password:
        return hash_password(config.admin_password)
    if not dev_defaults:
        raise ConfigError(
            "No admin credential configured; set PORTFOLIO_ADMIN_PASSWORD or PORTFOLIO_ADMIN_PASSWORD_HASH"
        )
    logger.warning("console.default_admin_password email=%s; set PORTFOLIO_ADMIN_PASSWORD", config.admin_email)
    return hash_password(DEV_ADMIN_PASSWORD)


def _session_secret(config: AppConfig, dev_defaults: bool) -> str:
    if config.session_secret:
        return config.session_secret
    if not dev_defaults:
        raise ConfigError("No session secret configured; set PORTFOLIO_SESSION_SECRET")
    # Sessions do not survive a restart without a configured secret
    logger.warning("console.ephemeral_session_secret; set PORTFOLIO_SESSION_SECRET")
    return secrets.token_urlsafe(32)


def _auth_from_config(config: AppConfig, dev_defaults: bool = False) -> AuthProvider:
    return AuthProvider(
        admin_email=config.admin_email,
        password_hash=_admin_hash(config, dev_defaults),
        secret=_session_secret(config, dev_defaults),
        ttl_minutes=config.session_ttl_minutes,
    )


def build_console(config: AppConfig) -> AdminConsole:
    """Console over the SQL stores at ``config.database_url``.

    Refuses to start without a configured session secret and admin credential.
    """
    auth = _auth_from_config(config)
    engine = get_engine(config.database_url)
    ensure_schema(engine)
    gateway = RemoteDataGateway(
        SqlDocumentStore(engine),
        SqlObjectStore(engine, DEFAULT_BASE_URL),
        max_upload_bytes=config.max_upload_bytes,
    )
    logger.info("console.built backend=sql project_id=%s", config.backend.project_id)
    return AdminConsole(
        gateway,
        auth,
        state=ConsoleState(MessageBoard(ttl=config.message_ttl_seconds)),
        seed_loader=lambda: load_seed(config.seed_path),
        backend=config.backend,
        config_dir=config.config_dir,
    )


def build_in_memory_console(
    config: AppConfig,
    documents: Optional[DocumentStore] = None,
    objects: Optional[ObjectStore] = None,
    seed: Optional[Mapping[str, Any]] = None,
    messages: Optional[MessageBoard] = None,
) -> AdminConsole:
    """Console over dict stores; ``seed`` replaces the seed file when given.

    Without configured credentials the development password is accepted and
    sessions are signed with a per-process random secret.
    """
    gateway = RemoteDataGateway(
        documents if documents is not None else InMemoryDocumentStore(),
        objects if objects is not None else InMemoryObjectStore(),
        max_upload_bytes=config.max_upload_bytes,
    )
    if seed is not None:
        seed_loader: Callable[[], Mapping[str, Any]] = lambda: seed
    else:
        seed_loader = lambda: load_seed(config.seed_path)
    return AdminConsole(
        gateway,
        _auth_from_config(config, dev_defaults=True),
        state=ConsoleState(messages or MessageBoard(ttl=config.message_ttl_seconds)),
        seed_loader=seed_loader,
        backend=config.backend,
        config_dir=config.config_dir,
    )


__all__ = ["AdminConsole", "build_console", "build_in_memory_console"]
