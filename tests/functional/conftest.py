"""Functional test bootstrap for the portfolio admin console.

Consoles are built over in-memory stores so every test starts from a known
backend state. ``FlakyDocumentStore`` injects failures into reads, adds and
updates and records every write attempt, which lets tests assert exactly
which backend calls an operation issued.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from portfolio_admin.config import AppConfig, BackendConfig
from portfolio_admin.errors import ReadError, WriteError
from portfolio_admin.logic.console import build_in_memory_console
from portfolio_admin.logic.gateway import RemoteDataGateway
from portfolio_admin.logic.messages import MessageBoard
from portfolio_admin.logic.repository_assets import InMemoryObjectStore
from portfolio_admin.logic.repository_documents import InMemoryDocumentStore

ADMIN_EMAIL = "admin@portfolio.dev"
ADMIN_PASSWORD = "s3cret-pass"


class FlakyDocumentStore(InMemoryDocumentStore):
    """In-memory store with switchable failures and a write log."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.updates: List[Tuple[str, str, Dict[str, Any]]] = []
        self.added: List[Tuple[str, Dict[str, Any]]] = []
        self._fail_update_at: Optional[int] = None
        self._update_calls = 0
        self.fail_reads = 0
        self.fail_add_when: Optional[Callable[[Dict[str, Any]], bool]] = None

    def fail_on_update(self, nth: int) -> None:
        """Fail the ``nth`` update issued from now on (1-based), once."""
        self._fail_update_at = nth
        self._update_calls = 0

    def clear_log(self) -> None:
        self.updates.clear()
        self.added.clear()

    def add(self, collection, data):
        if self.fail_add_when is not None and self.fail_add_when(dict(data)):
            raise WriteError(f"add rejected for {collection}")
        doc_id = super().add(collection, data)
        self.added.append((collection, dict(data)))
        return doc_id

    def get_all(self, collection, order_by=None, descending=False):
        if self.fail_reads > 0:
            self.fail_reads -= 1
            raise ReadError(f"backend unavailable reading {collection}")
        return super().get_all(collection, order_by=order_by, descending=descending)

    def update(self, collection, doc_id, fields):
        self.updates.append((collection, doc_id, dict(fields)))
        self._update_calls += 1
        if self._fail_update_at is not None and self._update_calls == self._fail_update_at:
            self._fail_update_at = None
            raise WriteError(f"update rejected for {collection}/{doc_id}")
        super().update(collection, doc_id, fields)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def put_record(store: InMemoryDocumentStore, collection: str, doc_id: str, **fields: Any) -> Dict[str, Any]:
    """Insert a raw document, bypassing the gateway (as an external writer would)."""
    data = {"id": doc_id, **fields}
    store.store.setdefault(collection, {})[doc_id] = data
    return data


def order_of(store: InMemoryDocumentStore, collection: str = "projects") -> Dict[str, Any]:
    return {doc_id: data.get("displayOrder") for doc_id, data in store.store.get(collection, {}).items()}


@pytest.fixture()
def store() -> FlakyDocumentStore:
    return FlakyDocumentStore()


@pytest.fixture()
def objects() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture()
def gateway(store, objects) -> RemoteDataGateway:
    return RemoteDataGateway(store, objects)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def app_config(tmp_path) -> AppConfig:
    return AppConfig(
        backend=BackendConfig.model_validate(
            {"apiKey": "test-api-key-123", "projectId": "portfolio-test", "storageBucket": "portfolio-test.local"}
        ),
        config_dir=tmp_path / "config",
        seed_path=tmp_path / "resumeData.json",
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        session_secret="functional-test-secret",
    )


@pytest.fixture()
def seed() -> Dict[str, Any]:
    return {
        "main": {
            "name": "Ada Example",
            "bio": "Builds things.",
            "occupation": "[Engineer, Designer]",
        },
        "resume": {
            "skills": [
                {"name": "JavaScript", "level": "90%"},
                {"name": "Docker", "level": "70%"},
                {"name": "Python", "level": "85%"},
                {"name": "Rust", "level": "40%"},
                {"name": "GraphQL", "level": "60%"},
            ],
            "work": [
                {"company": "Acme", "title": "Engineer", "years": "2019 - 2022"},
                {"company": "Globex", "title": "Lead", "years": "2022 - Present"},
            ],
            "education": [
                {"school": "State University", "degree": "BSc", "graduated": "2018"},
            ],
            "certificates": [
                {"course": "Cloud Basics", "school": "Online Academy", "image": "./images/cloud.png"},
            ],
        },
    }


@pytest.fixture()
def console(app_config, store, objects, seed, clock):
    return build_in_memory_console(
        app_config,
        documents=store,
        objects=objects,
        seed=seed,
        messages=MessageBoard(ttl=app_config.message_ttl_seconds, clock=clock),
    )


@pytest.fixture()
def client(console):
    from fastapi.testclient import TestClient

    from portfolio_admin.main import create_app

    with TestClient(create_app(console=console)) as test_client:
        yield test_client


@pytest.fixture()
def auth_headers(client) -> Dict[str, str]:
    resp = client.post("/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}
