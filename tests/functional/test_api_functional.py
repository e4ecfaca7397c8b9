"""Functional tests for the HTTP surface of the admin console."""

from __future__ import annotations

import json

import pytest

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, put_record

API = "/api/v1"
PNG = b"\x89PNG\r\n\x1a\nbytes"


def _problem(resp, status, code):
    assert resp.status_code == status, resp.text
    assert resp.headers["content-type"].startswith("application/problem+json")
    body = resp.json()
    assert body["status"] == status
    assert body["code"] == code
    return body


# -------------------- service basics --------------------
def test_health_needs_no_session(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.json()["authenticated"] is False


def test_request_id_is_echoed_or_assigned(client):
    echoed = client.get("/health", headers={"X-Request-Id": "trace-42"})
    assigned = client.get("/health")

    assert echoed.headers["X-Request-Id"] == "trace-42"
    assert assigned.headers["X-Request-Id"]


def test_cors_preflight_and_exposed_request_id(client):
    preflight = client.options(
        f"{API}/projects",
        headers={
            "Origin": "https://console.example",
            "Access-Control-Request-Method": "PATCH",
            "Access-Control-Request-Headers": "Authorization",
        },
    )
    simple = client.get("/health", headers={"Origin": "https://console.example"})

    assert preflight.status_code == 200
    assert "PATCH" in preflight.headers["access-control-allow-methods"]
    assert simple.headers["access-control-allow-origin"] == "*"
    assert "X-Request-Id" in simple.headers["access-control-expose-headers"]


@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/projects"),
        ("get", "/skills"),
        ("put", "/profile"),
        ("post", "/import"),
        ("get", "/dashboard"),
        ("get", "/message"),
    ],
)
def test_console_routes_require_a_session(client, method, path):
    resp = getattr(client, method)(API + path)

    body = _problem(resp, 401, "AUTH_FAILED")
    assert body["detail"] == "Not authenticated"
    assert resp.headers["WWW-Authenticate"] == "Bearer"


# -------------------- auth --------------------
def test_login_returns_bearer_session(client):
    resp = client.post(f"{API}/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})

    assert resp.status_code == 200
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["email"] == ADMIN_EMAIL
    status = client.get(f"{API}/auth/session", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert status.json()["authenticated"] is True


def test_bad_password_is_rejected(client, console):
    resp = client.post(f"{API}/auth/login", json={"email": ADMIN_EMAIL, "password": "wrong"})

    _problem(resp, 401, "AUTH_FAILED")
    assert console.state.messages.current().text.startswith("Error logging in")


def test_garbage_token_is_rejected(client):
    resp = client.get(f"{API}/projects", headers={"Authorization": "Bearer not-a-token"})

    _problem(resp, 401, "AUTH_FAILED")


def test_logout_revokes_token_and_clears_drafts(client, console, auth_headers):
    client.post(f"{API}/drafts/skill", headers=auth_headers)

    resp = client.post(f"{API}/auth/logout", headers=auth_headers)

    assert resp.json() == {"signed_out": True}
    assert console.state.edit_state("skill").mode == "idle"
    assert console.state.messages.current().text == "Logged out successfully!"
    _problem(client.get(f"{API}/projects", headers=auth_headers), 401, "AUTH_FAILED")
    assert client.get(f"{API}/auth/session", headers=auth_headers).json() == {"authenticated": False}


# -------------------- projects --------------------
def test_project_crud_round(client, auth_headers):
    created = client.post(f"{API}/projects", json={"title": "Site", "category": "Web"}, headers=auth_headers)
    assert created.status_code == 201
    record = created.json()
    assert record["displayOrder"] == 1

    patched = client.patch(f"{API}/projects/{record['id']}", json={"title": "Site v2"}, headers=auth_headers)
    assert patched.json()["title"] == "Site v2"

    listed = client.get(f"{API}/projects", headers=auth_headers).json()
    assert [p["title"] for p in listed["items"]] == ["Site v2"]

    deleted = client.delete(f"{API}/projects/{record['id']}", headers=auth_headers)
    assert deleted.status_code == 204
    assert client.get(f"{API}/projects", headers=auth_headers).json()["count"] == 0


def test_listing_projects_repairs_order(client, store, auth_headers):
    put_record(store, "projects", "a", title="A", displayOrder=7, createdAt="2024-01-01T00:00:00+00:00")
    put_record(store, "projects", "b", title="B", displayOrder=3, createdAt="2024-02-01T00:00:00+00:00")

    body = client.get(f"{API}/projects", headers=auth_headers).json()

    assert [(p["id"], p["displayOrder"]) for p in body["items"]] == [("b", 1), ("a", 2)]
    assert body["repair"] == "compact"
    assert body["repair_writes"] == 2


def test_reorder_accepts_drag_gesture_body(client, store, auth_headers):
    for i, doc_id in enumerate(["p1", "p2", "p3"], start=1):
        put_record(store, "projects", doc_id, title=doc_id, displayOrder=i)
    client.get(f"{API}/projects", headers=auth_headers)

    resp = client.post(
        f"{API}/projects/reorder", json={"sourceIndex": 2, "destinationIndex": 0}, headers=auth_headers
    )

    assert resp.status_code == 200
    body = resp.json()
    assert [p["id"] for p in body["items"]] == ["p3", "p1", "p2"]
    assert body["moved"] is True
    assert body["writes"] == 3
    assert store.store["projects"]["p3"]["displayOrder"] == 1


def test_reorder_with_nothing_loaded_conflicts(client, auth_headers):
    resp = client.post(f"{API}/projects/reorder", json={"sourceIndex": 0, "destinationIndex": 1}, headers=auth_headers)

    _problem(resp, 409, "REORDER_INVALID")


def test_reorder_body_must_carry_indices(client, auth_headers):
    resp = client.post(f"{API}/projects/reorder", json={"sourceIndex": 0}, headers=auth_headers)

    body = _problem(resp, 422, "REQUEST_INVALID")
    assert body["errors"]


# -------------------- collections and profile --------------------
@pytest.mark.parametrize(
    "collection, payload",
    [
        ("certificates", {"course": "Cloud", "school": "Academy"}),
        ("skills", {"name": "Go", "level": "50%", "category": "Backend"}),
        ("work", {"company": "Acme", "title": "Dev", "years": "2020 - 2022"}),
        ("education", {"school": "MIT", "degree": "BSc", "graduated": "2019"}),
    ],
)
def test_collection_crud(client, auth_headers, collection, payload):
    created = client.post(f"{API}/{collection}", json=payload, headers=auth_headers)
    assert created.status_code == 201
    record_id = created.json()["id"]

    updated = client.patch(f"{API}/{collection}/{record_id}", json={"description": "x"}, headers=auth_headers)
    assert updated.json()["description"] == "x"
    assert client.get(f"{API}/{collection}", headers=auth_headers).json()["count"] == 1

    assert client.delete(f"{API}/{collection}/{record_id}", headers=auth_headers).status_code == 204
    assert client.get(f"{API}/{collection}", headers=auth_headers).json()["items"] == []


def test_missing_required_fields_are_unprocessable(client, store, auth_headers):
    resp = client.post(f"{API}/skills", json={"name": "Go"}, headers=auth_headers)

    body = _problem(resp, 422, "VALIDATION_FAILED")
    assert body["detail"] == "Name, level, and category are required"
    assert body["context"]["missing"] == ["level", "category"]
    assert store.added == []


def test_update_of_unknown_record_is_not_found(client, auth_headers):
    resp = client.patch(f"{API}/work/ghost", json={"company": "X"}, headers=auth_headers)

    _problem(resp, 404, "RECORD_NOT_FOUND")


def test_profile_put_then_get(client, auth_headers):
    put = client.put(f"{API}/profile", json={"name": "Ada", "bio": "Hi"}, headers=auth_headers)
    assert put.json()["profile"]["name"] == "Ada"

    got = client.get(f"{API}/profile", headers=auth_headers).json()

    assert got["profile"]["bio"] == "Hi"
    assert got["profile"]["id"] == "profile"


# -------------------- drafts and uploads --------------------
def test_project_draft_flow(client, store, auth_headers):
    opened = client.post(f"{API}/drafts/project", headers=auth_headers)
    assert opened.json()["mode"] == "creating"

    client.patch(f"{API}/drafts/project", json={"title": "Draft", "category": "Web"}, headers=auth_headers)
    client.post(f"{API}/drafts/project/tags", json={"tag": " api "}, headers=auth_headers)
    client.post(f"{API}/drafts/project/tags", json={"tag": "ui"}, headers=auth_headers)
    removed = client.delete(f"{API}/drafts/project/tags/ui", headers=auth_headers)
    assert removed.json()["draft"]["tags"] == ["api"]

    saved = client.post(f"{API}/drafts/project/save", headers=auth_headers).json()

    assert saved["mode"] == "idle"
    assert saved["record"]["tags"] == ["api"]
    assert list(store.store["projects"]) == [saved["record"]["id"]]


def test_edit_draft_opens_existing_record(client, store, auth_headers):
    put_record(store, "skills", "s1", name="Go", level="50%", category="Backend")

    opened = client.post(f"{API}/drafts/skill/s1", headers=auth_headers).json()

    assert opened["mode"] == "editing"
    assert opened["record_id"] == "s1"
    assert client.delete(f"{API}/drafts/skill", headers=auth_headers).status_code == 204
    assert client.get(f"{API}/drafts/skill", headers=auth_headers).json() == {"mode": "idle"}


def test_saving_idle_draft_is_unprocessable(client, auth_headers):
    _problem(client.post(f"{API}/drafts/work/save", headers=auth_headers), 422, "VALIDATION_FAILED")


def test_upload_then_fetch_asset_publicly(client, auth_headers):
    resp = client.post(
        f"{API}/uploads/project",
        params={"thumb": "true"},
        files=[("files", ("cover.png", PNG, "image/png"))],
        headers=auth_headers,
    )

    assert resp.status_code == 200, resp.text
    body = resp.json()
    url = body["uploaded"][0]["url"]
    assert url == "/assets/portfolio/thumbnails/cover.png"
    assert body["draft"]["thumbnail"] == url
    asset = client.get(url)
    assert asset.status_code == 200
    assert asset.content == PNG
    assert asset.headers["content-type"] == "image/png"
    assert asset.headers["x-content-type-options"] == "nosniff"
    assert "sandbox" in asset.headers["content-security-policy"]


def test_upload_reports_rejected_files(client, auth_headers):
    resp = client.post(
        f"{API}/uploads/certificate",
        files=[
            ("files", ("ok.png", PNG, "image/png")),
            ("files", ("notes.txt", b"text", "text/plain")),
        ],
        headers=auth_headers,
    )

    body = resp.json()
    assert [a["name"] for a in body["uploaded"]] == ["ok.png"]
    assert body["failed"] == ["notes.txt"]


def test_missing_asset_is_not_found(client):
    _problem(client.get("/assets/misc/nothing.png"), 404, "RECORD_NOT_FOUND")


# -------------------- import --------------------
def test_import_all_reports_every_section(client, auth_headers):
    body = client.post(f"{API}/import", headers=auth_headers).json()

    assert body["ok"] is True
    assert [r["section"] for r in body["reports"]] == ["profile", "skills", "work", "education", "certificates"]


def test_import_section_reports_partial_success(client, store, auth_headers):
    store.fail_add_when = lambda data: data.get("company") == "Globex"

    body = client.post(f"{API}/import/work", headers=auth_headers).json()

    assert body["success_count"] == 1
    assert body["total_count"] == 2


def test_import_missing_section_is_unprocessable(client, seed, auth_headers):
    seed["resume"].pop("skills")

    body = _problem(client.post(f"{API}/import/skills", headers=auth_headers), 422, "SEED_SECTION_MISSING")
    assert body["context"] == {"section": "skills"}


# -------------------- console --------------------
def test_message_endpoint_shows_latest_message(client, auth_headers):
    client.post(f"{API}/skills", json={"name": "Go", "level": "1", "category": "Backend"}, headers=auth_headers)

    body = client.get(f"{API}/message", headers=auth_headers).json()

    assert body["message"] == {"text": "Skill created successfully!", "severity": "success"}
    assert body["busy"]["save"] is False


def test_message_expires(client, clock, auth_headers):
    clock.advance(5.0)

    assert client.get(f"{API}/message", headers=auth_headers).json()["message"] is None


def test_dashboard_reports_connection(client, auth_headers):
    body = client.get(f"{API}/dashboard", headers=auth_headers).json()

    assert body["connected"] is True
    assert set(body["counts"]) == {"projects", "certificates", "skills", "work", "education"}


def test_reload_endpoint(client, store, auth_headers):
    put_record(store, "work", "w", company="A", title="B", years="2020")

    body = client.post(f"{API}/settings/reload", headers=auth_headers).json()

    assert body["counts"]["work"] == 1


def test_backend_config_is_masked(client, auth_headers):
    body = client.get(f"{API}/settings/backend-config", headers=auth_headers).json()

    assert body["backend"]["apiKey"] == "test…"
    assert body["backend"]["projectId"] == "portfolio-test"


def test_backend_override_is_persisted(client, app_config, auth_headers):
    blob = {"apiKey": "new-key-000", "projectId": "moved", "storageBucket": "moved.bucket"}

    resp = client.put(f"{API}/settings/backend-config", json={"config": json.dumps(blob)}, headers=auth_headers)

    assert resp.json()["restart_required"] is True
    stored = json.loads((app_config.config_dir / "backend.json").read_text(encoding="utf-8"))
    assert stored["projectId"] == "moved"


def test_backend_override_rejects_invalid_blob(client, app_config, auth_headers):
    resp = client.put(f"{API}/settings/backend-config", json={"config": "{}"}, headers=auth_headers)

    _problem(resp, 422, "CONFIG_INVALID")
    assert not (app_config.config_dir / "backend.json").exists()
