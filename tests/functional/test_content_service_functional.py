"""Functional tests for entity CRUD, drafts, uploads and console state."""

from __future__ import annotations

import pytest

from conftest import put_record
from portfolio_admin.errors import BusyError, NotFoundError, UploadError, ValidationError
from portfolio_admin.logic.content_service import FALLBACK_DISPLAY_ORDER, IncomingFile, sort_by_field
from portfolio_admin.logic.edit_state import Creating, Editing, Idle
from portfolio_admin.logic.entities import get_spec, validate_required
from portfolio_admin.logic.messages import MessageBoard

PNG = b"\x89PNG\r\n\x1a\nfake"


def _added(store, collection):
    return [data for name, data in store.added if name == collection]


# -------------------- validation --------------------
@pytest.mark.parametrize(
    "kind, payload, message",
    [
        ("project", {"title": "Site"}, "Title and category are required"),
        ("certificate", {"course": " "}, "Course and school are required"),
        ("skill", {"name": "Go"}, "Name, level, and category are required"),
        ("work", {}, "Company, title, and years are required"),
        ("education", {"school": "MIT", "degree": "BSc"}, "School, degree, and graduation year are required"),
    ],
)
def test_missing_required_fields_block_the_write(console, store, kind, payload, message):
    with pytest.raises(ValidationError) as excinfo:
        console.content.create(kind, payload)

    assert str(excinfo.value) == message
    assert store.added == []
    assert console.state.messages.current().text == message


def test_validation_reports_missing_field_names():
    with pytest.raises(ValidationError) as excinfo:
        validate_required(get_spec("profile"), {"name": "Ada", "bio": ""})

    assert excinfo.value.missing == ["bio"]


def test_unknown_kind_is_a_validation_error(console):
    with pytest.raises(ValidationError):
        console.content.create("hobby", {"name": "chess"})

    assert console.state.messages.current().text == "Unknown entity kind: hobby"


# -------------------- projects --------------------
def test_first_project_gets_display_order_one(console, store):
    created = console.content.create("project", {"title": "Site", "category": "Web"})

    assert _added(store, "projects")[0]["displayOrder"] == 1
    assert created["displayOrder"] == 1
    assert created["tags"] == []
    assert console.state.messages.current().text == "Project created successfully!"


def test_new_project_goes_after_current_maximum(console, store):
    put_record(store, "projects", "a", title="A", category="Web", displayOrder=1)
    put_record(store, "projects", "b", title="B", category="Web", displayOrder=2)

    console.content.create("project", {"title": "C", "category": "Web", "displayOrder": ""})

    assert _added(store, "projects")[0]["displayOrder"] == 3
    assert [r["title"] for r in console.state.get_collection("projects")] == ["A", "B", "C"]


def test_display_order_falls_back_when_maximum_is_unknown(console, store):
    store.fail_reads = 1

    console.content.create("project", {"title": "C", "category": "Web"})

    assert _added(store, "projects")[0]["displayOrder"] == FALLBACK_DISPLAY_ORDER


def test_explicit_display_order_is_kept(console, store):
    console.content.create("project", {"title": "C", "category": "Web", "displayOrder": "4"})

    assert _added(store, "projects")[0]["displayOrder"] == 4


def test_non_numeric_display_order_posts_an_error(console, store):
    with pytest.raises(ValidationError):
        console.content.create("project", {"title": "t", "category": "c", "displayOrder": "abc"})

    assert store.added == []
    message = console.state.messages.current()
    assert message.severity == "error"
    assert message.text == "Display order must be a number"


def test_project_update_coerces_display_order(console, store):
    put_record(store, "projects", "a", title="A", category="Web", displayOrder=1)
    put_record(store, "projects", "b", title="B", category="Web", displayOrder=2)

    console.content.update("project", "b", {"displayOrder": "2", "title": "B2"})

    _, doc_id, fields = store.updates[0]
    assert doc_id == "b"
    assert fields["displayOrder"] == 2
    assert isinstance(fields["displayOrder"], int)
    assert store.store["projects"]["b"]["title"] == "B2"


def test_project_update_rejects_non_numeric_order(console, store):
    put_record(store, "projects", "a", title="A", category="Web", displayOrder=1)

    with pytest.raises(ValidationError):
        console.content.update("project", "a", {"displayOrder": "first"})

    assert console.state.messages.current().severity == "error"
    assert store.updates == []


def test_update_of_missing_record(console):
    with pytest.raises(NotFoundError):
        console.content.update("skill", "nope", {"name": "Go"})


def test_delete_then_reload_compacts_order(console, store):
    for i, doc_id in enumerate(["a", "b", "c"], start=1):
        put_record(store, "projects", doc_id, title=doc_id, category="Web", displayOrder=i)

    console.content.delete("project", "b")

    held = console.state.get_collection("projects")
    assert [(r["id"], r["displayOrder"]) for r in held] == [("a", 1), ("c", 2)]
    assert console.state.messages.current().text == "Project deleted successfully"


# -------------------- other collections --------------------
def test_collections_load_in_client_order(console, store):
    put_record(store, "work", "w1", company="A", title="Dev", years="2015 - 2018")
    put_record(store, "work", "w2", company="B", title="Dev", years="2020 - 2023")
    put_record(store, "work", "w3", company="C", title="Dev")

    records = console.content.load("work")

    assert [r["id"] for r in records] == ["w2", "w1", "w3"]


def test_sort_by_field_puts_missing_values_last():
    records = [{"g": "2018"}, {}, {"g": "2021"}, {"g": ""}]

    assert sort_by_field(records, "g", descending=True)[:2] == [{"g": "2021"}, {"g": "2018"}]
    assert sort_by_field(records, "g")[0] == {"g": "2018"}
    assert sort_by_field(records, "g")[-2:] == [{}, {"g": ""}]


def test_profile_save_and_load(console, store):
    saved = console.content.save_profile({"name": "Ada", "bio": "Hello"})

    assert saved["name"] == "Ada"
    assert store.store["main"]["profile"]["bio"] == "Hello"
    assert console.content.load_profile()["name"] == "Ada"
    assert console.state.messages.current().text == "Profile updated successfully!"


def test_profile_requires_name_and_bio(console):
    with pytest.raises(ValidationError, match="Name and bio are required"):
        console.content.save_profile({"name": "Ada"})


# -------------------- drafts --------------------
def test_create_draft_save_returns_to_idle(console, store):
    console.content.open_create("skill")
    console.content.update_draft("skill", {"name": "Go", "level": "60%"})

    saved = console.content.save_draft("skill")

    assert saved["name"] == "Go"
    assert saved["category"] == "Frontend"
    assert isinstance(console.state.edit_state("skill"), Idle)
    assert [r["name"] for r in console.state.get_collection("skills")] == ["Go"]


def test_edit_draft_save_updates_record(console, store):
    put_record(store, "certificates", "c1", course="Old", school="Academy")
    console.content.load("certificate")

    state = console.content.open_edit("certificate", "c1")
    assert isinstance(state, Editing)
    console.content.update_draft("certificate", {"course": "New"})
    console.content.save_draft("certificate")

    assert store.store["certificates"]["c1"]["course"] == "New"
    assert console.state.messages.current().text == "Certificate updated successfully!"


def test_saving_without_open_form_fails(console):
    with pytest.raises(ValidationError):
        console.content.save_draft("work")

    assert console.state.messages.current().text == "No open form to save"


def test_tags_are_trimmed_and_deduplicated(console):
    console.content.open_create("project")
    console.content.add_draft_tag("project", " react ")
    console.content.add_draft_tag("project", "react")
    console.content.add_draft_tag("project", "   ")
    state = console.content.add_draft_tag("project", "python")

    assert state.draft["tags"] == ["react", "python"]
    state = console.content.remove_draft_tag("project", "react")
    assert state.draft["tags"] == ["python"]


def test_cancel_edit_discards_draft(console):
    console.content.open_create("education")
    console.content.cancel_edit("education")

    assert isinstance(console.state.edit_state("education"), Idle)


# -------------------- uploads --------------------
def test_multi_file_upload_skips_rejected_files(console, objects):
    files = [
        IncomingFile("one.png", PNG, "image/png"),
        IncomingFile("empty.png", b"", "image/png"),
        IncomingFile("two.png", PNG, "image/png"),
    ]

    report = console.content.upload("project", files)

    assert [a["name"] for a in report.uploaded] == ["one.png", "two.png"]
    assert report.failed == ["empty.png"]
    assert report.progress == 100
    assert set(objects.store) == {"portfolio/details/one.png", "portfolio/details/two.png"}
    state = console.state.edit_state("project")
    assert isinstance(state, Creating)
    assert state.draft["images"] == [a["url"] for a in report.uploaded]
    assert console.state.messages.current().severity == "error"


def test_thumbnail_upload_sets_project_thumbnail(console, objects):
    report = console.content.upload("project", [IncomingFile("t.png", PNG, "image/png")], is_thumb=True)

    assert "portfolio/thumbnails/t.png" in objects.store
    assert report.draft["thumbnail"] == report.uploaded[0]["url"]
    assert console.state.messages.current().text == "Images uploaded successfully!"


def test_certificate_upload_sets_image_on_open_draft(console):
    console.content.open_create("certificate")
    console.content.update_draft("certificate", {"course": "Cloud"})

    report = console.content.upload("certificate", [IncomingFile("c.png", PNG, "image/png")])

    assert report.uploaded[0]["path"] == "certificates/c.png"
    draft = console.state.edit_state("certificate").draft
    assert draft["course"] == "Cloud"
    assert draft["image"] == report.uploaded[0]["url"]


def test_profile_upload_opens_profile_edit(console):
    report = console.content.upload("profile", [IncomingFile("me.png", PNG, "image/png")])

    state = console.state.edit_state("profile")
    assert isinstance(state, Editing)
    assert state.record_id == "profile"
    assert state.draft["image"] == report.uploaded[0]["url"]


def test_unknown_kind_uploads_to_misc(console, objects):
    report = console.content.upload("banner", [IncomingFile("b.png", PNG, "image/png")])

    assert report.uploaded[0]["path"] == "misc/b.png"
    assert report.draft is None


def test_upload_without_files_fails(console):
    with pytest.raises(UploadError):
        console.content.upload("project", [])

    assert console.state.messages.current().text == "No files selected"
    assert console.state.messages.current().severity == "error"


# -------------------- console-wide --------------------
def test_dashboard_probes_and_counts(console, store):
    put_record(store, "skills", "s1", name="Go", level="1", category="Backend")

    info = console.content.dashboard()

    assert info["connected"] is True
    assert info["counts"]["skills"] == 1
    assert info["counts"]["projects"] == 0
    assert info["errors"] == {}


def test_reload_all_fills_every_collection(console, store):
    put_record(store, "projects", "p", title="P", category="Web", displayOrder=1)
    put_record(store, "education", "e", school="S", degree="D", graduated="2010")

    result = console.content.reload_all()

    assert result["counts"]["projects"] == 1
    assert result["counts"]["education"] == 1
    assert result["errors"] == {}
    assert console.state.messages.current().text == "All data loaded successfully"


def test_save_refused_while_save_in_flight(console, store):
    with console.state.busy.guard("save"):
        with pytest.raises(BusyError):
            console.content.create("skill", {"name": "Go", "level": "1", "category": "Backend"})

    assert store.added == []


def test_unrelated_families_do_not_block_each_other(console):
    with console.state.busy.guard("upload"):
        created = console.content.create("skill", {"name": "Go", "level": "1", "category": "Backend"})

    assert created["name"] == "Go"


def test_message_expires_after_ttl_and_newest_replaces(clock):
    board = MessageBoard(ttl=5.0, clock=clock)
    board.info("Loading...")
    board.success("Done")

    assert board.current().text == "Done"
    clock.advance(4.9)
    assert board.current().severity == "success"
    clock.advance(0.1)
    assert board.current() is None


def test_message_rejects_unknown_severity(clock):
    with pytest.raises(ValueError):
        MessageBoard(clock=clock).show("hi", "warning")


@pytest.mark.parametrize(
    "operation",
    [
        lambda content: content.update_draft("skill", {"name": "Go"}),
        lambda content: content.add_draft_tag("project", "react"),
        lambda content: content.remove_draft_tag("project", "react"),
        lambda content: content.open_create("profile"),
        lambda content: content.cancel_edit("hobby"),
    ],
    ids=["update-draft", "add-tag", "remove-tag", "profile-as-list", "unknown-kind"],
)
def test_rejected_form_operations_post_an_error(console, operation):
    with pytest.raises(ValidationError) as excinfo:
        operation(console.content)

    message = console.state.messages.current()
    assert message.severity == "error"
    assert message.text == excinfo.value.message
