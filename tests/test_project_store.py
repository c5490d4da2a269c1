"""Tests for the JSON-file project store."""
import json
import os
import time

import pytest

from badgegen.models.project_store import (
    Project, ProjectNotFound, ProjectStore, make_project_id,
)
from badgegen.models.zones import ZoneModel, default_zone_model


@pytest.fixture
def store(tmp_path):
    return ProjectStore(str(tmp_path / "projects"))


def test_project_id_is_slug_plus_millis():
    pid = make_project_id("  DevFest   Libreville 2025 ")
    slug, _, millis = pid.rpartition("-")
    assert slug == "devfest-libreville-2025"
    assert millis.isdigit() and len(millis) >= 13


def test_create_and_get(store):
    project = store.create("DevFest")
    loaded = store.get(project.id)
    assert loaded.name == "DevFest"
    assert loaded.zones == default_zone_model()
    assert loaded.template_png is None


def test_empty_name_rejected(store):
    with pytest.raises(ValueError):
        store.create("   ")


def test_get_missing_returns_none(store):
    assert store.get("nope") is None


def test_update_persists_and_bumps_timestamp(store):
    project = store.create("Meetup")
    time.sleep(0.002)
    updated = store.update(project.id, csv_headers=["Nom"], csv_rows=[{"Nom": "Mba"}],
                           template_png=b"\x89PNG-data", template_width=10, template_height=20)
    assert updated.updated_at > project.updated_at
    loaded = store.get(project.id)
    assert loaded.csv_rows == [{"Nom": "Mba"}]
    assert loaded.template_png == b"\x89PNG-data"
    assert (loaded.template_width, loaded.template_height) == (10, 20)


def test_update_missing_project(store):
    with pytest.raises(ProjectNotFound):
        store.update("ghost", name="x")


def test_update_unknown_attribute(store):
    project = store.create("Meetup")
    with pytest.raises(AttributeError):
        store.update(project.id, colour="red")


def test_list_all_most_recent_first(store):
    first = store.create("First")
    time.sleep(0.002)
    store.create("Second")
    time.sleep(0.002)
    store.update(first.id, name="First again")
    names = [p.name for p in store.list_all()]
    assert names == ["First again", "Second"]


def test_list_all_skips_broken_files(store):
    store.create("Good")
    with open(os.path.join(store.directory, "broken.json"), "w") as f:
        f.write("{not json")
    assert [p.name for p in store.list_all()] == ["Good"]


def test_delete(store):
    project = store.create("Gone")
    store.delete(project.id)
    assert store.get(project.id) is None
    store.delete(project.id)


def test_empty_zone_list_survives_round_trip(store):
    project = store.create("Blank")
    store.update(project.id, zones=ZoneModel(text_zones=[]))
    assert store.get(project.id).zones.text_zones == []


def test_export_embeds_images_as_data_urls(store):
    project = store.create("Export")
    store.update(project.id, logo_png=b"logo-bytes", template_png=b"tpl")
    data = json.loads(store.export_json(project.id))
    assert data["logo"].startswith("data:image/png;base64,")
    assert data["template"]["imageData"].startswith("data:image/png;base64,")
    assert "textZones" in data and "qrZone" in data
    assert data["createdAt"] and data["updatedAt"]


def test_export_missing_project(store):
    with pytest.raises(ProjectNotFound):
        store.export_json("ghost")


def test_import_assigns_new_id_and_timestamps(store):
    project = store.create("Shared")
    store.update(project.id, logo_png=b"logo-bytes", column_mappings={"role": "Ticket"})
    exported = store.export_json(project.id)
    time.sleep(0.002)

    imported = store.import_json(exported)
    assert imported.id != project.id
    assert imported.name == "Shared"
    assert imported.logo_png == b"logo-bytes"
    assert imported.column_mappings == {"role": "Ticket"}
    assert imported.created_at > json.loads(exported)["createdAt"]
    assert len(store.list_all()) == 2


@pytest.mark.parametrize("text", [
    "{broken",
    "[]",
    '{"id": "x"}',
    '{"name": 5}',
    '{"name": "x", "textZones": [{"x": 0.1}]}',
    '{"name": "x", "textZones": [{"id": "a", "width": "wide"}]}',
    '{"name": "x", "textZones": 5}',
    '{"name": "x", "textZones": [], "qrZone": {"size": [1]}}',
])
def test_import_rejects_bad_documents(store, text):
    with pytest.raises(ValueError):
        store.import_json(text)


def test_project_dict_without_zones_gets_defaults():
    project = Project.from_dict({"id": "p", "name": "Old"})
    assert project.zones == default_zone_model()
    assert project.csv_rows == []


def test_rejected_import_writes_nothing(store):
    with pytest.raises(ValueError):
        store.import_json('{"name": "x", "textZones": [{"x": 0.1}]}')
    assert store.list_all() == []


def test_imported_geometry_is_clamped(store):
    text = json.dumps({
        "name": "Squashed",
        "textZones": [{"id": "a", "x": 0.98, "y": -0.2, "width": 0.0, "height": -0.05}],
    })
    zone = store.import_json(text).zones.get_zone("a")
    assert zone.width == pytest.approx(0.05)
    assert zone.height == pytest.approx(0.05)
    assert zone.x == pytest.approx(0.95)
    assert zone.y == 0.0
