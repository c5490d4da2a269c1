"""Tests for the Flask API."""
import io
import json
import time

import pytest
from PIL import Image

from badgegen.web.app import app
from badgegen.web.state import state


@pytest.fixture
def client(tmp_path, fake_qr):
    state.reset_session()
    state.use_store(str(tmp_path / "projects"))
    state.session.qr_cache.generator = fake_qr
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c


def png_upload(size=(300, 480), color=(255, 255, 255, 255)):
    buf = io.BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    buf.seek(0)
    return buf


def upload_template(client):
    return client.post("/api/upload-image", data={"file": (png_upload(), "badge.png")},
                       content_type="multipart/form-data")


def upload_csv(client, text="Prénom,Nom,Email\nAwa,Ndong,awa@example.com\nLise,Obame,\nEric,Mba,\n"):
    return client.post("/api/upload-csv", data={"file": (io.BytesIO(text.encode("utf-8")), "p.csv")},
                       content_type="multipart/form-data")


def test_upload_template(client):
    resp = upload_template(client)
    assert resp.status_code == 200
    assert resp.get_json()["width"] == 300
    assert client.get("/api/background-image").mimetype == "image/png"


def test_upload_rejects_non_image(client):
    resp = client.post("/api/upload-image", data={"file": (io.BytesIO(b"nope"), "x.png")},
                       content_type="multipart/form-data")
    assert resp.status_code == 400
    assert "error" in resp.get_json()


def test_background_missing(client):
    assert client.get("/api/background-image").status_code == 404


def test_cross_origin_post_is_forbidden(client):
    resp = client.post("/api/editor/open", headers={"Origin": "https://evil.example"})
    assert resp.status_code == 403


def test_csv_upload_info_row_and_download(client):
    resp = upload_csv(client)
    body = resp.get_json()
    assert body["row_count"] == 3
    assert body["mappings"] == {"prenom": "Prénom", "nom": "Nom", "email": "Email"}

    info = client.get("/api/csv/info").get_json()
    assert info["loaded"] and info["filename"] == "p.csv"
    assert client.get("/api/csv/row/1").get_json()["row"]["Nom"] == "Obame"
    assert client.get("/api/csv/row/9").status_code == 404

    download = client.get("/api/download-csv")
    assert download.data.startswith(b"\xef\xbb\xbf\"Pr")


def test_mappings(client):
    upload_csv(client)
    resp = client.put("/api/mappings", json={"role": "Email"})
    assert resp.get_json()["overrides"] == {"role": "Email"}
    assert client.put("/api/mappings", json={"bogus": "x"}).status_code == 400
    client.put("/api/mappings", json={"role": None})
    assert client.get("/api/mappings").get_json()["overrides"] == {}


def test_csv_row_edit_add_delete(client):
    assert client.put("/api/csv/row/0", json={"Nom": "X"}).status_code == 400
    upload_csv(client)

    resp = client.put("/api/csv/row/1", json={"Email": "lise@example.com"})
    assert resp.status_code == 200
    assert resp.get_json()["row"] == {"Prénom": "Lise", "Nom": "Obame", "Email": "lise@example.com"}
    assert client.put("/api/csv/row/1", json={"Fax": "1"}).status_code == 400
    assert client.put("/api/csv/row/1", json=["Lise"]).status_code == 400
    assert client.put("/api/csv/row/7", json={"Nom": "X"}).status_code == 404

    added = client.post("/api/csv/row", json={"Prénom": "Paul", "Nom": "Nze"})
    assert added.status_code == 201
    assert added.get_json()["index"] == 3
    assert added.get_json()["total"] == 4
    assert client.get("/api/csv/row/3").get_json()["row"]["Email"] == ""

    deleted = client.delete("/api/csv/row/0")
    assert deleted.get_json()["total"] == 3
    assert client.get("/api/csv/row/0").get_json()["row"]["Prénom"] == "Lise"
    assert client.delete("/api/csv/row/3").status_code == 404

    download = client.get("/api/download-csv").data.decode("utf-8-sig")
    assert "lise@example.com" in download
    assert "Awa" not in download


def test_csv_duplicates(client):
    assert client.get("/api/csv/duplicates").status_code == 400
    upload_csv(client, "Prénom,Nom,Email\nAwa,Ndong,a@example.com\nAwa,Ndong,\nLise,Obame,A@example.com\n")
    dups = client.get("/api/csv/duplicates").get_json()
    assert dups["email"] == {"a@example.com": [0, 2]}
    assert dups["name"] == {"awa ndong": [0, 1]}


def test_editor_requires_open(client):
    assert client.post("/api/editor/nudge", json={"key": "Left"}).status_code == 409
    assert client.get("/api/editor").get_json() == {"open": False}


def test_editor_drag_and_save(client):
    upload_template(client)
    opened = client.post("/api/editor/open").get_json()
    assert opened["state"] == "idle"

    # prenom zone: x 5%..50% of 300px, y 44%..54% of 480px
    down = client.post("/api/editor/pointer", json={"event": "down", "x": 60, "y": 230}).get_json()
    assert down["selected"] == "prenom" and down["state"] == "dragging"
    client.post("/api/editor/pointer", json={"event": "move", "x": 30, "y": 230})
    up = client.post("/api/editor/pointer", json={"event": "up"}).get_json()
    assert up["state"] == "idle"
    assert up["zones"]["textZones"][0]["x"] == pytest.approx(0.0)

    saved = client.post("/api/editor/save").get_json()
    assert saved["zones"]["textZones"][0]["x"] == pytest.approx(0.0)
    assert client.get("/api/zones").get_json()["textZones"][0]["x"] == pytest.approx(0.0)


def test_editor_bad_pointer_event(client):
    client.post("/api/editor/open")
    assert client.post("/api/editor/pointer", json={"event": "hover"}).status_code == 400


def test_editor_zone_crud_and_nudge(client):
    client.post("/api/editor/open")
    added = client.post("/api/editor/zones").get_json()
    zone_id = added["zone_id"]
    assert added["selected"] == zone_id

    nudged = client.post("/api/editor/nudge", json={"key": "ArrowRight", "shift": True}).get_json()
    assert nudged["handled"] is True
    zone = next(z for z in nudged["zones"]["textZones"] if z["id"] == zone_id)
    assert zone["x"] == pytest.approx(0.20)

    ignored = client.post("/api/editor/nudge", json={"key": "ArrowRight", "in_text_input": True}).get_json()
    assert ignored["handled"] is False

    updated = client.put(f"/api/editor/zones/{zone_id}", json={"label": "Badge", "font_size": "7"}).get_json()
    zone = next(z for z in updated["zones"]["textZones"] if z["id"] == zone_id)
    assert zone["label"] == "Badge"
    assert zone["fontSize"] == pytest.approx(0.07)

    deleted = client.delete(f"/api/editor/zones/{zone_id}").get_json()
    assert all(z["id"] != zone_id for z in deleted["zones"]["textZones"])
    assert client.delete("/api/editor/zones/qr").status_code == 400
    assert client.delete("/api/editor/zones/missing").status_code == 404


def test_editor_discard_and_defaults(client):
    client.post("/api/editor/open")
    client.delete("/api/editor/zones/nom")
    restored = client.post("/api/editor/defaults").get_json()
    assert len(restored["zones"]["textZones"]) == 4
    client.delete("/api/editor/zones/nom")
    client.post("/api/editor/discard")
    assert len(client.get("/api/zones").get_json()["textZones"]) == 4


def test_editor_qr_settings(client):
    client.post("/api/editor/open")
    body = client.put("/api/editor/qr", json={"enabled": False, "size": "20"}).get_json()
    assert body["zones"]["qrZone"]["enabled"] is False
    assert body["zones"]["qrZone"]["size"] == pytest.approx(0.20)


def test_previews(client):
    assert client.get("/api/editor/preview").status_code == 400
    upload_template(client)
    upload_csv(client)
    preview = client.get("/api/editor/preview")
    assert preview.mimetype == "image/png"
    assert Image.open(io.BytesIO(preview.data)).size == (300, 480)
    assert client.get("/api/preview/0").status_code == 200
    assert client.get("/api/preview/5").status_code == 404


def test_single_image_download_name(client):
    upload_template(client)
    upload_csv(client)
    resp = client.get("/api/export-single-image/0")
    assert resp.status_code == 200
    assert "Badge_Awa_Ndong.png" in resp.headers["Content-Disposition"]


def test_pdf_export_task(client):
    assert client.post("/api/export-pdf").status_code == 400
    upload_template(client)
    upload_csv(client)
    task_id = client.post("/api/export-pdf").get_json()["task_id"]

    with state.lock:
        task = state.export_tasks[task_id]
    deadline = time.time() + 30
    while time.time() < deadline:
        status = client.get(f"/api/export-pdf/status/{task_id}").get_json()
        if status["status"] != "running":
            break
        time.sleep(0.05)
    assert status["status"] == "done", status
    assert status["progress"] == 3
    assert status["pages"] == 2
    assert task["path"].endswith(".pdf")

    pdf = client.get(f"/api/export-pdf/download/{task_id}")
    assert pdf.data.startswith(b"%PDF")
    assert client.get("/api/export-pdf/status/unknown").status_code == 404


def test_project_lifecycle(client):
    assert client.post("/api/projects", json={"name": " "}).status_code == 400
    created = client.post("/api/projects", json={"name": "DevFest"})
    assert created.status_code == 201
    project_id = created.get_json()["project"]["id"]

    upload_template(client)
    upload_csv(client)
    saved = client.put(f"/api/projects/{project_id}/save").get_json()
    assert saved["project"]["hasTemplate"] is True
    assert saved["project"]["participants"] == 3

    listed = client.get("/api/projects").get_json()["projects"]
    assert [p["id"] for p in listed] == [project_id]

    state.reset_session()
    opened = client.post(f"/api/projects/{project_id}/open").get_json()
    assert opened["ok"]
    assert state.session.template.size == (300, 480)
    assert state.session.csv_data.row_count == 3

    exported = client.get(f"/api/projects/{project_id}/export")
    assert exported.mimetype == "application/json"
    data = json.loads(exported.data)
    assert data["name"] == "DevFest"

    imported = client.post("/api/projects/import", data=exported.data,
                           content_type="application/json")
    assert imported.status_code == 201
    assert imported.get_json()["project"]["id"] != project_id
    assert client.post("/api/projects/import", data="{oops").status_code == 400
    zone_without_id = '{"name": "x", "textZones": [{"x": 0.1}]}'
    assert client.post("/api/projects/import", data=zone_without_id).status_code == 400

    assert client.delete(f"/api/projects/{project_id}").get_json()["ok"]
    assert client.delete(f"/api/projects/{project_id}").status_code == 404
    assert client.post(f"/api/projects/{project_id}/open").status_code == 404
    assert client.put(f"/api/projects/{project_id}/save").status_code == 404
