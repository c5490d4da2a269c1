"""Flask application for the web badge generator."""

import logging
import os
import tempfile
import threading
import uuid
from io import BytesIO
from urllib.parse import urlparse

from flask import Flask, jsonify, request, send_file
from PIL import Image

from badgegen import __version__, config
from badgegen.export.pdf_export import export_badges_pdf
from badgegen.models.csv_data import CSVData
from badgegen.models.fields import BADGE_FIELDS, badge_filename, detect_mappings
from badgegen.models.project_store import ProjectNotFound
from badgegen.models.zone_editor import QR_ZONE_ID
from badgegen.utils.fonts import get_font_families
from badgegen.utils.log import setup_logging
from badgegen.web.state import state

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = os.urandom(32)
app.config['MAX_CONTENT_LENGTH'] = config.MAX_UPLOAD_MB * 1024 * 1024

ALLOWED_HOSTS = {"localhost", "127.0.0.1"}


@app.before_request
def csrf_check():
    """Reject non-GET/HEAD/OPTIONS requests with a foreign Origin or Referer."""
    if request.method in ("GET", "HEAD", "OPTIONS"):
        return
    origin = request.headers.get("Origin") or request.headers.get("Referer")
    if origin:
        host = urlparse(origin).hostname
        if host not in ALLOWED_HOSTS:
            return jsonify(error="Forbidden: cross-origin request"), 403


# Temp directory for exports
EXPORT_DIR = os.path.join(tempfile.gettempdir(), "badgegen_web")
os.makedirs(EXPORT_DIR, exist_ok=True)


def _png_response(img: Image.Image, download_name=None):
    buf = BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    if download_name:
        return send_file(buf, mimetype="image/png", as_attachment=True, download_name=download_name)
    return send_file(buf, mimetype="image/png")


def _read_upload_image():
    """Image from the ``file`` form field, or an error response tuple."""
    if "file" not in request.files:
        return None, (jsonify(error="No file provided"), 400)
    f = request.files["file"]
    if not f.filename:
        return None, (jsonify(error="Empty filename"), 400)
    try:
        img = Image.open(f.stream)
        pixels = img.width * img.height
        if pixels > Image.MAX_IMAGE_PIXELS:
            return None, (jsonify(error=f"Image too large ({pixels:,} pixels, max {Image.MAX_IMAGE_PIXELS:,})"), 400)
        img = img.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        return None, (jsonify(error=f"Invalid image: {e}"), 400)
    return img, None


def _editor_payload():
    editor = state.session.editor
    return dict(
        open=True,
        state=editor.state,
        selected=editor.selected_id,
        zones=editor.snapshot().to_dict(),
    )


def _require_editor():
    if state.session.editor is None:
        return jsonify(error="Zone editor is not open"), 409
    return None


def _row_in_range(idx):
    csv_data = state.session.csv_data
    if not csv_data.is_loaded:
        return jsonify(error="No CSV loaded"), 400
    if idx < 0 or idx >= csv_data.row_count:
        return jsonify(error="Row index out of range"), 404
    return None


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------

@app.route("/")
def index():
    return jsonify(name="badgegen", version=__version__)


@app.route("/api/fonts")
def get_fonts():
    return jsonify(fonts=get_font_families())


@app.route("/api/fields")
def get_fields():
    return jsonify(fields=BADGE_FIELDS)


# ---------------------------------------------------------------------------
# File operations
# ---------------------------------------------------------------------------

@app.route("/api/upload-image", methods=["POST"])
def upload_image():
    img, error = _read_upload_image()
    if error:
        return error
    state.session.set_template(img)
    state.template_filename = request.files["file"].filename
    return jsonify(
        ok=True,
        filename=state.template_filename,
        width=img.width,
        height=img.height,
    )


@app.route("/api/upload-logo", methods=["POST"])
def upload_logo():
    img, error = _read_upload_image()
    if error:
        return error
    state.session.set_logo(img)
    return jsonify(ok=True, width=img.width, height=img.height)


@app.route("/api/background-image")
def background_image():
    if state.session.template is None:
        return jsonify(error="No template loaded"), 404
    return _png_response(state.session.template)


@app.route("/api/upload-csv", methods=["POST"])
def upload_csv():
    if "file" not in request.files:
        return jsonify(error="No file provided"), 400
    f = request.files["file"]
    if not f.filename:
        return jsonify(error="Empty filename"), 400

    csv_data = CSVData()
    try:
        csv_data.load_bytes(f.read())
    except ValueError as e:
        return jsonify(error=f"CSV error: {e}"), 400

    state.session.load_participants(csv_data)
    state.csv_filename = f.filename
    return jsonify(
        ok=True,
        filename=f.filename,
        headers=csv_data.headers,
        row_count=csv_data.row_count,
        mappings=detect_mappings(csv_data.headers),
    )


@app.route("/api/download-csv")
def download_csv():
    csv_data = state.session.csv_data
    if not csv_data.is_loaded:
        return jsonify(error="No CSV loaded"), 400
    buf = BytesIO(("\ufeff" + csv_data.to_text()).encode("utf-8"))
    return send_file(
        buf,
        mimetype="text/csv",
        as_attachment=True,
        download_name=state.csv_filename or "participants.csv",
    )


# ---------------------------------------------------------------------------
# CSV data & column mappings
# ---------------------------------------------------------------------------

@app.route("/api/csv/info")
def csv_info():
    csv_data = state.session.csv_data
    return jsonify(
        loaded=csv_data.is_loaded,
        filename=state.csv_filename,
        headers=csv_data.headers,
        row_count=csv_data.row_count,
        current_row=state.session.current_row,
    )


@app.route("/api/csv/row/<int:idx>")
def get_row(idx):
    error = _row_in_range(idx)
    if error:
        return error
    state.session.current_row = idx
    return jsonify(
        row=state.session.csv_data.rows[idx],
        index=idx,
        total=state.session.csv_data.row_count,
    )


@app.route("/api/csv/row/<int:idx>", methods=["PUT"])
def update_row(idx):
    """Overwrite columns of one participant: ``{column: value, ...}``."""
    error = _row_in_range(idx)
    if error:
        return error
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(error="Expected a JSON object of column values"), 400
    try:
        row = state.session.update_participant(idx, data)
    except KeyError as e:
        return jsonify(error=f"Unknown column: {e.args[0]}"), 400
    return jsonify(row=row, index=idx)


@app.route("/api/csv/row", methods=["POST"])
def add_row():
    if not state.session.csv_data.is_loaded:
        return jsonify(error="No CSV loaded"), 400
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify(error="Expected a JSON object of column values"), 400
    try:
        idx = state.session.add_participant(data)
    except KeyError as e:
        return jsonify(error=f"Unknown column: {e.args[0]}"), 400
    return jsonify(
        row=state.session.csv_data.rows[idx],
        index=idx,
        total=state.session.csv_data.row_count,
    ), 201


@app.route("/api/csv/row/<int:idx>", methods=["DELETE"])
def delete_row(idx):
    error = _row_in_range(idx)
    if error:
        return error
    state.session.delete_participant(idx)
    return jsonify(
        ok=True,
        total=state.session.csv_data.row_count,
        current_row=state.session.current_row,
    )


@app.route("/api/csv/duplicates")
def csv_duplicates():
    if not state.session.csv_data.is_loaded:
        return jsonify(error="No CSV loaded"), 400
    return jsonify(state.session.find_duplicates())


@app.route("/api/mappings")
def get_mappings():
    return jsonify(
        detected=detect_mappings(state.session.csv_data.headers),
        overrides=state.session.resolver.overrides,
    )


@app.route("/api/mappings", methods=["PUT"])
def update_mappings():
    data = request.get_json(silent=True) or {}
    for field, column in data.items():
        if field not in BADGE_FIELDS and field != "nomComplet":
            return jsonify(error=f"Unknown field: {field}"), 400
        state.session.resolver.set_override(field, column)
    state.session.qr_cache.clear()
    return jsonify(ok=True, overrides=state.session.resolver.overrides)


# ---------------------------------------------------------------------------
# Zones & zone editor
# ---------------------------------------------------------------------------

@app.route("/api/zones")
def get_zones():
    return jsonify(state.session.zones.to_dict())


@app.route("/api/editor")
def get_editor():
    if state.session.editor is None:
        return jsonify(open=False)
    return jsonify(_editor_payload())


@app.route("/api/editor/open", methods=["POST"])
def open_editor():
    state.session.open_editor()
    return jsonify(_editor_payload())


@app.route("/api/editor/save", methods=["POST"])
def save_editor():
    error = _require_editor()
    if error:
        return error
    zones = state.session.commit_editor()
    return jsonify(ok=True, zones=zones.to_dict())


@app.route("/api/editor/discard", methods=["POST"])
def discard_editor():
    state.session.discard_editor()
    return jsonify(ok=True)


@app.route("/api/editor/defaults", methods=["POST"])
def editor_defaults():
    error = _require_editor()
    if error:
        return error
    state.session.editor.load_defaults()
    return jsonify(_editor_payload())


@app.route("/api/editor/select", methods=["POST"])
def editor_select():
    error = _require_editor()
    if error:
        return error
    data = request.get_json(silent=True) or {}
    try:
        state.session.editor.select(data.get("zone_id"))
    except KeyError:
        return jsonify(error="Unknown zone"), 404
    return jsonify(_editor_payload())


@app.route("/api/editor/pointer", methods=["POST"])
def editor_pointer():
    """Pointer event in badge pixels: ``{"event": "down"|"move"|"up", "x", "y"}``."""
    error = _require_editor()
    if error:
        return error
    data = request.get_json(silent=True) or {}
    editor = state.session.editor
    event = data.get("event")
    try:
        x, y = float(data.get("x", 0)), float(data.get("y", 0))
    except (TypeError, ValueError):
        return jsonify(error="Invalid pointer position"), 400

    if event == "down":
        editor.pointer_down(x, y, float(data.get("tolerance", 6)))
    elif event == "move":
        editor.pointer_move(x, y)
    elif event == "up":
        editor.pointer_up()
    else:
        return jsonify(error=f"Unknown pointer event: {event}"), 400
    return jsonify(_editor_payload())


@app.route("/api/editor/nudge", methods=["POST"])
def editor_nudge():
    error = _require_editor()
    if error:
        return error
    data = request.get_json(silent=True) or {}
    handled = state.session.editor.nudge(
        data.get("key", ""),
        large=bool(data.get("shift")),
        focus_in_text_input=bool(data.get("in_text_input")),
    )
    payload = _editor_payload()
    payload["handled"] = handled
    return jsonify(payload)


@app.route("/api/editor/zones", methods=["POST"])
def editor_add_zone():
    error = _require_editor()
    if error:
        return error
    zone = state.session.editor.add_text_zone()
    payload = _editor_payload()
    payload["zone_id"] = zone.id
    return jsonify(payload)


@app.route("/api/editor/zones/<zone_id>", methods=["PUT"])
def editor_update_zone(zone_id):
    error = _require_editor()
    if error:
        return error
    data = request.get_json(silent=True) or {}
    try:
        state.session.editor.update_text_zone(zone_id, data)
    except KeyError:
        return jsonify(error="Unknown zone"), 404
    return jsonify(_editor_payload())


@app.route("/api/editor/zones/<zone_id>", methods=["DELETE"])
def editor_delete_zone(zone_id):
    error = _require_editor()
    if error:
        return error
    if zone_id == QR_ZONE_ID:
        return jsonify(error="The QR zone cannot be deleted"), 400
    # The DELETE request itself is the user's confirmation
    try:
        state.session.editor.delete_zone(zone_id, confirm=lambda: True)
    except KeyError:
        return jsonify(error="Unknown zone"), 404
    return jsonify(_editor_payload())


@app.route("/api/editor/qr", methods=["PUT"])
def editor_update_qr():
    error = _require_editor()
    if error:
        return error
    state.session.editor.update_qr_zone(request.get_json(silent=True) or {})
    return jsonify(_editor_payload())


@app.route("/api/editor/preview")
def editor_preview():
    img = state.session.render_preview()
    if img is None:
        return jsonify(error="No template loaded"), 400
    return _png_response(img)


# ---------------------------------------------------------------------------
# Rendering & export
# ---------------------------------------------------------------------------

@app.route("/api/preview/<int:row_idx>")
def preview_badge(row_idx):
    error = _row_in_range(row_idx)
    if error:
        return error
    img = state.session.render_row(row_idx)
    if img is None:
        return jsonify(error="No template loaded"), 400
    return _png_response(img)


@app.route("/api/export-single-image/<int:row_idx>")
def export_single_image(row_idx):
    error = _row_in_range(row_idx)
    if error:
        return error
    img = state.session.render_row(row_idx)
    if img is None:
        return jsonify(error="No template loaded"), 400
    record = state.session.csv_data.get_row(row_idx)
    return _png_response(img, badge_filename(record, state.session.resolver, row_idx))


@app.route("/api/export-pdf", methods=["POST"])
def start_pdf_export():
    if not state.session.csv_data.is_loaded:
        return jsonify(error="No CSV loaded"), 400
    if state.session.template is None:
        return jsonify(error="No template loaded"), 400

    task_id = str(uuid.uuid4())[:8]
    output_path = os.path.join(EXPORT_DIR, f"badges_{task_id}.pdf")

    task = {
        "status": "running",
        "progress": 0,
        "total": state.session.csv_data.row_count,
        "path": output_path,
        "pages": 0,
        "error": None,
    }
    with state.lock:
        state.export_tasks[task_id] = task

    # Capture current state for the thread
    session = state.session.copy()

    def run_export():
        def on_progress(n):
            with state.lock:
                task["progress"] = n

        try:
            pages = export_badges_pdf(session, output_path, on_progress=on_progress)
            with state.lock:
                task["status"] = "done"
                task["pages"] = pages
        except Exception as e:
            logger.exception("PDF export %s failed", task_id)
            with state.lock:
                task["status"] = "error"
                task["error"] = str(e)

    t = threading.Thread(target=run_export, daemon=True)
    t.start()

    return jsonify(task_id=task_id)


@app.route("/api/export-pdf/status/<task_id>")
def pdf_export_status(task_id):
    with state.lock:
        task = state.export_tasks.get(task_id)
        if not task:
            return jsonify(error="Unknown task"), 404
        return jsonify(
            status=task["status"],
            progress=task["progress"],
            total=task["total"],
            pages=task["pages"],
            error=task["error"],
        )


@app.route("/api/export-pdf/download/<task_id>")
def download_pdf(task_id):
    with state.lock:
        task = state.export_tasks.get(task_id)
    if not task or task["status"] != "done":
        return jsonify(error="PDF not ready"), 400
    return send_file(
        task["path"],
        mimetype="application/pdf",
        as_attachment=True,
        download_name="badges.pdf",
    )


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

def _project_summary(project):
    return dict(
        id=project.id,
        name=project.name,
        createdAt=project.created_at,
        updatedAt=project.updated_at,
        hasTemplate=project.template_png is not None,
        participants=len(project.csv_rows),
    )


@app.route("/api/projects")
def list_projects():
    return jsonify(projects=[_project_summary(p) for p in state.store.list_all()])


@app.route("/api/projects", methods=["POST"])
def create_project():
    data = request.get_json(silent=True) or {}
    try:
        project = state.store.create(data.get("name", ""))
    except ValueError as e:
        return jsonify(error=str(e)), 400
    return jsonify(ok=True, project=_project_summary(project)), 201


@app.route("/api/projects/<project_id>/open", methods=["POST"])
def open_project(project_id):
    project = state.store.get(project_id)
    if project is None:
        return jsonify(error="Unknown project"), 404
    state.session.load_project(project)
    state.template_filename = ""
    state.csv_filename = ""
    return jsonify(ok=True, project=_project_summary(project), zones=project.zones.to_dict())


@app.route("/api/projects/<project_id>/save", methods=["PUT"])
def save_project(project_id):
    project = state.store.get(project_id)
    if project is None:
        return jsonify(error="Unknown project"), 404
    state.session.to_project(project)
    try:
        project = state.store.update(
            project_id,
            zones=project.zones,
            template_png=project.template_png,
            template_width=project.template_width,
            template_height=project.template_height,
            logo_png=project.logo_png,
            csv_headers=project.csv_headers,
            csv_rows=project.csv_rows,
            column_mappings=project.column_mappings,
        )
    except ProjectNotFound:
        return jsonify(error="Unknown project"), 404
    state.session.project_id = project.id
    return jsonify(ok=True, project=_project_summary(project))


@app.route("/api/projects/<project_id>", methods=["DELETE"])
def delete_project(project_id):
    if state.store.get(project_id) is None:
        return jsonify(error="Unknown project"), 404
    state.store.delete(project_id)
    if state.session.project_id == project_id:
        state.session.project_id = None
    return jsonify(ok=True)


@app.route("/api/projects/<project_id>/export")
def export_project(project_id):
    try:
        text = state.store.export_json(project_id)
    except ProjectNotFound:
        return jsonify(error="Unknown project"), 404
    buf = BytesIO(text.encode("utf-8"))
    return send_file(
        buf,
        mimetype="application/json",
        as_attachment=True,
        download_name=f"{project_id}.json",
    )


@app.route("/api/projects/import", methods=["POST"])
def import_project():
    if "file" in request.files:
        text = request.files["file"].read().decode("utf-8-sig", errors="replace")
    else:
        text = request.get_data(as_text=True)
    try:
        project = state.store.import_json(text)
    except ValueError as e:
        return jsonify(error=str(e)), 400
    return jsonify(ok=True, project=_project_summary(project)), 201


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    setup_logging(config.DEBUG, config.LOG_FILE or None)
    logger.info("Badge generator web - http://localhost:%d", config.PORT)
    app.run(host="127.0.0.1", port=config.PORT, debug=config.FLASK_DEBUG)


if __name__ == "__main__":
    main()
