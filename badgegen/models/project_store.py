"""Persistent badge projects: template, logo, zone layout and participant data.

Projects are stored one JSON file per project. Images are embedded as PNG
data URLs, so an exported project file is self-contained and can be imported
on another machine.
"""

import base64
import json
import logging
import os
import re
import tempfile
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from badgegen.models.zones import ZoneModel, default_zone_model

logger = logging.getLogger(__name__)

_DATA_URL_PREFIX = "data:image/png;base64,"


class ProjectNotFound(LookupError):
    """No project with the requested id exists in the store."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def make_project_id(name: str) -> str:
    slug = re.sub(r"\s+", "-", name.strip().lower())
    return f"{slug}-{int(time.time() * 1000)}"


def _encode_image(data: Optional[bytes]) -> Optional[str]:
    if not data:
        return None
    return _DATA_URL_PREFIX + base64.b64encode(data).decode("ascii")


def _decode_image(value: Optional[str]) -> Optional[bytes]:
    if not value:
        return None
    if value.startswith("data:"):
        value = value.split(",", 1)[1]
    return base64.b64decode(value)


@dataclass
class Project:
    """A named, reusable badge setup."""
    id: str
    name: str
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)
    template_png: Optional[bytes] = None
    template_width: int = 0
    template_height: int = 0
    logo_png: Optional[bytes] = None
    zones: ZoneModel = field(default_factory=default_zone_model)
    csv_headers: List[str] = field(default_factory=list)
    csv_rows: List[Dict[str, str]] = field(default_factory=list)
    column_mappings: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        template = None
        if self.template_png:
            template = {
                "imageData": _encode_image(self.template_png),
                "width": self.template_width,
                "height": self.template_height,
            }
        csv_data = None
        if self.csv_headers:
            csv_data = {"headers": list(self.csv_headers), "rows": [dict(r) for r in self.csv_rows]}
        d = {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "template": template,
            "logo": _encode_image(self.logo_png),
            "csvData": csv_data,
            "columnMappings": dict(self.column_mappings),
        }
        d.update(self.zones.to_dict())
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Project":
        template = d.get("template") or {}
        csv_data = d.get("csvData") or {}
        # An empty zone list is a valid layout; only a missing one means defaults
        zones = ZoneModel.from_dict(d) if "textZones" in d else default_zone_model()
        return cls(
            id=d["id"],
            name=d.get("name", ""),
            created_at=d.get("createdAt") or _now_iso(),
            updated_at=d.get("updatedAt") or _now_iso(),
            template_png=_decode_image(template.get("imageData")),
            template_width=int(template.get("width") or 0),
            template_height=int(template.get("height") or 0),
            logo_png=_decode_image(d.get("logo")),
            zones=zones,
            csv_headers=list(csv_data.get("headers") or []),
            csv_rows=[dict(r) for r in csv_data.get("rows") or []],
            column_mappings=dict(d.get("columnMappings") or {}),
        )


class ProjectStore:
    """Key-value project storage backed by a directory of JSON files."""

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, project_id: str) -> str:
        safe = re.sub(r"[^\w.-]", "_", project_id)
        return os.path.join(self.directory, f"{safe}.json")

    def get(self, project_id: str) -> Optional[Project]:
        path = self._path(project_id)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return Project.from_dict(json.load(f))

    def put(self, project: Project) -> None:
        """Write a project atomically, replacing any previous version."""
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(project.to_dict(), f, ensure_ascii=False)
            os.replace(tmp_path, self._path(project.id))
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.info('Project "%s" saved', project.name)

    def delete(self, project_id: str) -> None:
        path = self._path(project_id)
        if os.path.exists(path):
            os.remove(path)
            logger.info('Project "%s" deleted', project_id)

    def list_all(self) -> List[Project]:
        """All projects, most recently updated first."""
        projects = []
        for entry in os.scandir(self.directory):
            if not entry.name.endswith(".json"):
                continue
            try:
                with open(entry.path, "r", encoding="utf-8") as f:
                    projects.append(Project.from_dict(json.load(f)))
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("Skipping unreadable project file %s: %s", entry.name, e)
        projects.sort(key=lambda p: p.updated_at, reverse=True)
        return projects

    # ------------------------------------------------------------------
    # Project operations
    # ------------------------------------------------------------------

    def create(self, name: str) -> Project:
        if not name or not name.strip():
            raise ValueError("Project name cannot be empty")
        project = Project(id=make_project_id(name), name=name.strip())
        self.put(project)
        return project

    def update(self, project_id: str, **changes) -> Project:
        project = self.get(project_id)
        if project is None:
            raise ProjectNotFound(project_id)
        for key, value in changes.items():
            if not hasattr(project, key):
                raise AttributeError(f"Unknown project attribute: {key}")
            setattr(project, key, value)
        project.updated_at = _now_iso()
        self.put(project)
        return project

    def export_json(self, project_id: str) -> str:
        project = self.get(project_id)
        if project is None:
            raise ProjectNotFound(project_id)
        return json.dumps(project.to_dict(), indent=2, ensure_ascii=False)

    def import_json(self, text: str) -> Project:
        """Import an exported project under a fresh id and timestamps."""
        try:
            data = json.loads(text)
            name = data["name"]
            if not isinstance(name, str) or not name.strip():
                raise ValueError("project name must be a non-empty string")
            data["id"] = make_project_id(name)
            data["createdAt"] = data["updatedAt"] = _now_iso()
            project = Project.from_dict(data)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Failed to import project: {e}") from e
        self.put(project)
        return project
