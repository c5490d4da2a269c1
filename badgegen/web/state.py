"""In-memory application state singleton for the web badge generator."""

import os
import threading
from typing import Optional

from badgegen import config
from badgegen.models.project_store import ProjectStore
from badgegen.models.session import BadgeSession


class AppState:
    """Holds the badge session, the project store and running PDF exports."""

    def __init__(self, projects_dir: Optional[str] = None):
        self.session = BadgeSession()
        self.store = ProjectStore(projects_dir or config.PROJECTS_DIR)
        self.template_filename: str = ""
        self.csv_filename: str = ""
        # PDF export tasks: {task_id: {"status": str, "progress": int, "total": int, "path": str}}
        self.export_tasks: dict = {}
        self.lock = threading.Lock()
        self.load_default_logo()

    def load_default_logo(self) -> None:
        if config.LOGO_PATH and os.path.exists(config.LOGO_PATH):
            self.session.load_logo_file(config.LOGO_PATH)

    def reset_session(self):
        self.session = BadgeSession()
        self.template_filename = ""
        self.csv_filename = ""
        self.load_default_logo()

    def use_store(self, directory: str) -> None:
        self.store = ProjectStore(directory)


# Module-level singleton
state = AppState()
