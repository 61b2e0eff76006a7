"""Local JSON file storage for sprints and their reports.

Each sprint is one file at ``<data_dir>/sprints/<id>.json``; generated reports
are Markdown files under ``<data_dir>/reports``. Intended for a single backend
process: concurrent writers on the same sprint are serialised with the lock
returned by ``lock()``.
"""

import json
import logging
import os
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from services.errors import NotFoundError
from services.sprint_model import parse_date

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = os.path.join(
    os.path.dirname(os.path.dirname(__file__)),
    "data"
)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class SprintStore:
    """Reads and writes sprint documents on the local file system."""

    def __init__(self, data_dir: Optional[str] = None):
        self.data_dir = data_dir or DEFAULT_DATA_DIR
        self.sprints_dir = os.path.join(self.data_dir, "sprints")
        self.reports_dir = os.path.join(self.data_dir, "reports")
        self._locks = {}
        self._locks_guard = threading.Lock()
        self._ensure_dirs()

    def _ensure_dirs(self):
        for directory in (self.sprints_dir, self.reports_dir):
            if not os.path.exists(directory):
                os.makedirs(directory)

    def _sprint_path(self, sprint_id: str) -> str:
        # Ids are generated here; reject anything that could escape the directory
        if not sprint_id or os.path.basename(sprint_id) != sprint_id or sprint_id.startswith("."):
            raise NotFoundError(f"Sprint {sprint_id} not found")
        return os.path.join(self.sprints_dir, f"{sprint_id}.json")

    def _report_path(self, relative_path: str) -> str:
        return os.path.join(self.data_dir, relative_path)

    def _write(self, sprint: dict):
        path = self._sprint_path(sprint["id"])
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w") as f:
            json.dump(sprint, f, indent=2)
        os.replace(tmp_path, path)

    def lock(self, sprint_id: str) -> threading.Lock:
        """Lock guarding read-merge-write cycles on one sprint."""
        with self._locks_guard:
            if sprint_id not in self._locks:
                self._locks[sprint_id] = threading.Lock()
            return self._locks[sprint_id]

    def get_sprints(self) -> list:
        """All stored sprints, most recent start date first."""
        sprints = []
        for filename in os.listdir(self.sprints_dir):
            if not filename.endswith(".json"):
                continue
            path = os.path.join(self.sprints_dir, filename)
            try:
                with open(path, "r") as f:
                    sprints.append(json.load(f))
            except (json.JSONDecodeError, IOError) as e:
                logger.warning(f"Skipping unreadable sprint file {filename}: {e}")

        sprints.sort(
            key=lambda s: parse_date(s.get("startDate")) or parse_date("1970-01-01"),
            reverse=True
        )
        return sprints

    def get_sprint(self, sprint_id: str) -> dict:
        path = self._sprint_path(sprint_id)
        if not os.path.exists(path):
            raise NotFoundError(f"Sprint {sprint_id} not found")
        with open(path, "r") as f:
            return json.load(f)

    def get_sprint_with_report(self, sprint_id: str) -> tuple:
        """Return the sprint and the content of its latest report (or None)."""
        sprint = self.get_sprint(sprint_id)
        report_paths = sprint.get("reportFilePaths") or []
        if not report_paths:
            return sprint, None

        latest = self._report_path(report_paths[-1])
        try:
            with open(latest, "r", encoding="utf-8") as f:
                return sprint, f.read()
        except IOError as e:
            logger.warning(f"Could not read report file {latest}: {e}")
            return sprint, None

    def add_sprint(self, draft: dict) -> dict:
        sprint = dict(draft)
        sprint["id"] = str(uuid.uuid4())
        sprint["lastUpdatedAt"] = _timestamp()
        self._write(sprint)
        logger.info(f"Created sprint {sprint['id']} ({sprint.get('name')})")
        return sprint

    def update_sprint(self, sprint_id: str, partial: dict) -> dict:
        """Shallow-merge ``partial`` into the stored sprint."""
        sprint = self.get_sprint(sprint_id)
        sprint.update({k: v for k, v in partial.items() if k != "id"})
        sprint["lastUpdatedAt"] = _timestamp()
        self._write(sprint)
        return sprint

    def delete_sprint(self, sprint_id: str):
        """Delete a sprint and its report files."""
        sprint = self.get_sprint(sprint_id)

        for report_path in sprint.get("reportFilePaths") or []:
            full_path = self._report_path(report_path)
            try:
                os.remove(full_path)
            except OSError as e:
                logger.warning(f"Failed to delete report file {full_path}: {e}")

        os.remove(self._sprint_path(sprint_id))
        with self._locks_guard:
            self._locks.pop(sprint_id, None)
        logger.info(f"Deleted sprint {sprint_id}")

    def save_report(self, sprint_id: str, content: str) -> dict:
        """Write a report file and append it to the sprint's report list."""
        sprint = self.get_sprint(sprint_id)

        stamp = int(time.time() * 1000)
        relative_path = os.path.join("reports", f"sprint-report-{sprint_id}-{stamp}.md")
        while os.path.exists(self._report_path(relative_path)):
            stamp += 1
            relative_path = os.path.join("reports", f"sprint-report-{sprint_id}-{stamp}.md")
        with open(self._report_path(relative_path), "w", encoding="utf-8") as f:
            f.write(content)

        report_paths = list(sprint.get("reportFilePaths") or []) + [relative_path]
        return self.update_sprint(sprint_id, {"reportFilePaths": report_paths})
