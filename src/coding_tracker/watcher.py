"""Headless activity source that watches a workspace for file changes."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Optional

from .models import ActivityKind
from .tracker import ActivityTracker

logger = logging.getLogger(__name__)

IGNORED_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        "node_modules",
        "__pycache__",
        ".venv",
        "venv",
        ".mypy_cache",
        ".pytest_cache",
        "dist",
        "build",
    }
)


class WorkspaceWatcher:
    """Polls file modification times and reports edits to the tracker.

    Every changed file produces an ``edit`` signal; the most recently changed
    file also becomes the active file, which drives language segmentation.
    """

    def __init__(self, tracker: ActivityTracker, workspace: Path, interval: float = 2.0) -> None:
        self.tracker = tracker
        self.workspace = Path(workspace)
        self.interval = interval
        self._mtimes: dict[Path, float] = {}
        self._active_file: Optional[Path] = None
        self._scanned = False

    def scan(self) -> list[Path]:
        """Return files changed since the previous scan (none on the first)."""
        first_scan = not self._scanned
        current: dict[Path, float] = {}
        for root, dirs, files in os.walk(self.workspace):
            dirs[:] = [d for d in dirs if d not in IGNORED_DIRS]
            for name in files:
                path = Path(root) / name
                try:
                    current[path] = path.stat().st_mtime
                except OSError:
                    continue

        changed = [
            path
            for path, mtime in current.items()
            if path not in self._mtimes or self._mtimes[path] != mtime
        ]
        self._mtimes = current
        self._scanned = True
        if first_scan:
            return []
        changed.sort(key=lambda path: current[path])
        return changed

    def poll_once(self) -> int:
        changed = self.scan()
        if not changed:
            return 0
        latest = changed[-1]
        if latest != self._active_file:
            self._active_file = latest
            self.tracker.active_file_changed(str(latest))
        for path in changed:
            logger.debug("Edit detected: %s", path)
            self.tracker.record_activity(ActivityKind.EDIT)
        return len(changed)

    def run_until_stopped(self, stop_event: threading.Event) -> None:
        logger.info("Watching %s for edits.", self.workspace)
        self.scan()
        while not stop_event.wait(self.interval):
            self.poll_once()
