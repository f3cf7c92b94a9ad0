"""Workspace context: project name and git branch."""

from __future__ import annotations

import logging
import subprocess
import threading
from pathlib import Path
from typing import Callable, Optional

from .models import UNKNOWN, TrackingContext

logger = logging.getLogger(__name__)


class WorkspaceContextProvider:
    """Reads the project name and current git branch for a workspace folder."""

    def __init__(self, workspace: Optional[Path], git_timeout: float = 2.0) -> None:
        self.workspace = Path(workspace).resolve() if workspace else None
        self.git_timeout = git_timeout

    def project_name(self) -> str:
        if self.workspace is None:
            return UNKNOWN
        return self.workspace.name or UNKNOWN

    def current_branch(self) -> str:
        """Return the checked-out branch, or ``"unknown"`` when git cannot say."""
        if self.workspace is None:
            return UNKNOWN
        try:
            result = subprocess.run(
                ["git", "rev-parse", "--abbrev-ref", "HEAD"],
                cwd=self.workspace,
                capture_output=True,
                text=True,
                timeout=self.git_timeout,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("git branch lookup failed in %s: %s", self.workspace, exc)
            return UNKNOWN
        if result.returncode != 0:
            logger.debug("git rev-parse exited with %d: %s", result.returncode, result.stderr.strip())
            return UNKNOWN
        return result.stdout.strip() or UNKNOWN

    def current_context(self, language: Optional[str] = None) -> TrackingContext:
        return TrackingContext(
            project=self.project_name(),
            branch=self.current_branch(),
            language=language,
        )


class BranchPoller:
    """Polls the git branch on a background thread.

    At most one lookup runs at a time: ``poll_once`` returns ``False`` without
    doing anything when a lookup is already in flight. ``on_change`` is called
    with the new branch name only when it differs from the last one seen.
    """

    def __init__(
        self,
        provider: WorkspaceContextProvider,
        on_change: Callable[[str], None],
        interval: float,
        initial_branch: Optional[str] = None,
    ) -> None:
        self._provider = provider
        self._on_change = on_change
        self._interval = interval
        self._last_branch = initial_branch
        self._in_flight = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="branch-poller", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread:
            thread.join(timeout=timeout)

    def poll_once(self) -> bool:
        if not self._in_flight.acquire(blocking=False):
            logger.debug("Branch check already in progress; skipping.")
            return False
        try:
            branch = self._provider.current_branch()
            if self._stop_event.is_set() or branch == self._last_branch:
                return True
            logger.info("Branch changed: %s -> %s", self._last_branch, branch)
            self._last_branch = branch
            self._on_change(branch)
            return True
        finally:
            self._in_flight.release()

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            self.poll_once()
