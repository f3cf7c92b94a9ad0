"""Shared fixtures for the tracker test suite."""

from datetime import date, datetime
from typing import Optional

import pytest

from coding_tracker.clock import ManualClock
from coding_tracker.config import TrackerSettings
from coding_tracker.db import SqliteEntryStore, StorageError
from coding_tracker.models import EntryKey, TimeEntry, TrackingContext
from coding_tracker.tracker import ActivityTracker

START = datetime(2024, 1, 10, 9, 0, 0)
CONTEXT = TrackingContext(project="api-server", branch="main", language="Python")


class FlakyStore:
    """Wraps a real store and fails the next ``failures`` writes."""

    def __init__(self, inner: SqliteEntryStore, failures: int = 0) -> None:
        self.inner = inner
        self.failures = failures
        self.attempts = 0

    def merge_entry(self, key: EntryKey, delta_minutes: float) -> None:
        self.attempts += 1
        if self.failures:
            self.failures -= 1
            raise StorageError("disk is full")
        self.inner.merge_entry(key, delta_minutes)

    def list_entries(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[TimeEntry]:
        return self.inner.list_entries(start, end)


class BrokenStore:
    def merge_entry(self, key: EntryKey, delta_minutes: float) -> None:
        raise StorageError("database is locked")

    def list_entries(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[TimeEntry]:
        raise StorageError("database is locked")


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def settings():
    return TrackerSettings()


@pytest.fixture
def store(tmp_path):
    return SqliteEntryStore(tmp_path / "entries.sqlite3")


@pytest.fixture
def make_tracker(clock, settings):
    def _make(store, **kwargs):
        kwargs.setdefault("initial_context", CONTEXT)
        return ActivityTracker(store, kwargs.pop("settings", settings), clock=clock, **kwargs)

    return _make
