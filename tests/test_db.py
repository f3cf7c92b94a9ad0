"""SQLite entry store."""

from datetime import date

import pytest

from coding_tracker.db import SqliteEntryStore, StorageError, database_connection, merge_entry
from coding_tracker.models import EntryKey, EntryRejected

DAY = date(2024, 1, 10)


def test_merge_accumulates_on_the_same_key(store):
    key = EntryKey(DAY, "api-server", "main", "Python")
    store.merge_entry(key, 1.5)
    store.merge_entry(key, 2.25)

    entries = store.list_entries()
    assert len(entries) == 1
    assert entries[0].key == key
    assert entries[0].time_spent_minutes == pytest.approx(3.75)


def test_missing_branch_and_language_round_trip_as_none(store):
    store.merge_entry(EntryKey(DAY, "scripts", None, None), 4.0)
    store.merge_entry(EntryKey(DAY, "scripts", None, None), 1.0)
    [entry] = store.list_entries()
    assert entry.branch is None
    assert entry.language is None
    assert entry.time_spent_minutes == pytest.approx(5.0)


@pytest.mark.parametrize("delta", [-0.1, 1440.5])
def test_out_of_range_delta_is_rejected(store, delta):
    with pytest.raises(EntryRejected):
        store.merge_entry(EntryKey(DAY, "api-server", "main", "Python"), delta)
    assert store.list_entries() == []


def test_daily_cap_spans_all_entries_of_a_date(store):
    store.merge_entry(EntryKey(DAY, "a", "main", "Python"), 1000)
    store.merge_entry(EntryKey(DAY, "b", "main", "Go"), 440)
    with pytest.raises(EntryRejected):
        store.merge_entry(EntryKey(DAY, "c", "main", "Rust"), 0.5)

    # other dates are unaffected
    store.merge_entry(EntryKey(date(2024, 1, 11), "c", "main", "Rust"), 0.5)
    assert sum(e.time_spent_minutes for e in store.list_entries(DAY, DAY)) == pytest.approx(1440)


def test_rejected_merge_leaves_no_open_transaction(tmp_path):
    path = tmp_path / "entries.sqlite3"
    with database_connection(path) as conn:
        merge_entry(conn, EntryKey(DAY, "a", None, None), 1440)
        with pytest.raises(EntryRejected):
            merge_entry(conn, EntryKey(DAY, "a", None, None), 1)
        assert not conn.in_transaction
        merge_entry(conn, EntryKey(date(2024, 1, 12), "a", None, None), 1)


def test_list_entries_date_bounds_are_inclusive(store):
    for day in (1, 5, 9):
        store.merge_entry(EntryKey(date(2024, 1, day), "api-server", "main", "Python"), 10)
    dates = [e.date.day for e in store.list_entries(date(2024, 1, 5), date(2024, 1, 9))]
    assert dates == [5, 9]


def test_search_filters_combine(store):
    store.merge_entry(EntryKey(DAY, "api-server", "main", "Python"), 10)
    store.merge_entry(EntryKey(DAY, "api-server", "feature", "Python"), 5)
    store.merge_entry(EntryKey(DAY, "web", "main", "TypeScript"), 7)

    assert len(store.search_entries(project="api-server")) == 2
    assert [e.branch for e in store.search_entries(project="api-server", branch="feature")] == [
        "feature"
    ]
    assert [e.project for e in store.search_entries(language="TypeScript")] == ["web"]
    assert store.search_entries(date(2024, 2, 1), date(2024, 2, 28)) == []


def test_projects_and_branches(store):
    store.merge_entry(EntryKey(DAY, "web", "main", "TypeScript"), 1)
    store.merge_entry(EntryKey(DAY, "api-server", "main", "Python"), 1)
    store.merge_entry(EntryKey(DAY, "api-server", "feature", "Python"), 1)
    store.merge_entry(EntryKey(DAY, "api-server", None, "Python"), 1)

    assert store.projects() == ["api-server", "web"]
    assert store.branches("api-server") == ["feature", "main"]


def test_unopenable_database_raises_storage_error(tmp_path):
    store = SqliteEntryStore(tmp_path / "missing" / "entries.sqlite3")
    with pytest.raises(StorageError):
        store.list_entries()
