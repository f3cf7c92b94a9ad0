"""SQLite storage for merged time entries."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Iterator, Optional, Protocol

from .models import MAX_MINUTES_PER_DAY, EntryKey, EntryRejected, TimeEntry


DATE_FMT = "%Y-%m-%d"
DATETIME_FMT = "%Y-%m-%d %H:%M:%S.%f"

# Tolerance for float sums when checking the per-day cap.
_EPSILON = 1e-6


class StorageError(RuntimeError):
    """The entry store could not be read or written."""


class EntryStore(Protocol):
    def merge_entry(self, key: EntryKey, delta_minutes: float) -> None: ...

    def list_entries(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[TimeEntry]: ...


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


def initialize_schema(conn: sqlite3.Connection) -> None:
    # Missing branch/language are stored as '' so the primary key stays unique.
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS time_entries (
            date TEXT NOT NULL,
            project TEXT NOT NULL,
            branch TEXT NOT NULL DEFAULT '',
            language TEXT NOT NULL DEFAULT '',
            time_spent_minutes REAL NOT NULL DEFAULT 0,
            updated_at TEXT NOT NULL,
            PRIMARY KEY (date, project, branch, language)
        );

        CREATE INDEX IF NOT EXISTS idx_entries_date
            ON time_entries(date);
        """
    )


def merge_entry(conn: sqlite3.Connection, key: EntryKey, delta_minutes: float) -> None:
    """Add ``delta_minutes`` to the entry for ``key``.

    Raises :class:`EntryRejected` when the delta is outside [0, 1440] or when
    the date's total would exceed 1440 minutes.
    """
    if not 0.0 <= delta_minutes <= MAX_MINUTES_PER_DAY:
        raise EntryRejected(
            f"delta of {delta_minutes:.3f} minutes for {key.date} is out of range"
        )
    day = key.date.strftime(DATE_FMT)
    conn.execute("BEGIN IMMEDIATE")
    try:
        row = conn.execute(
            "SELECT COALESCE(SUM(time_spent_minutes), 0) AS total FROM time_entries WHERE date = ?",
            (day,),
        ).fetchone()
        total = float(row["total"])
        if total + delta_minutes > MAX_MINUTES_PER_DAY + _EPSILON:
            raise EntryRejected(
                f"{key.date} already has {total:.1f} minutes; "
                f"adding {delta_minutes:.1f} would exceed {MAX_MINUTES_PER_DAY:g}"
            )
        conn.execute(
            """
            INSERT INTO time_entries (
                date,
                project,
                branch,
                language,
                time_spent_minutes,
                updated_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT (date, project, branch, language) DO UPDATE SET
                time_spent_minutes = time_spent_minutes + excluded.time_spent_minutes,
                updated_at = excluded.updated_at
            """,
            (
                day,
                key.project,
                key.branch or "",
                key.language or "",
                delta_minutes,
                datetime.now().strftime(DATETIME_FMT),
            ),
        )
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def fetch_entries(
    conn: sqlite3.Connection,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[TimeEntry]:
    """Return entries with ``start <= date <= end`` (either bound optional)."""
    return search_entries(conn, start, end)


def search_entries(
    conn: sqlite3.Connection,
    start: Optional[date] = None,
    end: Optional[date] = None,
    *,
    project: Optional[str] = None,
    branch: Optional[str] = None,
    language: Optional[str] = None,
) -> list[TimeEntry]:
    clauses: list[str] = []
    params: list[object] = []

    if start is not None:
        clauses.append("date >= ?")
        params.append(start.strftime(DATE_FMT))
    if end is not None:
        clauses.append("date <= ?")
        params.append(end.strftime(DATE_FMT))
    if project:
        clauses.append("project = ?")
        params.append(project)
    if branch:
        clauses.append("branch = ?")
        params.append(branch)
    if language:
        clauses.append("language = ?")
        params.append(language)

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = conn.execute(
        f"""
        SELECT date, project, branch, language, time_spent_minutes
        FROM time_entries
        {where}
        ORDER BY date, project, branch, language
        """,
        params,
    )
    return [_row_to_entry(row) for row in rows]


def fetch_projects(conn: sqlite3.Connection) -> list[str]:
    rows = conn.execute("SELECT DISTINCT project FROM time_entries ORDER BY project")
    return [row["project"] for row in rows]


def fetch_branches(conn: sqlite3.Connection, project: str) -> list[str]:
    rows = conn.execute(
        """
        SELECT DISTINCT branch FROM time_entries
        WHERE project = ? AND branch != ''
        ORDER BY branch
        """,
        (project,),
    )
    return [row["branch"] for row in rows]


def _row_to_entry(row: sqlite3.Row) -> TimeEntry:
    return TimeEntry(
        date=datetime.strptime(row["date"], DATE_FMT).date(),
        project=row["project"],
        branch=row["branch"] or None,
        language=row["language"] or None,
        time_spent_minutes=float(row["time_spent_minutes"]),
    )


class SqliteEntryStore:
    """Entry store backed by a SQLite file.

    A connection is opened per call so the store can be shared between the
    tracker loop and request threads. ``sqlite3.Error`` is reported as
    :class:`StorageError`.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            with database_connection(self.db_path) as conn:
                yield conn
        except sqlite3.Error as exc:
            raise StorageError(f"{self.db_path}: {exc}") from exc

    def merge_entry(self, key: EntryKey, delta_minutes: float) -> None:
        with self._connection() as conn:
            merge_entry(conn, key, delta_minutes)

    def list_entries(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[TimeEntry]:
        with self._connection() as conn:
            return fetch_entries(conn, start, end)

    def search_entries(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        *,
        project: Optional[str] = None,
        branch: Optional[str] = None,
        language: Optional[str] = None,
    ) -> list[TimeEntry]:
        with self._connection() as conn:
            return search_entries(
                conn, start, end, project=project, branch=branch, language=language
            )

    def projects(self) -> list[str]:
        with self._connection() as conn:
            return fetch_projects(conn)

    def branches(self, project: str) -> list[str]:
        with self._connection() as conn:
            return fetch_branches(conn, project)
