"""Command-line interface for the coding time tracker."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import typer

from .config import HealthSettings, TrackerSettings
from .paths import get_db_path, get_log_path
from .server_runner import run_server

app = typer.Typer(help="Track active coding time per project, branch and language.")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    try:
        handlers.append(
            RotatingFileHandler(
                get_log_path(), maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8"
            )
        )
    except OSError as exc:
        typer.echo(f"File logging disabled: {exc}", err=True)
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)


def _tracker_settings(
    inactivity_minutes: float,
    focus_minutes: float,
    tick_seconds: float,
    flush_seconds: Optional[float],
) -> TrackerSettings:
    try:
        return TrackerSettings.from_minutes(
            inactivity_minutes=inactivity_minutes,
            focus_minutes=focus_minutes,
            tick_seconds=tick_seconds,
            flush_seconds=flush_seconds,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(8766, "--port", min=1, max=65535, help="TCP port for the API."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the time entry SQLite database."
    ),
    workspace: Optional[Path] = typer.Option(
        None,
        "--workspace",
        path_type=Path,
        help="Workspace folder used for the project name and git branch.",
    ),
    inactivity_minutes: float = typer.Option(
        2.5,
        "--inactivity-timeout",
        min=0.5,
        max=60.0,
        help="Minutes without edits or cursor moves before tracking pauses.",
    ),
    focus_minutes: float = typer.Option(
        3.0,
        "--focus-timeout",
        min=0.5,
        max=60.0,
        help="Minutes the editor may stay unfocused before tracking pauses.",
    ),
    tick_seconds: float = typer.Option(
        5.0, "--interval", min=1.0, max=60.0, help="Scheduler tick interval in seconds."
    ),
    flush_seconds: Optional[float] = typer.Option(
        None,
        "--flush-threshold",
        min=1.0,
        help="Seconds of accrued time before it is written (defaults to 60).",
    ),
    health: bool = typer.Option(
        False, "--health-reminders/--no-health-reminders", help="Log break reminders."
    ),
) -> None:
    """Run the tracker behind a local HTTP API for editor plugins."""
    run_server(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        workspace=workspace,
        settings=_tracker_settings(inactivity_minutes, focus_minutes, tick_seconds, flush_seconds),
        health_settings=HealthSettings(enabled=health),
    )


@app.command()
def watch(
    workspace: Path = typer.Argument(
        Path("."), exists=True, file_okay=False, path_type=Path, help="Folder to watch."
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the time entry SQLite database."
    ),
    inactivity_minutes: float = typer.Option(
        2.5,
        "--inactivity-timeout",
        min=0.5,
        max=60.0,
        help="Minutes without file changes before tracking pauses.",
    ),
    poll_seconds: float = typer.Option(
        2.0, "--poll-interval", min=0.5, help="Seconds between file system scans."
    ),
    health: bool = typer.Option(
        False, "--health-reminders/--no-health-reminders", help="Log break reminders."
    ),
) -> None:
    """Track time from file changes under a folder until interrupted."""
    from .context import WorkspaceContextProvider
    from .db import SqliteEntryStore
    from .tracker import ActivityTracker
    from .watcher import WorkspaceWatcher

    settings = _tracker_settings(inactivity_minutes, 3.0, 5.0, None)
    tracker = ActivityTracker(
        SqliteEntryStore(db_path or get_db_path()),
        settings,
        context_provider=WorkspaceContextProvider(workspace),
        health_settings=HealthSettings(enabled=health),
    )
    watcher = WorkspaceWatcher(tracker, workspace, interval=poll_seconds)
    stop_event = threading.Event()
    tracker.start()
    try:
        watcher.run_until_stopped(stop_event)
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Watcher interrupted; flushing tracked time.")
    finally:
        stop_event.set()
        tracker.stop()


@app.command()
def summary(
    date: Optional[str] = typer.Option(
        None,
        "--date",
        help="Date (YYYY-MM-DD) to treat as today. Defaults to today.",
    ),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the time entry SQLite database."
    ),
) -> None:
    """Print rollups, streaks and top projects."""
    from .reporting import SummaryPrinter

    target = _parse_day(date) if date else datetime.now()
    SummaryPrinter(db_path=db_path or get_db_path()).print_summary(target.date())


@app.command()
def search(
    start: Optional[str] = typer.Option(None, "--start", help="First date (YYYY-MM-DD)."),
    end: Optional[str] = typer.Option(None, "--end", help="Last date (YYYY-MM-DD)."),
    project: Optional[str] = typer.Option(None, "--project"),
    branch: Optional[str] = typer.Option(None, "--branch"),
    language: Optional[str] = typer.Option(None, "--language"),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the time entry SQLite database."
    ),
) -> None:
    """List stored entries matching the filters."""
    from .reporting import SummaryPrinter

    printer = SummaryPrinter(db_path=db_path or get_db_path())
    entries = printer.store.search_entries(
        _parse_day(start).date() if start else None,
        _parse_day(end).date() if end else None,
        project=project,
        branch=branch,
        language=language,
    )
    printer.print_entries(entries)


def _parse_day(value: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:
        raise typer.BadParameter(f"invalid date {value!r}; expected YYYY-MM-DD") from exc
