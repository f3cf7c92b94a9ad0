"""FastAPI application exposing the tracker to editor plugins and dashboards."""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from .config import HealthSettings, TrackerSettings
from .context import WorkspaceContextProvider
from .db import SqliteEntryStore, StorageError
from .models import ActivityKind
from .paths import get_db_path
from .reporting import format_duration
from .tracker import ActivityTracker

logger = logging.getLogger(__name__)


class ActivityPayload(BaseModel):
    kind: ActivityKind

    model_config = ConfigDict(extra="forbid")


class ContextPayload(BaseModel):
    project: Optional[str] = None
    branch: Optional[str] = None
    language: Optional[str] = None
    file_path: Optional[str] = None
    language_id: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class SavePayload(BaseModel):
    reason: str = "manual save"

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    tracker: Optional[ActivityTracker] = None,
    db_path: Optional[Path] = None,
    settings: Optional[TrackerSettings] = None,
    workspace: Optional[Path] = None,
    health_settings: Optional[HealthSettings] = None,
    start_tracker: bool = True,
) -> FastAPI:
    """Instantiate the FastAPI application.

    When ``tracker`` is not given one is built around a SQLite store at
    ``db_path``. With ``start_tracker`` the tracker loop runs for the lifetime
    of the app and is flushed on shutdown.
    """
    if tracker is None:
        tracker = ActivityTracker(
            SqliteEntryStore(Path(db_path or get_db_path())),
            settings or TrackerSettings(),
            context_provider=WorkspaceContextProvider(workspace) if workspace else None,
            health_settings=health_settings,
        )

    app = FastAPI(title="Coding Time Tracker", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.tracker = tracker

    @app.on_event("startup")
    async def _startup() -> None:
        if start_tracker:
            tracker.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        if start_tracker:
            tracker.stop()

    @app.exception_handler(StorageError)
    async def _storage_error(request: Request, exc: StorageError) -> JSONResponse:
        logger.warning("Storage error while serving %s: %s", request.url.path, exc)
        return JSONResponse(status_code=503, content={"detail": "Entry store unavailable"})

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        tracker: ActivityTracker = request.app.state.tracker
        context = tracker.current_context()
        reminder = tracker.health.last_reminder
        return {
            "running": tracker.is_running(),
            "active": tracker.is_active(),
            "state": tracker.state(),
            "project": context.project,
            "branch": tracker.current_branch(),
            "language": tracker.current_language(),
            "storage_degraded": tracker.storage_degraded,
            "inactivity_minutes": tracker.settings.inactivity_timeout.total_seconds() / 60.0,
            "focus_minutes": tracker.settings.focus_timeout.total_seconds() / 60.0,
            "last_reminder": (
                {"kind": reminder.kind.value, "message": reminder.message}
                if reminder
                else None
            ),
        }

    @app.post("/api/activity", status_code=202)
    def activity(payload: ActivityPayload, request: Request) -> Dict[str, Any]:
        request.app.state.tracker.record_activity(payload.kind)
        return {"accepted": True}

    @app.post("/api/context", status_code=202)
    def context(payload: ContextPayload, request: Request) -> Dict[str, Any]:
        tracker: ActivityTracker = request.app.state.tracker
        changes = payload.model_dump(
            exclude_unset=True, include={"project", "branch", "language"}
        )
        if "project" in changes and not (changes["project"] or "").strip():
            raise HTTPException(status_code=400, detail="project must not be empty")
        if changes:
            tracker.update_context(**changes)
        if "file_path" in payload.model_fields_set or "language_id" in payload.model_fields_set:
            tracker.active_file_changed(payload.file_path, payload.language_id)
        return {"accepted": True}

    @app.post("/api/save", status_code=202)
    def save(request: Request, payload: Optional[SavePayload] = None) -> Dict[str, Any]:
        reason = payload.reason if payload else "manual save"
        request.app.state.tracker.save_now(reason)
        return {"accepted": True}

    @app.get("/api/totals")
    def totals(request: Request) -> Dict[str, Any]:
        tracker: ActivityTracker = request.app.state.tracker
        rollup = tracker.totals()
        return {
            "today": rollup.today,
            "this_week": rollup.this_week,
            "this_month": rollup.this_month,
            "this_year": rollup.this_year,
            "all_time": rollup.all_time,
            "last_week": rollup.last_week,
            "last_month": rollup.last_month,
            "current_project_today": tracker.current_project_time(),
            "today_display": format_duration(rollup.today * 60),
        }

    @app.get("/api/summary")
    def summary(request: Request) -> Dict[str, Any]:
        return request.app.state.tracker.summary_data().to_dict()

    @app.get("/api/search")
    def search(
        request: Request,
        start: Optional[str] = Query(
            default=None, description="Start date in YYYY-MM-DD format (inclusive)."
        ),
        end: Optional[str] = Query(
            default=None, description="End date in YYYY-MM-DD format (inclusive)."
        ),
        project: Optional[str] = Query(default=None),
        branch: Optional[str] = Query(default=None),
        language: Optional[str] = Query(default=None),
    ) -> Dict[str, Any]:
        start_day = _parse_date(start) if start else None
        end_day = _parse_date(end) if end else None
        if start_day and end_day and end_day < start_day:
            raise HTTPException(
                status_code=400, detail="end date must be on or after start date"
            )
        entries = request.app.state.tracker.search_entries(
            start_day, end_day, project, branch, language
        )
        return {
            "entries": [entry.to_dict() for entry in entries],
            "total_minutes": sum(entry.time_spent_minutes for entry in entries),
        }

    @app.get("/api/insights")
    def insights(request: Request) -> Dict[str, Any]:
        return request.app.state.tracker.insights()

    @app.get("/api/heatmap")
    def heatmap(
        request: Request,
        year: Optional[int] = Query(default=None, ge=1970, le=9999),
        month: Optional[int] = Query(default=None, ge=1, le=12),
    ) -> Dict[str, Any]:
        tracker: ActivityTracker = request.app.state.tracker
        today = tracker.today()
        year = year or today.year
        month = month or today.month
        return {
            "year": year,
            "month": month,
            "days": [
                {"date": day.date.isoformat(), "minutes": day.minutes, "level": day.level}
                for day in tracker.heatmap(year, month)
            ],
        }

    @app.get("/api/projects")
    def projects(request: Request) -> Dict[str, Any]:
        return {"projects": request.app.state.tracker.projects()}

    @app.get("/api/projects/{project}/branches")
    def branches(project: str, request: Request) -> Dict[str, Any]:
        return {
            "project": project,
            "branches": request.app.state.tracker.branches(project),
        }

    return app


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc
