"""The tracker owns the session and runs the scheduler loop."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Optional

from . import aggregation
from .clock import Clock, SystemClock
from .config import HealthSettings, TrackerSettings
from .context import BranchPoller, WorkspaceContextProvider
from .db import EntryStore
from .health import HealthReminders
from .languages import detect_language_from_file, detect_language_from_language_id
from .models import (
    UNKNOWN,
    ActivityKind,
    ActivitySignal,
    EntryKey,
    TimeEntry,
    TrackingContext,
)
from .monitor import ActivityMonitor
from .scheduler import FlushScheduler
from .session import SessionStateMachine

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _ContextUpdate:
    changes: dict[str, Optional[str]]
    timestamp: float


@dataclass(slots=True)
class _SaveRequest:
    reason: str


_WAKE = object()


class ActivityTracker:
    """Serializes every session mutation on one loop thread.

    Other threads only enqueue: activity signals through :attr:`monitor`,
    context changes through :meth:`update_context`, manual saves through
    :meth:`save_now`. The loop waits on that queue with a timeout equal to the
    time left until the next tick, so signals and ticks are handled in order
    on a single thread. Query methods combine stored entries with time that
    has accrued but is not yet written.
    """

    def __init__(
        self,
        store: EntryStore,
        settings: Optional[TrackerSettings] = None,
        *,
        clock: Optional[Clock] = None,
        context_provider: Optional[WorkspaceContextProvider] = None,
        health_settings: Optional[HealthSettings] = None,
        initial_context: Optional[TrackingContext] = None,
    ) -> None:
        self.store = store
        self.settings = settings or TrackerSettings()
        self.clock = clock or SystemClock()
        self._queue: "queue.Queue[object]" = queue.Queue()
        self.monitor = ActivityMonitor(self._queue, self.clock)

        if initial_context is None:
            initial_context = (
                context_provider.current_context()
                if context_provider
                else TrackingContext(project=UNKNOWN)
            )
        self._machine = SessionStateMachine(
            self.settings,
            initial_context,
            now=self.clock.monotonic(),
            today=self.clock.now().date(),
            # Without a known project nothing accrues until the first edit.
            active=initial_context.project != UNKNOWN,
        )
        self._scheduler = FlushScheduler(self._machine, store, self.settings, self.clock)
        self.health = HealthReminders(health_settings or HealthSettings())

        self._branch_poller: Optional[BranchPoller] = None
        if context_provider is not None:
            self._branch_poller = BranchPoller(
                context_provider,
                on_change=lambda branch: self.update_context(branch=branch),
                interval=self.settings.branch_poll_interval.total_seconds(),
                initial_branch=initial_context.branch,
            )

        self._lock = threading.RLock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._closed = False

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._run_loop, args=(stop_event,), name="tracker-loop", daemon=True
        )
        self._thread = thread
        self._stop_event = stop_event
        self._closed = False
        thread.start()
        if self._branch_poller:
            self._branch_poller.start()
        logger.info("Tracker started for %s.", self._machine.context.project)

    def stop(self) -> None:
        """Stop the loop and perform the final flush (bounded wait)."""
        timeout = self.settings.shutdown_timeout.total_seconds()
        if self._branch_poller:
            self._branch_poller.stop(timeout=timeout)
        thread, stop_event = self._thread, self._stop_event
        self._thread = None
        self._stop_event = None
        if thread and stop_event:
            stop_event.set()
            self._queue.put_nowait(_WAKE)
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("Tracker loop did not stop within %.1fs.", timeout)
            return
        self._final_flush()

    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    # -- signal delivery (any thread, never blocks) -------------------------

    def record_activity(self, kind: ActivityKind | str, timestamp: Optional[float] = None) -> None:
        self.monitor.record(kind, timestamp)

    def update_context(self, **changes: Optional[str]) -> None:
        """Queue a change to project, branch or language."""
        unknown = set(changes) - {"project", "branch", "language"}
        if unknown:
            raise TypeError(f"unknown context fields: {', '.join(sorted(unknown))}")
        self._queue.put_nowait(_ContextUpdate(changes, self.clock.monotonic()))

    def active_file_changed(
        self, file_path: Optional[str], language_id: Optional[str] = None
    ) -> None:
        if language_id:
            language = detect_language_from_language_id(language_id)
        else:
            language = detect_language_from_file(file_path)
        self.update_context(language=language)

    def save_now(self, reason: str = "manual save") -> None:
        self._queue.put_nowait(_SaveRequest(reason))

    # -- loop ----------------------------------------------------------------

    def pump(self) -> None:
        """Handle every queued message, then tick once."""
        self._drain_queue()
        self.tick()

    def tick(self) -> None:
        with self._lock:
            self._scheduler.accrue()
            self.health.observe(self._machine.is_active, self.clock.monotonic())
        self._scheduler.commit_pending()

    def _drain_queue(self) -> None:
        while True:
            try:
                message = self._queue.get_nowait()
            except queue.Empty:
                return
            self._handle(message)

    def _handle(self, message: object) -> None:
        # State changes happen under the lock; the store write does not.
        with self._lock:
            self._scheduler.sync_day()
            if isinstance(message, ActivitySignal):
                self._machine.record_activity(self.monitor.claim(message))
            elif isinstance(message, _ContextUpdate):
                request = self._machine.update_context(message.timestamp, **message.changes)
                self._scheduler.enqueue(request)
            elif isinstance(message, _SaveRequest):
                self._scheduler.drain_now(message.reason)
        self._scheduler.commit_pending()

    def _run_loop(self, stop_event: threading.Event) -> None:
        interval = self.settings.tick_interval.total_seconds()
        next_tick = self.clock.monotonic() + interval
        try:
            while not stop_event.is_set():
                timeout = max(0.0, next_tick - self.clock.monotonic())
                try:
                    message = self._queue.get(timeout=timeout)
                except queue.Empty:
                    message = None
                if message is not None and message is not _WAKE:
                    self._handle(message)
                now = self.clock.monotonic()
                if now >= next_tick:
                    self.tick()
                    next_tick = max(next_tick + interval, now)
        except Exception:
            logger.exception("Tracker loop crashed.")
        finally:
            self._drain_queue()
            self._final_flush()

    def _final_flush(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._scheduler.drain_now("shutdown")
        self._scheduler.commit_remaining()
        logger.info("Tracker stopped.")

    # -- queries -------------------------------------------------------------

    def is_active(self) -> bool:
        with self._lock:
            return self._machine.is_active

    def state(self) -> str:
        with self._lock:
            return self._machine.state.value

    def current_context(self) -> TrackingContext:
        with self._lock:
            return self._machine.context

    def current_project(self) -> str:
        return self.current_context().project

    def current_branch(self) -> str:
        return self.current_context().branch or UNKNOWN

    def current_language(self) -> str:
        return self.current_context().language or UNKNOWN

    @property
    def storage_degraded(self) -> bool:
        return self._scheduler.storage_degraded

    def unsaved_entries(self) -> list[TimeEntry]:
        """Accrued time not yet in the store, as entries."""
        with self._lock:
            live = dict(self._scheduler.pending_minutes())
            session = self._machine.session
            if session.accumulated_unflushed_seconds > 0:
                request_key = EntryKey.for_context(session.day, session.context)
                live[request_key] = (
                    live.get(request_key, 0.0) + session.accumulated_unflushed_seconds / 60.0
                )
        return [
            TimeEntry(key.date, key.project, key.branch, key.language, minutes)
            for key, minutes in live.items()
        ]

    def entries(self, start: Optional[date] = None, end: Optional[date] = None) -> list[TimeEntry]:
        stored = self.store.list_entries(start, end)
        live = aggregation.filter_entries(self.unsaved_entries(), start, end)
        return aggregation.merge_entries([*stored, *live])

    def today(self) -> date:
        return self.clock.now().date()

    def totals(self) -> aggregation.RollupTotals:
        return aggregation.rollup_totals(self.entries(), self.today())

    def today_total(self) -> float:
        today = self.today()
        return aggregation.total_between(self.entries(today, today), today, today)

    def weekly_total(self) -> float:
        return self.totals().this_week

    def monthly_total(self) -> float:
        return self.totals().this_month

    def yearly_total(self) -> float:
        return self.totals().this_year

    def all_time_total(self) -> float:
        return self.totals().all_time

    def current_project_time(self) -> float:
        today = self.today()
        project = self.current_project()
        return sum(
            e.time_spent_minutes for e in self.entries(today, today) if e.project == project
        )

    def search_entries(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        project: Optional[str] = None,
        branch: Optional[str] = None,
        language: Optional[str] = None,
    ) -> list[TimeEntry]:
        return aggregation.filter_entries(
            self.entries(start, end),
            start,
            end,
            project=project,
            branch=branch,
            language=language,
        )

    def summary_data(self) -> aggregation.SummaryData:
        return aggregation.summarize(self.entries())

    def projects(self) -> list[str]:
        return sorted({e.project for e in self.entries()}, key=str.casefold)

    def branches(self, project: str) -> list[str]:
        return sorted({e.branch for e in self.entries() if e.project == project and e.branch})

    def insights(self) -> dict[str, Any]:
        entries = self.entries()
        today = self.today()
        streaks = aggregation.calculate_streaks(entries, today)
        weekdays = aggregation.day_of_week_stats(entries)
        return {
            "streaks": {"longest": streaks.longest, "current": streaks.current},
            "day_of_week": {
                "averages": dict(zip(aggregation.WEEKDAY_NAMES, weekdays.averages)),
                "most_productive": weekdays.most_productive_name,
                "most_productive_average": weekdays.most_productive_average,
            },
            "last_30_days": [
                {"date": day.isoformat(), "minutes": minutes}
                for day, minutes in aggregation.daily_series(
                    entries, today - timedelta(days=29), today
                )
            ],
            "weekly": [
                {"week_start": day.isoformat(), "minutes": minutes}
                for day, minutes in aggregation.weekly_series(entries, today)
            ],
            "monthly": [
                {"month": day.strftime("%Y-%m"), "minutes": minutes}
                for day, minutes in aggregation.monthly_series(entries, today)
            ],
        }

    def heatmap(self, year: int, month: int) -> list[aggregation.HeatmapDay]:
        return aggregation.heatmap(self.entries(), year, month)
