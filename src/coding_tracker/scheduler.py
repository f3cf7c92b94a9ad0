"""Periodic commit of accrued time to the entry store."""

from __future__ import annotations

import logging
from datetime import datetime, time
from typing import Optional

from .clock import Clock
from .config import TrackerSettings
from .db import EntryStore, StorageError
from .models import EntryKey, EntryRejected
from .session import FlushRequest, SessionStateMachine

logger = logging.getLogger(__name__)


class FlushScheduler:
    """Drives accrual on each tick and merges drained time into the store.

    Drained requests wait in ``_pending`` until a write succeeds. Storage
    failures leave them queued for the next tick; after
    ``settings.max_flush_failures`` consecutive failed ticks they are discarded
    and the scheduler reports degraded storage until a write succeeds again.
    """

    def __init__(
        self,
        machine: SessionStateMachine,
        store: EntryStore,
        settings: TrackerSettings,
        clock: Clock,
    ) -> None:
        self._machine = machine
        self._store = store
        self.settings = settings
        self._clock = clock
        self._pending: list[FlushRequest] = []
        self._consecutive_failures = 0
        self.storage_degraded = False
        self.discarded_minutes = 0.0

    @property
    def pending(self) -> list[FlushRequest]:
        return list(self._pending)

    def tick(self) -> None:
        self.accrue()
        self.commit_pending()

    def accrue(self) -> None:
        """Advance the session and queue any drained time, without writing."""
        now = self._clock.monotonic()
        machine = self._machine

        self.sync_day()
        machine.advance(now)
        if machine.consume_skip_flag():
            logger.debug("Skipping threshold flush after clock adjustment.")
        elif machine.accumulated_seconds >= self.settings.flush_threshold.total_seconds():
            self.enqueue(machine.drain("threshold"))

    def sync_day(self) -> None:
        """Move the session to today's date, splitting accrual at midnight.

        Time accrued before local midnight stays with the previous date.
        """
        machine = self._machine
        wall = self._clock.now()
        today = wall.date()
        if today == machine.session.day:
            return
        since_midnight = (wall - datetime.combine(today, time.min)).total_seconds()
        midnight = self._clock.monotonic() - since_midnight
        self.enqueue(machine.roll_day(today, midnight))

    def submit(self, request: Optional[FlushRequest]) -> None:
        """Commit a segmentation flush right away."""
        self.enqueue(request)
        self.commit_pending()

    def drain_now(self, reason: str) -> None:
        """Drain everything accrued so far into the pending list."""
        self.sync_day()
        self._machine.advance(max(self._clock.monotonic(), self._machine.session.last_accrued_at))
        self._machine.consume_skip_flag()
        self.enqueue(self._machine.drain(reason))

    def shutdown(self) -> None:
        """Final best-effort flush; never raises on storage errors."""
        self.drain_now("shutdown")
        self.commit_remaining()

    def commit_remaining(self) -> None:
        self.commit_pending()
        if self._pending:
            logger.error(
                "Shutting down with %.2f unsaved minutes.",
                sum(request.minutes for request in self._pending),
            )

    def commit_pending(self) -> None:
        if not self._pending:
            return
        # Only the loop thread commits. The list itself is replaced, not mutated.
        while self._pending:
            request = self._pending[0]
            try:
                self._store.merge_entry(request.key, request.minutes)
            except EntryRejected as exc:
                logger.error("Discarding %.2f minutes for %s: %s", request.minutes, request.key, exc)
                self.discarded_minutes += request.minutes
            except StorageError as exc:
                self._record_failure(exc)
                return
            else:
                logger.debug(
                    "Flushed %.2f minutes to %s (%s).", request.minutes, request.key, request.reason
                )
            self._pending = self._pending[1:]

        self._consecutive_failures = 0
        if self.storage_degraded:
            logger.info("Entry store is writable again.")
            self.storage_degraded = False

    def pending_minutes(self) -> dict[EntryKey, float]:
        totals: dict[EntryKey, float] = {}
        for request in self._pending:
            totals[request.key] = totals.get(request.key, 0.0) + request.minutes
        return totals

    def enqueue(self, request: Optional[FlushRequest]) -> None:
        if request is None:
            return
        for queued in self._pending:
            if queued.key == request.key:
                queued.seconds += request.seconds
                return
        self._pending = [*self._pending, request]

    def _record_failure(self, exc: StorageError) -> None:
        self._consecutive_failures += 1
        logger.warning(
            "Flush failed (%d/%d): %s",
            self._consecutive_failures,
            self.settings.max_flush_failures,
            exc,
        )
        if self._consecutive_failures < self.settings.max_flush_failures:
            return
        lost = sum(request.minutes for request in self._pending)
        logger.error(
            "Entry store unavailable after %d attempts; discarding %.2f minutes "
            "and continuing in memory only.",
            self._consecutive_failures,
            lost,
        )
        self.discarded_minutes += lost
        self._pending = []
        self._consecutive_failures = 0
        self.storage_degraded = True
