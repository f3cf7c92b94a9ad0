"""Active/Paused session state machine.

The machine is a plain object with no threads and no I/O. Every mutation is
driven by the caller with an explicit monotonic timestamp, so the tracker loop
can serialize signals and ticks and tests can replay them deterministically.

Accrual works against a watermark (``Session.last_accrued_at``). ``advance``
moves the watermark to ``now`` and, while Active, adds the elapsed time up to
the pause deadline. The deadline is inclusive: a session is still Active at
exactly ``last_activity_at + inactivity_timeout`` and pauses strictly after.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from .config import TrackerSettings
from .models import (
    ActivityKind,
    ActivitySignal,
    EntryKey,
    Session,
    SessionState,
    TrackingContext,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FlushRequest:
    """Drained seconds waiting to be merged into the entry store."""

    key: EntryKey
    seconds: float
    reason: str

    @property
    def minutes(self) -> float:
        return self.seconds / 60.0


class SessionStateMachine:
    def __init__(
        self,
        settings: TrackerSettings,
        context: TrackingContext,
        *,
        now: float,
        today: date,
        active: bool = True,
    ) -> None:
        self.settings = settings
        self.session = Session(
            state=SessionState.ACTIVE if active else SessionState.PAUSED,
            context=context,
            day=today,
            last_activity_at=now,
            last_flush_at=now,
            last_accrued_at=now,
        )
        self._skip_next_flush = False

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def is_active(self) -> bool:
        return self.session.state is SessionState.ACTIVE

    @property
    def context(self) -> TrackingContext:
        return self.session.context

    @property
    def accumulated_seconds(self) -> float:
        return self.session.accumulated_unflushed_seconds

    def pause_deadline(self) -> float:
        session = self.session
        if not session.focused and session.last_focus_lost_at is not None:
            return session.last_focus_lost_at + self.settings.focus_timeout.total_seconds()
        return session.last_activity_at + self.settings.inactivity_timeout.total_seconds()

    def advance(self, now: float) -> None:
        """Accrue elapsed time up to ``now`` and apply timeouts."""
        session = self.session
        if now < session.last_accrued_at:
            logger.warning(
                "Clock moved backwards by %.1fs; skipping accrual for this tick.",
                session.last_accrued_at - now,
            )
            session.last_accrued_at = now
            session.last_flush_at = min(session.last_flush_at, now)
            self._skip_next_flush = True
            return

        if session.state is SessionState.ACTIVE:
            deadline = self.pause_deadline()
            accrue_until = min(now, deadline)
            session.accumulated_unflushed_seconds += max(
                0.0, accrue_until - session.last_accrued_at
            )
            if now > deadline:
                self._pause()
        session.last_accrued_at = now

    def record_activity(self, signal: ActivitySignal) -> None:
        session = self.session
        # Signals queued before the last tick are applied at the watermark.
        at = max(signal.timestamp, session.last_accrued_at)
        self.advance(at)

        if signal.kind.is_input:
            session.last_activity_at = max(session.last_activity_at, at)
            session.focused = True
            session.last_focus_lost_at = None
            if session.state is SessionState.PAUSED:
                self._resume(at)
        elif signal.kind is ActivityKind.FOCUS_LOST:
            if session.focused:
                session.focused = False
                session.last_focus_lost_at = at
                logger.debug("Editor lost focus.")
        elif signal.kind is ActivityKind.FOCUS_GAINED:
            session.focused = True
            session.last_focus_lost_at = None
            if session.state is SessionState.ACTIVE:
                session.last_activity_at = max(session.last_activity_at, at)

    def switch_context(
        self, context: TrackingContext, now: float, reason: str = "context change"
    ) -> Optional[FlushRequest]:
        """Flush under the current context, then adopt ``context``."""
        if context == self.session.context:
            return None
        self.advance(max(now, self.session.last_accrued_at))
        request = self.drain(reason)
        logger.debug(
            "Context switched from %s to %s (%s).", self.session.context, context, reason
        )
        self.session.context = context
        return request

    def update_context(self, now: float, **changes: Optional[str]) -> Optional[FlushRequest]:
        return self.switch_context(replace(self.session.context, **changes), now)

    def roll_day(self, today: date, now: float) -> Optional[FlushRequest]:
        """Flush under the previous calendar date when the date changed."""
        if today == self.session.day:
            return None
        self.advance(max(now, self.session.last_accrued_at))
        request = self.drain("day rollover")
        logger.debug("Day rolled over from %s to %s.", self.session.day, today)
        self.session.day = today
        return request

    def drain(self, reason: str) -> Optional[FlushRequest]:
        """Empty the accumulator into a request for the current key."""
        session = self.session
        seconds = session.accumulated_unflushed_seconds
        session.accumulated_unflushed_seconds = 0.0
        session.last_flush_at = session.last_accrued_at
        if seconds <= 0.0:
            return None
        return FlushRequest(
            key=EntryKey.for_context(session.day, session.context),
            seconds=seconds,
            reason=reason,
        )

    def consume_skip_flag(self) -> bool:
        skip = self._skip_next_flush
        self._skip_next_flush = False
        return skip

    def _pause(self) -> None:
        self.session.state = SessionState.PAUSED
        self.session.pause_count += 1
        logger.debug("Session paused (%s).", "focus lost" if not self.session.focused else "inactive")

    def _resume(self, at: float) -> None:
        self.session.state = SessionState.ACTIVE
        self.session.last_accrued_at = max(self.session.last_accrued_at, at)
        logger.debug("Session resumed.")
