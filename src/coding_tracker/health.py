"""Break reminders based on continuous active time."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .config import HealthSettings

logger = logging.getLogger(__name__)


class ReminderKind(str, Enum):
    EYE_REST = "eye-rest"
    STRETCH = "stretch"
    BREAK = "break"


_MESSAGES = {
    ReminderKind.EYE_REST: "Look at something 20 feet away for 20 seconds.",
    ReminderKind.STRETCH: "Stand up and stretch for a minute.",
    ReminderKind.BREAK: "You have been coding for a long stretch; take a break.",
}


@dataclass(slots=True)
class Reminder:
    kind: ReminderKind
    active_minutes: float

    @property
    def message(self) -> str:
        return _MESSAGES[self.kind]


def _log_reminder(reminder: Reminder) -> None:
    logger.info("%s (%.0f minutes active)", reminder.message, reminder.active_minutes)


class HealthReminders:
    """Emits reminders while the session stays active.

    ``observe`` is called once per tick. Any pause ends the run and resets
    all three counters.
    """

    def __init__(
        self,
        settings: HealthSettings,
        notify: Optional[Callable[[Reminder], None]] = None,
    ) -> None:
        self.settings = settings
        self._notify = notify or _log_reminder
        self._last_observed: Optional[float] = None
        self.active_seconds = 0.0
        self._next_eye_rest = settings.eye_rest_interval.total_seconds()
        self._next_stretch = settings.stretch_interval.total_seconds()
        self._break_sent = False
        self.last_reminder: Optional[Reminder] = None

    def observe(self, active: bool, now: float) -> list[Reminder]:
        if not active:
            self._last_observed = None
            self._reset()
            return []
        previous, self._last_observed = self._last_observed, now
        if previous is not None and now > previous:
            self.active_seconds += now - previous
        if not self.settings.enabled:
            return []

        due: list[Reminder] = []
        minutes = self.active_seconds / 60.0
        if self.active_seconds >= self._next_eye_rest:
            due.append(Reminder(ReminderKind.EYE_REST, minutes))
            self._next_eye_rest = self._advance(self._next_eye_rest, self.settings.eye_rest_interval.total_seconds())
        if self.active_seconds >= self._next_stretch:
            due.append(Reminder(ReminderKind.STRETCH, minutes))
            self._next_stretch = self._advance(self._next_stretch, self.settings.stretch_interval.total_seconds())
        if not self._break_sent and self.active_seconds >= self.settings.break_threshold.total_seconds():
            due.append(Reminder(ReminderKind.BREAK, minutes))
            self._break_sent = True

        for reminder in due:
            self.last_reminder = reminder
            self._notify(reminder)
        return due

    def _advance(self, mark: float, step: float) -> float:
        while mark <= self.active_seconds:
            mark += step
        return mark

    def _reset(self) -> None:
        self.active_seconds = 0.0
        self._next_eye_rest = self.settings.eye_rest_interval.total_seconds()
        self._next_stretch = self.settings.stretch_interval.total_seconds()
        self._break_sent = False
