"""Domain models for tracked coding time."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

MAX_MINUTES_PER_DAY = 1440.0
UNKNOWN = "unknown"


class EntryRejected(ValueError):
    """A time delta that would break the per-day minutes invariant."""


class ActivityKind(str, Enum):
    EDIT = "edit"
    CURSOR = "cursor"
    FOCUS_GAINED = "focus-gained"
    FOCUS_LOST = "focus-lost"

    @property
    def is_input(self) -> bool:
        return self in (ActivityKind.EDIT, ActivityKind.CURSOR)


class SessionState(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"


@dataclass(slots=True)
class ActivitySignal:
    """A single stamped activity observation.

    The timestamp is in the monotonic time base of the tracker's clock.
    """

    kind: ActivityKind
    timestamp: float


@dataclass(frozen=True, slots=True)
class TrackingContext:
    """What the currently accruing time is attributed to."""

    project: str
    branch: Optional[str] = None
    language: Optional[str] = None


@dataclass(frozen=True, slots=True)
class EntryKey:
    date: date
    project: str
    branch: Optional[str]
    language: Optional[str]

    @classmethod
    def for_context(cls, day: date, context: TrackingContext) -> "EntryKey":
        return cls(
            date=day,
            project=context.project,
            branch=context.branch,
            language=context.language,
        )


@dataclass(slots=True)
class TimeEntry:
    """Minutes spent on one (date, project, branch, language) key."""

    date: date
    project: str
    branch: Optional[str]
    language: Optional[str]
    time_spent_minutes: float

    @property
    def key(self) -> EntryKey:
        return EntryKey(self.date, self.project, self.branch, self.language)

    def to_dict(self) -> dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "project": self.project,
            "branch": self.branch,
            "language": self.language,
            "time_spent_minutes": self.time_spent_minutes,
        }


@dataclass(slots=True)
class Session:
    """Live accrual state. Owned by the session state machine."""

    state: SessionState
    context: TrackingContext
    day: date
    last_activity_at: float
    last_flush_at: float
    last_accrued_at: float
    last_focus_lost_at: Optional[float] = None
    focused: bool = True
    accumulated_unflushed_seconds: float = 0.0
    pause_count: int = field(default=0)
