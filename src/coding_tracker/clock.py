"""Time sources for the tracker."""

from __future__ import annotations

import time
from datetime import datetime, timedelta
from typing import Optional, Protocol


class Clock(Protocol):
    """Monotonic seconds for intervals, wall time for calendar dates."""

    def monotonic(self) -> float: ...

    def now(self) -> datetime: ...


class SystemClock:
    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now()


class ManualClock:
    """Clock that only moves when told to.

    ``advance`` moves monotonic and wall time together. ``rewind`` moves the
    monotonic reading backwards to simulate an unreliable time source, and
    ``set_now`` changes only the wall clock (a system clock adjustment).
    """

    def __init__(self, start: Optional[datetime] = None, monotonic_start: float = 0.0) -> None:
        self._wall = start or datetime(2024, 1, 1, 9, 0, 0)
        self._mono = float(monotonic_start)

    def monotonic(self) -> float:
        return self._mono

    def now(self) -> datetime:
        return self._wall

    def advance(self, seconds: float) -> None:
        self._mono += seconds
        self._wall += timedelta(seconds=seconds)

    def rewind(self, seconds: float) -> None:
        self._mono -= seconds

    def set_now(self, value: datetime) -> None:
        self._wall = value
