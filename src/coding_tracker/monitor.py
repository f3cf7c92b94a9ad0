"""Non-blocking intake of raw editor activity."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Optional

from .clock import Clock
from .models import ActivityKind, ActivitySignal

logger = logging.getLogger(__name__)


class ActivityMonitor:
    """Stamps activity signals and hands them to the tracker loop.

    Edits and cursor moves that arrive while an earlier one is still waiting in
    the queue are folded into that queued signal by moving its timestamp
    forward, so a typing burst costs one queue item and nothing is dropped.
    Focus changes are always queued and end the current burst.
    """

    def __init__(self, sink: "queue.Queue[object]", clock: Clock) -> None:
        self._sink = sink
        self._clock = clock
        self._lock = threading.Lock()
        self._burst: Optional[ActivitySignal] = None
        self.received = 0
        self.coalesced = 0
        self.rejected = 0

    def record(self, kind: ActivityKind | str, timestamp: Optional[float] = None) -> None:
        try:
            kind = ActivityKind(kind)
        except ValueError:
            logger.debug("Ignoring unknown activity kind %r.", kind)
            with self._lock:
                self.rejected += 1
            return
        stamp = self._clock.monotonic() if timestamp is None else timestamp
        with self._lock:
            self.received += 1
            if kind.is_input and self._burst is not None:
                self._burst.timestamp = max(self._burst.timestamp, stamp)
                self.coalesced += 1
                return
            signal = ActivitySignal(kind=kind, timestamp=stamp)
            self._burst = signal if kind.is_input else None
            self._sink.put_nowait(signal)

    def claim(self, signal: ActivitySignal) -> ActivitySignal:
        """Take ownership of a dequeued signal and return a stable copy."""
        with self._lock:
            if self._burst is signal:
                self._burst = None
            return ActivitySignal(kind=signal.kind, timestamp=signal.timestamp)
