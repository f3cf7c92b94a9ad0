"""Configuration models and helpers for the coding time tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

TIMEOUT_BOUNDS_MINUTES = (0.5, 60.0)
TICK_BOUNDS_SECONDS = (1.0, 60.0)
BRANCH_POLL_BOUNDS_SECONDS = (1.0, 300.0)


def _check_range(name: str, value: timedelta, low: timedelta, high: timedelta) -> None:
    if not low <= value <= high:
        raise ValueError(
            f"{name} must be between {low.total_seconds():g}s and "
            f"{high.total_seconds():g}s, got {value.total_seconds():g}s"
        )


@dataclass(slots=True)
class TrackerSettings:
    """Runtime configuration for the session tracker."""

    inactivity_timeout: timedelta = timedelta(minutes=2.5)
    focus_timeout: timedelta = timedelta(minutes=3)
    tick_interval: timedelta = timedelta(seconds=5)
    flush_threshold: timedelta = timedelta(seconds=60)
    branch_poll_interval: timedelta = timedelta(seconds=5)
    max_flush_failures: int = 5
    shutdown_timeout: timedelta = timedelta(seconds=5)

    def __post_init__(self) -> None:
        low, high = (timedelta(minutes=m) for m in TIMEOUT_BOUNDS_MINUTES)
        _check_range("inactivity_timeout", self.inactivity_timeout, low, high)
        _check_range("focus_timeout", self.focus_timeout, low, high)
        low, high = (timedelta(seconds=s) for s in TICK_BOUNDS_SECONDS)
        _check_range("tick_interval", self.tick_interval, low, high)
        low, high = (timedelta(seconds=s) for s in BRANCH_POLL_BOUNDS_SECONDS)
        _check_range("branch_poll_interval", self.branch_poll_interval, low, high)
        if self.flush_threshold <= timedelta(0):
            raise ValueError("flush_threshold must be positive")
        if self.max_flush_failures < 1:
            raise ValueError("max_flush_failures must be at least 1")
        if self.shutdown_timeout < timedelta(0):
            raise ValueError("shutdown_timeout must not be negative")

    @classmethod
    def from_minutes(
        cls,
        inactivity_minutes: float = 2.5,
        focus_minutes: float = 3.0,
        tick_seconds: float = 5.0,
        flush_seconds: float | None = None,
        branch_poll_seconds: float | None = None,
    ) -> "TrackerSettings":
        flush = flush_seconds if flush_seconds is not None else max(tick_seconds * 12, 60.0)
        poll = branch_poll_seconds if branch_poll_seconds is not None else tick_seconds
        return cls(
            inactivity_timeout=timedelta(minutes=inactivity_minutes),
            focus_timeout=timedelta(minutes=focus_minutes),
            tick_interval=timedelta(seconds=tick_seconds),
            flush_threshold=timedelta(seconds=flush),
            branch_poll_interval=timedelta(seconds=poll),
        )


@dataclass(slots=True)
class HealthSettings:
    """Break reminder configuration."""

    enabled: bool = False
    eye_rest_interval: timedelta = timedelta(minutes=20)
    stretch_interval: timedelta = timedelta(minutes=30)
    break_threshold: timedelta = timedelta(minutes=90)

    def __post_init__(self) -> None:
        _check_range(
            "eye_rest_interval",
            self.eye_rest_interval,
            timedelta(minutes=5),
            timedelta(minutes=120),
        )
        _check_range(
            "stretch_interval",
            self.stretch_interval,
            timedelta(minutes=10),
            timedelta(minutes=180),
        )
        _check_range(
            "break_threshold",
            self.break_threshold,
            timedelta(minutes=30),
            timedelta(minutes=480),
        )

    @classmethod
    def from_minutes(
        cls,
        enabled: bool,
        eye_rest_minutes: float = 20,
        stretch_minutes: float = 30,
        break_minutes: float = 90,
    ) -> "HealthSettings":
        return cls(
            enabled=enabled,
            eye_rest_interval=timedelta(minutes=eye_rest_minutes),
            stretch_interval=timedelta(minutes=stretch_minutes),
            break_threshold=timedelta(minutes=break_minutes),
        )
