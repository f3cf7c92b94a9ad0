"""Settings validation."""

from datetime import timedelta

import pytest

from coding_tracker.config import HealthSettings, TrackerSettings


def test_defaults():
    settings = TrackerSettings()
    assert settings.inactivity_timeout == timedelta(minutes=2.5)
    assert settings.focus_timeout == timedelta(minutes=3)
    assert settings.tick_interval == timedelta(seconds=5)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"inactivity_minutes": 0.25},
        {"inactivity_minutes": 61},
        {"focus_minutes": 0},
        {"tick_seconds": 0.5},
        {"tick_seconds": 61},
        {"branch_poll_seconds": 301},
    ],
)
def test_out_of_bounds_values_are_rejected(kwargs):
    with pytest.raises(ValueError):
        TrackerSettings.from_minutes(**kwargs)


def test_bounds_are_inclusive():
    settings = TrackerSettings.from_minutes(
        inactivity_minutes=0.5, focus_minutes=60, tick_seconds=60, branch_poll_seconds=300
    )
    assert settings.flush_threshold == timedelta(seconds=720)


def test_health_intervals_are_bounded():
    with pytest.raises(ValueError):
        HealthSettings.from_minutes(True, eye_rest_minutes=4)
    with pytest.raises(ValueError):
        HealthSettings.from_minutes(True, break_minutes=500)
    assert HealthSettings.from_minutes(True, stretch_minutes=10).enabled
