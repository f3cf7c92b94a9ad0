"""State machine transitions, accrual and segmentation."""

from dataclasses import replace
from datetime import date

import pytest

from coding_tracker.config import TrackerSettings
from coding_tracker.models import ActivityKind, ActivitySignal, SessionState, TrackingContext
from coding_tracker.session import SessionStateMachine

CONTEXT = TrackingContext(project="api-server", branch="main", language="Python")
DAY = date(2024, 1, 10)


@pytest.fixture
def machine():
    return SessionStateMachine(TrackerSettings(), CONTEXT, now=0.0, today=DAY)


def signal(kind, at):
    return ActivitySignal(kind=ActivityKind(kind), timestamp=at)


def test_starts_active(machine):
    assert machine.state is SessionState.ACTIVE
    assert machine.accumulated_seconds == 0


def test_activity_within_timeout_keeps_session_active(machine):
    for t in range(0, 1000, 100):
        machine.record_activity(signal("edit", t))
        machine.advance(t + 99)
        assert machine.is_active
    assert machine.accumulated_seconds == pytest.approx(999)
    assert machine.session.pause_count == 0


def test_inactivity_boundary_is_inclusive(machine):
    machine.advance(150.0)
    assert machine.is_active
    machine.advance(150.001)
    assert machine.state is SessionState.PAUSED
    assert machine.accumulated_seconds == pytest.approx(150.0)


def test_pauses_once_per_idle_period(machine):
    machine.advance(200)
    machine.advance(250)
    machine.advance(299)
    assert machine.session.pause_count == 1
    assert machine.accumulated_seconds == pytest.approx(150)

    machine.record_activity(signal("cursor", 300))
    assert machine.is_active
    machine.advance(500)
    machine.advance(600)
    assert machine.session.pause_count == 2
    assert machine.accumulated_seconds == pytest.approx(300)


def test_paused_session_accrues_nothing(machine):
    machine.advance(1000)
    frozen = machine.accumulated_seconds
    machine.advance(5000)
    assert machine.accumulated_seconds == frozen


def test_short_focus_loss_is_a_grace_period(machine):
    machine.record_activity(signal("focus-lost", 0))
    machine.advance(60)
    machine.advance(119)
    assert machine.is_active
    machine.record_activity(signal("focus-gained", 120))
    machine.record_activity(signal("edit", 120))
    machine.advance(200)
    assert machine.is_active
    assert machine.session.pause_count == 0
    assert machine.accumulated_seconds == pytest.approx(200)


def test_focus_timeout_pauses(machine):
    machine.record_activity(signal("focus-lost", 10))
    machine.advance(190)
    assert machine.is_active
    machine.advance(191)
    assert machine.state is SessionState.PAUSED
    assert machine.accumulated_seconds == pytest.approx(190)


def test_focus_gained_alone_does_not_resume(machine):
    machine.advance(400)
    machine.record_activity(signal("focus-gained", 410))
    assert machine.state is SessionState.PAUSED
    machine.record_activity(signal("edit", 420))
    assert machine.is_active
    machine.advance(430)
    assert machine.accumulated_seconds == pytest.approx(150 + 10)


def test_late_signal_is_applied_at_watermark(machine):
    machine.advance(100)
    machine.record_activity(signal("edit", 90))
    assert machine.session.last_activity_at == 100
    assert machine.accumulated_seconds == pytest.approx(100)


def test_branch_switch_flushes_under_old_context(machine):
    machine.advance(100)
    request = machine.switch_context(replace(CONTEXT, branch="feature"), 100)
    assert request.key.branch == "main"
    assert request.seconds == pytest.approx(100)
    assert machine.accumulated_seconds == 0
    assert machine.context.branch == "feature"

    machine.record_activity(signal("edit", 100))
    machine.advance(150)
    tail = machine.drain("shutdown")
    assert tail.key.branch == "feature"
    assert request.seconds + tail.seconds == pytest.approx(150)


def test_same_context_is_not_a_segmentation(machine):
    machine.advance(30)
    assert machine.switch_context(CONTEXT, 30) is None
    assert machine.accumulated_seconds == pytest.approx(30)


def test_language_change_via_update_context(machine):
    machine.advance(40)
    request = machine.update_context(40, language="Rust")
    assert request.key.language == "Python"
    assert machine.context == TrackingContext("api-server", "main", "Rust")


def test_day_rollover_flushes_previous_date(machine):
    machine.advance(100)
    assert machine.roll_day(DAY, 100) is None
    request = machine.roll_day(date(2024, 1, 11), 120)
    assert request.key.date == DAY
    assert request.seconds == pytest.approx(120)
    assert machine.session.day == date(2024, 1, 11)


def test_clock_moving_backwards_skips_accrual(machine):
    machine.advance(50)
    machine.advance(40)
    assert machine.accumulated_seconds == pytest.approx(50)
    assert machine.consume_skip_flag() is True
    assert machine.consume_skip_flag() is False
    machine.advance(60)
    assert machine.accumulated_seconds == pytest.approx(70)


def test_drain_without_time_returns_nothing(machine):
    assert machine.drain("manual") is None


def test_starts_paused_until_first_edit():
    machine = SessionStateMachine(
        TrackerSettings(), TrackingContext("unknown"), now=0.0, today=DAY, active=False
    )
    machine.advance(600)
    assert machine.state is SessionState.PAUSED
    assert machine.accumulated_seconds == 0

    machine.record_activity(signal("edit", 600))
    machine.advance(630)
    assert machine.is_active
    assert machine.accumulated_seconds == pytest.approx(30)
    assert machine.session.pause_count == 0
