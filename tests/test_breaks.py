"""Tests for the per-employee break lifecycle. Every call takes an explicit `now`."""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import MONDAY
from modules.setup_sheet.breaks import BreakTracker, elapsed_minutes
from modules.setup_sheet.errors import (
    AlreadyOnBreakError,
    EmployeeNotFoundError,
    NoActiveBreakError,
    ValidationError,
)

START = datetime(2024, 6, 10, 11, 0, tzinfo=timezone.utc)


@pytest.fixture
def tracker(monday_setup):
    return BreakTracker(monday_setup)


def test_second_start_while_active_fails(tracker):
    tracker.start_break("alice", MONDAY, 30, START)
    assert tracker.remaining_break_time("alice", MONDAY, START) == 30

    with pytest.raises(AlreadyOnBreakError):
        tracker.start_break("alice", MONDAY, 15, START + timedelta(minutes=1))

    assert len(tracker.breaks_for("alice", MONDAY)) == 1


def test_rebreak_after_end(tracker):
    tracker.start_break("alice", MONDAY, 30, START)
    tracker.end_break("alice", MONDAY, START + timedelta(minutes=20))
    assert tracker.has_had_break("alice", MONDAY)

    record = tracker.start_break("alice", MONDAY, 10, START + timedelta(hours=2))

    assert record.duration == 10
    assert tracker.has_had_break("alice", MONDAY)
    assert tracker.break_status("alice", MONDAY) == "active"
    assert [b.status for b in tracker.breaks_for("alice", MONDAY)] == ["completed", "active"]


def test_remaining_time_counts_down_and_clamps(tracker):
    tracker.start_break("bob", MONDAY, 30, START)
    assert tracker.remaining_break_time("bob", MONDAY, START + timedelta(minutes=12, seconds=59)) == 18
    assert tracker.remaining_break_time("bob", MONDAY, START + timedelta(minutes=45)) == 0


def test_remaining_time_without_active_break(tracker):
    assert tracker.remaining_break_time("bob", MONDAY, START) == 0


def test_end_without_active_break(tracker):
    with pytest.raises(NoActiveBreakError):
        tracker.end_break("alice", MONDAY, START)


def test_end_records_end_time(tracker):
    tracker.start_break("carla", MONDAY, 30, START)
    record = tracker.end_break("carla", MONDAY, START + timedelta(minutes=25))
    assert record.status == "completed"
    assert record.end_time == START + timedelta(minutes=25)
    assert tracker.break_status("carla", MONDAY) == "completed"


def test_status_none_before_any_break(tracker):
    assert tracker.break_status("alice", MONDAY) == "none"
    assert not tracker.has_had_break("alice", MONDAY)


@pytest.mark.parametrize("duration", [0, -5, True])
def test_non_positive_duration_rejected(tracker, duration):
    with pytest.raises(ValidationError):
        tracker.start_break("alice", MONDAY, duration, START)


def test_unknown_employee(tracker):
    with pytest.raises(EmployeeNotFoundError):
        tracker.start_break("zed", MONDAY, 30, START)


def test_breaks_are_per_day(tracker):
    tuesday = MONDAY + timedelta(days=1)
    tracker.setup.day_for(tuesday).roster = list(tracker.setup.day_for(MONDAY).roster)

    tracker.start_break("alice", MONDAY, 30, START)
    tracker.start_break("alice", tuesday, 30, START + timedelta(days=1))

    assert tracker.break_status("alice", MONDAY) == "active"
    assert tracker.break_status("alice", tuesday) == "active"
    tracker.setup.validate()


def test_elapsed_minutes_floors_and_never_negative():
    assert elapsed_minutes(START, START + timedelta(seconds=119)) == 1
    assert elapsed_minutes(START, START - timedelta(minutes=5)) == 0
