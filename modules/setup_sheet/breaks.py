"""
modules/setup_sheet/breaks.py

Per-employee, per-day break lifecycle.

    none -> active -> completed -> active (re-break) -> completed ...

At most one active break exists per (employee, date). Every call takes the
evaluation time explicitly; nothing in here reads the wall clock.
"""

import logging
from datetime import date, datetime
from typing import List, Optional

from modules.setup_sheet.aggregate import (
    BREAK_ACTIVE,
    BREAK_COMPLETED,
    BreakRecord,
    WeeklySetup,
    new_id,
)
from modules.setup_sheet.errors import (
    AlreadyOnBreakError,
    EmployeeNotFoundError,
    NoActiveBreakError,
    ValidationError,
)

logger = logging.getLogger(__name__)

BREAK_STATUS_NONE = "none"


def elapsed_minutes(start: datetime, now: datetime) -> int:
    """Whole minutes between start and now, floored; never negative."""
    seconds = (now - start).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // 60)


class BreakTracker:
    def __init__(self, setup: WeeklySetup):
        self.setup = setup

    def _check_employee(self, employee_id: str, break_date: date):
        day = self.setup.day_for(break_date)
        if day.find_roster_employee(employee_id) is not None:
            return
        if day.positions_held_by(employee_id) or self.setup.breaks_for(employee_id, break_date):
            return
        raise EmployeeNotFoundError(
            f"Employee {employee_id} is not scheduled on {break_date.isoformat()}",
            {"employee_id": employee_id, "date": break_date.isoformat()},
        )

    def active_break(self, employee_id: str, break_date: date) -> Optional[BreakRecord]:
        for record in self.setup.breaks_for(employee_id, break_date):
            if record.is_active:
                return record
        return None

    def breaks_for(self, employee_id: str, break_date: date) -> List[BreakRecord]:
        return sorted(self.setup.breaks_for(employee_id, break_date), key=lambda b: b.start_time)

    def start_break(self, employee_id: str, break_date: date, planned_duration: int, now: datetime) -> BreakRecord:
        if isinstance(planned_duration, bool) or not isinstance(planned_duration, int) or planned_duration <= 0:
            raise ValidationError(
                f"Break duration must be a positive number of minutes, got {planned_duration!r}",
                {"employee_id": employee_id, "duration": planned_duration},
            )

        self._check_employee(employee_id, break_date)

        current = self.active_break(employee_id, break_date)
        if current is not None:
            raise AlreadyOnBreakError(
                f"Employee {employee_id} is already on a break that started at "
                f"{current.start_time.strftime('%H:%M')} on {break_date.isoformat()}",
                {"employee_id": employee_id, "date": break_date.isoformat(), "break_id": current.id},
            )

        record = BreakRecord(
            id=new_id("break"),
            employee_id=employee_id,
            break_date=break_date,
            start_time=now,
            duration=planned_duration,
            status=BREAK_ACTIVE,
        )
        self.setup.breaks.append(record)
        logger.info(f"Started {planned_duration} minute break for employee {employee_id} on {break_date}")
        return record

    def end_break(self, employee_id: str, break_date: date, now: datetime) -> BreakRecord:
        record = self.active_break(employee_id, break_date)
        if record is None:
            raise NoActiveBreakError(
                f"Employee {employee_id} is not on a break on {break_date.isoformat()}",
                {"employee_id": employee_id, "date": break_date.isoformat()},
            )

        record.end_time = now
        record.status = BREAK_COMPLETED
        logger.info(f"Ended break for employee {employee_id} on {break_date}")
        return record

    def remaining_break_time(self, employee_id: str, break_date: date, now: datetime) -> int:
        record = self.active_break(employee_id, break_date)
        if record is None:
            return 0
        return max(0, record.duration - elapsed_minutes(record.start_time, now))

    def has_had_break(self, employee_id: str, break_date: date) -> bool:
        return any(not r.is_active for r in self.setup.breaks_for(employee_id, break_date))

    def break_status(self, employee_id: str, break_date: date) -> str:
        records = self.setup.breaks_for(employee_id, break_date)
        if any(r.is_active for r in records):
            return BREAK_ACTIVE
        if records:
            return BREAK_COMPLETED
        return BREAK_STATUS_NONE
