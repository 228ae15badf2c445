"""
modules/setup_sheet/assignment.py

Binds roster employees to positions inside a time block.

Rules:
- an employee holds at most one position per time block (rejected at assign
  time, never detected later)
- an employee may only be bound to a block their roster window fully covers
- assigning over an occupied position replaces the previous holder
"""

import logging
from datetime import date
from typing import List, Optional, Tuple

from modules.setup_sheet.aggregate import Position, RosterEmployee, TimeBlock, WeeklySetup
from modules.setup_sheet.errors import ConflictError, EmployeeNotFoundError, ValidationError
from modules.setup_sheet.time_model import TimeWindow

logger = logging.getLogger(__name__)


def _sort_key(employee: RosterEmployee):
    return employee.name.casefold(), employee.id


class AssignmentEngine:
    """Assignment commands and availability queries over one WeeklySetup."""

    def __init__(self, setup: WeeklySetup):
        self.setup = setup

    def available_employees_for_block(
        self,
        block_date: date,
        block_start: str,
        block_end: str,
        position_id: Optional[str] = None,
    ) -> List[RosterEmployee]:
        """
        Roster employees whose shift window fully contains [block_start, block_end).

        Employees already holding a different position in the same block are
        left out. With `position_id`, the current holder of that position is
        kept and the list is narrowed to the position's department.
        """
        window = TimeWindow.of(block_start, block_end)
        day = self.setup.day_for(block_date)

        position = None
        if position_id is not None:
            _, _, position = self.setup.find_position(position_id)

        busy = set()
        for block in day.time_blocks:
            if block.window() != window:
                continue
            for other in block.positions:
                if other.employee_id and (position is None or other.id != position.id):
                    busy.add(other.employee_id)

        available = []
        for employee in day.roster:
            if not employee.is_active or employee.id in busy:
                continue
            if not employee.covers(window):
                continue
            if position is not None and employee.area is not None and employee.area != position.department:
                continue
            available.append(employee)

        return sorted(available, key=_sort_key)

    def _roster_employee(self, block_date: date, employee_id: str) -> RosterEmployee:
        day = self.setup.day_for(block_date)
        employee = day.find_roster_employee(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(
                f"Employee {employee_id} is not on the schedule for {block_date.isoformat()}",
                {"employee_id": employee_id, "date": block_date.isoformat()},
            )
        return employee

    def assign(self, position_id: str, employee_id: str) -> Position:
        day, block, position = self.setup.find_position(position_id)
        employee = self._roster_employee(day.date, employee_id)

        if not employee.is_active:
            raise ValidationError(
                f"{employee.name} was replaced by another employee on {day.date.isoformat()}",
                {"employee_id": employee_id, "replaced_by": employee.replaced_by, "date": day.date.isoformat()},
            )

        if position.employee_id == employee_id:
            return position

        holder = block.holder_of(employee_id)
        if holder is not None:
            raise ConflictError(
                f"{employee.name} is already assigned to '{holder.name}' in the "
                f"{block.start} - {block.end} block on {day.date.isoformat()}",
                {
                    "employee_id": employee_id,
                    "position_id": holder.id,
                    "requested_position_id": position.id,
                    "block_id": block.id,
                    "date": day.date.isoformat(),
                },
            )

        if not employee.covers(block.window()):
            raise ValidationError(
                f"{employee.name} is not scheduled for the whole "
                f"{block.start} - {block.end} block on {day.date.isoformat()}",
                {
                    "employee_id": employee_id,
                    "block_id": block.id,
                    "time_blocks": list(employee.time_blocks),
                },
            )

        previous = position.employee_name
        position.bind(employee.id, employee.name)

        if previous:
            logger.info(f"Reassigned '{position.name}' ({block.start}-{block.end}, {day.date}) from {previous} to {employee.name}")
        else:
            logger.info(f"Assigned {employee.name} to '{position.name}' ({block.start}-{block.end}, {day.date})")

        return position

    def unassign(self, position_id: str) -> Position:
        day, block, position = self.setup.find_position(position_id)
        if position.is_assigned:
            logger.info(f"Cleared {position.employee_name} from '{position.name}' ({block.start}-{block.end}, {day.date})")
            position.clear()
        return position

    def assignments_for_employee(self, employee_id: str, block_date: date) -> List[Tuple[TimeBlock, Position]]:
        return self.setup.day_for(block_date).positions_held_by(employee_id)

    def unassigned_employees(self, block_date: date) -> List[RosterEmployee]:
        """Active roster employees with no position that day."""
        day = self.setup.day_for(block_date)
        assigned = {p.employee_id for block in day.time_blocks for p in block.positions if p.employee_id}
        return sorted(
            [e for e in day.roster if e.is_active and e.id not in assigned],
            key=_sort_key,
        )
