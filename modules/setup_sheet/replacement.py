"""
modules/setup_sheet/replacement.py

Swap one employee for another across a whole day.

A replacement rebinds every position the old employee holds that day and
re-keys their active break (if any) to the new identity. Completed breaks
stay attributed to whoever actually took them.

How the new identity is produced is pluggable:
- FreeTextIdentityResolver: any typed name, a fresh id is synthesised
- RosterIdentityResolver:   the name must match someone on that day's roster
"""

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from modules.setup_sheet.aggregate import Day, RosterEmployee, WeeklySetup
from modules.setup_sheet.errors import EmployeeNotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ReplacementResult:
    old_employee_id: str
    new_employee_id: str
    new_employee_name: str
    date: date
    positions_rebound: List[str] = field(default_factory=list)
    active_break_rekeyed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "old_employee_id": self.old_employee_id,
            "new_employee_id": self.new_employee_id,
            "new_employee_name": self.new_employee_name,
            "date": self.date.isoformat(),
            "positions_rebound": list(self.positions_rebound),
            "active_break_rekeyed": self.active_break_rekeyed,
        }


# =============================================================================
# IDENTITY RESOLUTION
# =============================================================================

class ReplacementIdentityResolver(ABC):
    """Turns a typed replacement name into a roster identity for one day."""

    @abstractmethod
    def resolve(self, day: Day, name: str, replaced: Optional[RosterEmployee]) -> RosterEmployee:
        ...


class FreeTextIdentityResolver(ReplacementIdentityResolver):
    """
    Name substitution without a roster lookup.

    The new employee inherits the replaced employee's area and shift window so
    the positions they take over stay within their schedule.
    """

    def resolve(self, day: Day, name: str, replaced: Optional[RosterEmployee]) -> RosterEmployee:
        return RosterEmployee(
            id=f"replacement-{uuid.uuid4().hex[:12]}",
            name=name,
            area=replaced.area if replaced else None,
            time_blocks=list(replaced.time_blocks) if replaced else [],
        )


class RosterIdentityResolver(ReplacementIdentityResolver):
    """Strict mode: the replacement has to be scheduled that day already."""

    def resolve(self, day: Day, name: str, replaced: Optional[RosterEmployee]) -> RosterEmployee:
        wanted = name.casefold()
        for employee in day.roster:
            if employee.is_active and employee.name.strip().casefold() == wanted:
                if replaced is not None and employee.id == replaced.id:
                    break
                return employee
        raise ValidationError(
            f"'{name}' is not on the schedule for {day.date.isoformat()}",
            {"name": name, "date": day.date.isoformat()},
        )


# =============================================================================
# WORKFLOW
# =============================================================================

class ReplacementWorkflow:
    def __init__(self, setup: WeeklySetup, resolver: Optional[ReplacementIdentityResolver] = None):
        self.setup = setup
        self.resolver = resolver or FreeTextIdentityResolver()

    def replace_employee(self, old_employee_id: str, new_employee_name: str, replace_date: date) -> ReplacementResult:
        name = (new_employee_name or "").strip()
        if not name:
            raise ValidationError(
                "Replacement name cannot be blank",
                {"employee_id": old_employee_id, "date": replace_date.isoformat()},
            )

        day = self.setup.day_for(replace_date)
        old_roster = day.find_roster_employee(old_employee_id)
        held = day.positions_held_by(old_employee_id)
        breaks = self.setup.breaks_for(old_employee_id, replace_date)

        if old_roster is None and not held and not breaks:
            raise EmployeeNotFoundError(
                f"Employee {old_employee_id} has nothing to replace on {replace_date.isoformat()}",
                {"employee_id": old_employee_id, "date": replace_date.isoformat()},
            )

        already_replaced = old_roster is not None and not old_roster.is_active
        if already_replaced and not held and not any(b.is_active for b in breaks):
            raise EmployeeNotFoundError(
                f"{old_roster.name} was already replaced by {old_roster.replaced_by} on {replace_date.isoformat()}",
                {
                    "employee_id": old_employee_id,
                    "replaced_by": old_roster.replaced_by,
                    "date": replace_date.isoformat(),
                },
            )

        # Work on copies; the aggregate is only touched once everything succeeded.
        staged_day = copy.deepcopy(day)
        staged_breaks = copy.deepcopy(self.setup.breaks)
        staged_old = staged_day.find_roster_employee(old_employee_id)

        new_employee = self.resolver.resolve(staged_day, name, staged_old)
        if new_employee.id == old_employee_id:
            raise ValidationError(
                f"{name} is the employee being replaced",
                {"employee_id": old_employee_id, "date": replace_date.isoformat()},
            )

        if staged_day.find_roster_employee(new_employee.id) is None:
            staged_day.roster.append(new_employee)

        result = ReplacementResult(
            old_employee_id=old_employee_id,
            new_employee_id=new_employee.id,
            new_employee_name=new_employee.name,
            date=replace_date,
        )

        for block, position in staged_day.positions_held_by(old_employee_id):
            holder = block.holder_of(new_employee.id)
            if holder is not None:
                raise ValidationError(
                    f"{new_employee.name} already holds '{holder.name}' in the "
                    f"{block.start} - {block.end} block and cannot also take '{position.name}'",
                    {"employee_id": new_employee.id, "block_id": block.id, "position_id": position.id},
                )
            position.bind(new_employee.id, new_employee.name)
            result.positions_rebound.append(position.id)

        new_on_break = any(
            r.employee_id == new_employee.id and r.break_date == replace_date and r.is_active
            for r in staged_breaks
        )
        for record in staged_breaks:
            if record.employee_id == old_employee_id and record.break_date == replace_date and record.is_active:
                if new_on_break:
                    raise ValidationError(
                        f"{new_employee.name} is already on a break on {replace_date.isoformat()}",
                        {"employee_id": new_employee.id, "date": replace_date.isoformat()},
                    )
                record.employee_id = new_employee.id
                result.active_break_rekeyed = True

        if staged_old is not None:
            staged_old.replaced_by = new_employee.id

        # Commit
        index = next(i for i, d in enumerate(self.setup.days) if d.date == replace_date)
        self.setup.days[index] = staged_day
        self.setup.breaks = staged_breaks

        logger.info(
            f"Replaced employee {old_employee_id} with {new_employee.name} ({new_employee.id}) on "
            f"{replace_date}: {len(result.positions_rebound)} positions, "
            f"active break moved: {result.active_break_rekeyed}"
        )
        return result


def resolver_for(strict: bool) -> ReplacementIdentityResolver:
    return RosterIdentityResolver() if strict else FreeTextIdentityResolver()
