"""
modules/setup_sheet/aggregate.py

The WeeklySetup aggregate: one store's staffing plan for a calendar week.

WeeklySetup
  -> Day[]            (unique by date)
       -> TimeBlock[] -> Position[] (optional employee binding)
       -> RosterEmployee[]          (uploaded schedule for that day)
  -> BreakRecord[]    (keyed by employee_id + break_date)

The aggregate is the unit of persistence. Everything in here is plain
in-memory data; loading and saving happens in services/weekly_setup_service.py.
"""

import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterator, List, Optional, Tuple

from modules.setup_sheet.errors import ConflictError, NotFoundError, ValidationError
from modules.setup_sheet.positions import (
    CATEGORY_FRONT_COUNTER,
    Department,
    department_for_category,
    parse_department,
)
from modules.setup_sheet.time_model import TimeWindow, day_of_week, week_end_for

logger = logging.getLogger(__name__)


BREAK_ACTIVE = "active"
BREAK_COMPLETED = "completed"
BREAK_STATUSES = {BREAK_ACTIVE, BREAK_COMPLETED}


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"Invalid date: '{value}'", {"value": value})


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _iso(value: Optional[Any]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# =============================================================================
# ENTITIES
# =============================================================================

@dataclass
class RosterEmployee:
    """Read-only projection of one uploaded-schedule employee for one day."""
    id: str
    name: str
    area: Optional[Department] = None
    time_blocks: List[str] = field(default_factory=list)  # "08:00 - 14:00"
    replaced_by: Optional[str] = None
    position: Optional[str] = None  # scheduled position text, e.g. "Drive Thru"
    is_leadership: bool = False

    @property
    def is_active(self) -> bool:
        return self.replaced_by is None

    def windows(self) -> List[TimeWindow]:
        windows = []
        for block in self.time_blocks:
            try:
                windows.append(TimeWindow.parse(block))
            except ValidationError:
                logger.warning(f"Skipping invalid time block '{block}' for employee {self.name} ({self.id})")
        return windows

    def covers(self, window: TimeWindow) -> bool:
        return any(w.contains(window) for w in self.windows())

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "area": self.area.value if self.area else None,
            "time_blocks": list(self.time_blocks),
            "replaced_by": self.replaced_by,
            "position": self.position,
            "is_leadership": self.is_leadership,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "RosterEmployee":
        time_blocks = doc.get("time_blocks")
        if time_blocks is None:
            time_blocks = [doc["timeBlock"]] if doc.get("timeBlock") else []
        return cls(
            id=str(doc["id"]),
            name=str(doc.get("name") or ""),
            area=parse_department(doc.get("area")),
            time_blocks=list(time_blocks),
            replaced_by=doc.get("replaced_by"),
            position=doc.get("position"),
            is_leadership=bool(doc.get("is_leadership", False)),
        )


@dataclass
class Position:
    id: str
    name: str
    category: str = CATEGORY_FRONT_COUNTER
    department: Department = Department.FOH
    employee_id: Optional[str] = None
    employee_name: Optional[str] = None

    @property
    def is_assigned(self) -> bool:
        return self.employee_id is not None

    def bind(self, employee_id: str, employee_name: str):
        self.employee_id = employee_id
        self.employee_name = employee_name

    def clear(self):
        self.employee_id = None
        self.employee_name = None

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "department": self.department.value,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Position":
        category = doc.get("category") or CATEGORY_FRONT_COUNTER
        department = parse_department(doc.get("department") or doc.get("section")) or department_for_category(category)
        return cls(
            id=str(doc["id"]),
            name=str(doc["name"]),
            category=category,
            department=department,
            employee_id=doc.get("employee_id"),
            employee_name=doc.get("employee_name"),
        )


@dataclass
class TimeBlock:
    id: str
    start: str
    end: str
    positions: List[Position] = field(default_factory=list)

    def window(self) -> TimeWindow:
        return TimeWindow.of(self.start, self.end)

    def holder_of(self, employee_id: str) -> Optional[Position]:
        for position in self.positions:
            if position.employee_id == employee_id:
                return position
        return None

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start": self.start,
            "end": self.end,
            "positions": [p.to_document() for p in self.positions],
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "TimeBlock":
        return cls(
            id=str(doc["id"]),
            start=str(doc["start"]),
            end=str(doc["end"]),
            positions=[Position.from_document(p) for p in doc.get("positions") or []],
        )


@dataclass
class Day:
    day_of_week: int
    date: date
    time_blocks: List[TimeBlock] = field(default_factory=list)
    roster: List[RosterEmployee] = field(default_factory=list)

    def position_count(self) -> int:
        return sum(len(block.positions) for block in self.time_blocks)

    def assigned_count(self) -> int:
        return sum(1 for block in self.time_blocks for p in block.positions if p.is_assigned)

    def find_roster_employee(self, employee_id: str) -> Optional[RosterEmployee]:
        for employee in self.roster:
            if employee.id == employee_id:
                return employee
        return None

    def positions_held_by(self, employee_id: str) -> List[Tuple[TimeBlock, Position]]:
        return [
            (block, position)
            for block in self.time_blocks
            for position in block.positions
            if position.employee_id == employee_id
        ]

    def to_document(self) -> Dict[str, Any]:
        return {
            "day_of_week": self.day_of_week,
            "date": self.date.isoformat(),
            "time_blocks": [b.to_document() for b in self.time_blocks],
            "roster": [e.to_document() for e in self.roster],
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Day":
        day_date = _parse_date(doc["date"])
        return cls(
            day_of_week=int(doc.get("day_of_week", day_of_week(day_date))),
            date=day_date,
            time_blocks=[TimeBlock.from_document(b) for b in doc.get("time_blocks") or []],
            roster=[RosterEmployee.from_document(e) for e in doc.get("roster") or []],
        )


@dataclass
class BreakRecord:
    id: str
    employee_id: str
    break_date: date
    start_time: datetime
    duration: int  # planned minutes
    status: str = BREAK_ACTIVE
    end_time: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == BREAK_ACTIVE

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "break_date": self.break_date.isoformat(),
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "duration": self.duration,
            "status": self.status,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "BreakRecord":
        status = doc.get("status") or BREAK_ACTIVE
        if status not in BREAK_STATUSES:
            raise ValidationError(f"Invalid break status: '{status}'", {"status": status})
        return cls(
            id=str(doc.get("id") or new_id("break")),
            employee_id=str(doc["employee_id"]),
            break_date=_parse_date(doc["break_date"]),
            start_time=_parse_datetime(doc["start_time"]),
            end_time=_parse_datetime(doc.get("end_time")),
            duration=int(doc.get("duration") or 0),
            status=status,
        )


# =============================================================================
# DAY DEDUPLICATION
# =============================================================================

def _richness(day: Day) -> Tuple[int, int]:
    return day.position_count(), day.assigned_count()


def _union_roster(existing: List[RosterEmployee], incoming: List[RosterEmployee]) -> List[RosterEmployee]:
    """
    Roster entries from both variants, keyed by employee id. For an id present
    in both, the incoming entry's schedule wins and a recorded replacement
    survives.
    """
    merged: Dict[str, RosterEmployee] = {e.id: e for e in existing}
    for employee in incoming:
        current = merged.get(employee.id)
        if current is not None and employee.replaced_by is None:
            employee.replaced_by = current.replaced_by
        merged[employee.id] = employee
    return list(merged.values())


def merge_days(existing: Day, incoming: Day) -> Day:
    """
    Collapse two Days sharing a date into one.

    The variant with more positions keeps its time blocks (ties: more
    assignments, then the existing Day). Rosters are unioned with the
    incoming schedule taking precedence.
    """
    if _richness(incoming) > _richness(existing):
        kept = incoming
    else:
        kept = existing

    kept.roster = _union_roster(existing.roster, incoming.roster)
    return kept


def dedupe_days(days: List[Day]) -> List[Day]:
    """Return days with at most one entry per date, ordered by date."""
    by_date: Dict[date, Day] = {}
    for day in days:
        existing = by_date.get(day.date)
        if existing is None:
            by_date[day.date] = day
            continue
        logger.warning(
            f"Collapsing duplicate day {day.date.isoformat()} "
            f"({existing.position_count()} vs {day.position_count()} positions)"
        )
        by_date[day.date] = merge_days(existing, day)
    return [by_date[d] for d in sorted(by_date)]


# =============================================================================
# WEEKLY SETUP
# =============================================================================

@dataclass
class WeeklySetup:
    store_id: str
    user_id: str
    name: str
    week_start_date: date
    week_end_date: date
    days: List[Day] = field(default_factory=list)
    breaks: List[BreakRecord] = field(default_factory=list)
    is_template: bool = False
    is_shared: bool = False
    is_upcoming: bool = False
    id: Optional[str] = None
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    # ---- lookups -------------------------------------------------------------

    def day_for(self, value: date) -> Day:
        for day in self.days:
            if day.date == value:
                return day
        raise NotFoundError(
            f"No day {value.isoformat()} in setup '{self.name}'",
            {"setup_id": self.id, "date": value.isoformat()},
        )

    def has_day(self, value: date) -> bool:
        return any(day.date == value for day in self.days)

    def iter_positions(self) -> Iterator[Tuple[Day, TimeBlock, Position]]:
        for day in self.days:
            for block in day.time_blocks:
                for position in block.positions:
                    yield day, block, position

    def find_position(self, position_id: str) -> Tuple[Day, TimeBlock, Position]:
        for day, block, position in self.iter_positions():
            if position.id == position_id:
                return day, block, position
        raise NotFoundError(
            f"Position {position_id} not found in setup '{self.name}'",
            {"setup_id": self.id, "position_id": position_id},
        )

    def find_block(self, block_id: str) -> Tuple[Day, TimeBlock]:
        for day in self.days:
            for block in day.time_blocks:
                if block.id == block_id:
                    return day, block
        raise NotFoundError(
            f"Time block {block_id} not found in setup '{self.name}'",
            {"setup_id": self.id, "block_id": block_id},
        )

    def breaks_for(self, employee_id: str, break_date: date) -> List[BreakRecord]:
        return [
            b for b in self.breaks
            if b.employee_id == employee_id and b.break_date == break_date
        ]

    # ---- day management ------------------------------------------------------

    def _check_in_week(self, value: date):
        if not self.week_start_date <= value <= self.week_end_date:
            raise ValidationError(
                f"Date {value.isoformat()} is outside the week "
                f"{self.week_start_date.isoformat()} - {self.week_end_date.isoformat()}",
                {"setup_id": self.id, "date": value.isoformat()},
            )

    def merge_day(self, incoming: Day) -> Day:
        """Insert a Day, collapsing it into any existing Day with the same date."""
        self._check_in_week(incoming.date)
        incoming.day_of_week = day_of_week(incoming.date)

        for index, existing in enumerate(self.days):
            if existing.date == incoming.date:
                kept = merge_days(existing, incoming)
                self.days[index] = kept
                return kept

        self.days.append(incoming)
        self.days.sort(key=lambda d: d.date)
        return incoming

    def apply_roster(self, day_rosters: Dict[date, List[RosterEmployee]]) -> List[Day]:
        """Merge uploaded roster entries into the week, one Day per date."""
        touched = []
        for roster_date in sorted(day_rosters):
            self._check_in_week(roster_date)
        for roster_date in sorted(day_rosters):
            incoming = Day(day_of_week(roster_date), roster_date, [], list(day_rosters[roster_date]))
            touched.append(self.merge_day(incoming))
        return touched

    def _check_name_free(self, day: Day, name: str, window: TimeWindow, skip_block_id: Optional[str] = None):
        """The same position name may not run in two overlapping blocks of one day."""
        wanted = name.strip().casefold()
        for other in day.time_blocks:
            if other.id == skip_block_id or not other.window().overlaps(window):
                continue
            for existing in other.positions:
                if existing.name.strip().casefold() == wanted:
                    raise ValidationError(
                        f"'{name}' already runs in the {other.start} - {other.end} block on {day.date.isoformat()}",
                        {"block_id": other.id, "position_id": existing.id, "date": day.date.isoformat()},
                    )

    def add_time_block(self, day_date: date, start: str, end: str) -> TimeBlock:
        window = TimeWindow.of(start, end)
        day = self.day_for(day_date)
        block = TimeBlock(id=new_id("block"), start=str(window.start), end=str(window.end))
        day.time_blocks.append(block)
        day.time_blocks.sort(key=lambda b: (TimeWindow.of(b.start, b.end).start, b.id))
        return block

    def update_time_block(self, block_id: str, start: str, end: str) -> TimeBlock:
        """
        Move a block to a new window. Rejected when one of its positions would
        overlap a same-name position, or when an assigned employee's shift no
        longer covers the block.
        """
        day, block = self.find_block(block_id)
        window = TimeWindow.of(start, end)

        for position in block.positions:
            self._check_name_free(day, position.name, window, skip_block_id=block.id)
            if position.employee_id is None:
                continue
            employee = day.find_roster_employee(position.employee_id)
            if employee is not None and not employee.covers(window):
                raise ValidationError(
                    f"{employee.name} is assigned to '{position.name}' but is not scheduled "
                    f"for the whole {window} block on {day.date.isoformat()}",
                    {"block_id": block.id, "position_id": position.id, "employee_id": employee.id},
                )

        block.start, block.end = str(window.start), str(window.end)
        day.time_blocks.sort(key=lambda b: (TimeWindow.of(b.start, b.end).start, b.id))
        return block

    def remove_time_block(self, block_id: str) -> TimeBlock:
        """Drop a block together with its positions and their assignments."""
        day, block = self.find_block(block_id)
        day.time_blocks.remove(block)
        logger.info(f"Removed block {block.start} - {block.end} ({len(block.positions)} positions) from {day.date}")
        return block

    def add_position(self, block_id: str, name: str, category: str, department: Department) -> Position:
        """Add a position slot to a block."""
        day, block = self.find_block(block_id)
        self._check_name_free(day, name, block.window())

        position = Position(id=new_id("pos"), name=name.strip(), category=category, department=department)
        block.positions.append(position)
        return position

    def remove_position(self, position_id: str) -> Position:
        _, block, position = self.find_position(position_id)
        block.positions.remove(position)
        return position

    def rename(self, name: str):
        if not name or not name.strip():
            raise ValidationError("Setup name is required", {"setup_id": self.id})
        self.name = name.strip()

    def ensure_week_days(self):
        """Make sure all seven days of the week exist."""
        for offset in range(7):
            value = self.week_start_date + timedelta(days=offset)
            if not self.has_day(value):
                self.merge_day(Day(day_of_week(value), value))

    # ---- invariants ----------------------------------------------------------

    def validate(self):
        """Raise when the aggregate breaks one of its structural invariants."""
        if self.week_end_date != week_end_for(self.week_start_date):
            raise ValidationError(
                "Week end date must be six days after the week start date",
                {
                    "week_start_date": self.week_start_date.isoformat(),
                    "week_end_date": self.week_end_date.isoformat(),
                },
            )

        seen_dates = set()
        seen_weekdays = set()
        seen_positions = set()
        for day in self.days:
            self._check_in_week(day.date)
            if day.date in seen_dates:
                raise ValidationError(
                    f"Duplicate day {day.date.isoformat()} in setup '{self.name}'",
                    {"setup_id": self.id, "date": day.date.isoformat()},
                )
            if day.day_of_week != day_of_week(day.date) or day.day_of_week in seen_weekdays:
                raise ValidationError(
                    f"Day of week {day.day_of_week} does not match {day.date.isoformat()}",
                    {"setup_id": self.id, "date": day.date.isoformat(), "day_of_week": day.day_of_week},
                )
            seen_dates.add(day.date)
            seen_weekdays.add(day.day_of_week)

            for block in day.time_blocks:
                block.window()
                holders: Dict[str, str] = {}
                for position in block.positions:
                    if position.id in seen_positions:
                        raise ValidationError(
                            f"Duplicate position id {position.id}",
                            {"setup_id": self.id, "position_id": position.id},
                        )
                    seen_positions.add(position.id)
                    if position.employee_id is None:
                        continue
                    if position.employee_id in holders:
                        raise ConflictError(
                            f"{position.employee_name or position.employee_id} is assigned to both "
                            f"'{holders[position.employee_id]}' and '{position.name}' "
                            f"in the {block.start} - {block.end} block",
                            {
                                "date": day.date.isoformat(),
                                "block_id": block.id,
                                "employee_id": position.employee_id,
                            },
                        )
                    holders[position.employee_id] = position.name

        active = set()
        for record in self.breaks:
            if not record.is_active:
                continue
            key = (record.employee_id, record.break_date)
            if key in active:
                raise ValidationError(
                    f"Employee {record.employee_id} has more than one active break on "
                    f"{record.break_date.isoformat()}",
                    {"employee_id": record.employee_id, "date": record.break_date.isoformat()},
                )
            active.add(key)

    # ---- copies --------------------------------------------------------------

    def clone_skeleton(self) -> List[Day]:
        """Days/TimeBlocks/Positions without employee bindings, rosters or breaks."""
        days = copy.deepcopy(self.days)
        for day in days:
            day.roster = []
            for block in day.time_blocks:
                for position in block.positions:
                    position.clear()
        return days

    # ---- persistence shape ---------------------------------------------------

    def to_document(self) -> Dict[str, Any]:
        doc = {
            "store_id": self.store_id,
            "user_id": self.user_id,
            "name": self.name,
            "week_start_date": self.week_start_date.isoformat(),
            "week_end_date": self.week_end_date.isoformat(),
            "is_template": self.is_template,
            "is_shared": self.is_shared,
            "is_upcoming": self.is_upcoming,
            "days": [d.to_document() for d in self.days],
            "breaks": [b.to_document() for b in self.breaks],
            "version": self.version,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "deleted_at": _iso(self.deleted_at),
        }
        if self.id is not None:
            doc["id"] = self.id
        return doc

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "WeeklySetup":
        week_start = _parse_date(doc["week_start_date"])
        week_end = _parse_date(doc.get("week_end_date") or week_end_for(week_start))
        return cls(
            id=str(doc["id"]) if doc.get("id") is not None else None,
            store_id=str(doc["store_id"]),
            user_id=str(doc["user_id"]),
            name=doc["name"],
            week_start_date=week_start,
            week_end_date=week_end,
            days=dedupe_days([Day.from_document(d) for d in doc.get("days") or []]),
            breaks=[BreakRecord.from_document(b) for b in doc.get("breaks") or []],
            is_template=bool(doc.get("is_template", False)),
            is_shared=bool(doc.get("is_shared", False)),
            is_upcoming=bool(doc.get("is_upcoming", False)),
            version=int(doc.get("version") or 0),
            created_at=_parse_datetime(doc.get("created_at")),
            updated_at=_parse_datetime(doc.get("updated_at")),
            deleted_at=_parse_datetime(doc.get("deleted_at")),
        )


def new_weekly_setup(
    *,
    store_id: str,
    user_id: str,
    name: str,
    week_start_date: date,
    is_template: bool = False,
    is_shared: bool = False,
) -> WeeklySetup:
    """An empty week with all seven Days present."""
    if not name or not name.strip():
        raise ValidationError("Setup name is required", {"name": name})

    setup = WeeklySetup(
        store_id=store_id,
        user_id=user_id,
        name=name.strip(),
        week_start_date=week_start_date,
        week_end_date=week_end_for(week_start_date),
        is_template=is_template,
        is_shared=is_shared,
    )
    setup.ensure_week_days()
    return setup
