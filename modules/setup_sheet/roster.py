"""
modules/setup_sheet/roster.py

Reads an uploaded weekly schedule (CSV or Excel) into per-day roster entries.

Expected grid:

    Employee   | Sun, 5/18/25                                   | Mon, 5/19/25 | ...
    Jane Smith | 5:00 AM - 2:00 PM Leadership | FOH - Shift Leader | ...

A cell may hold several shifts, one per line. Employee ids are derived from
(name, date) so uploading the same file twice yields the same ids.
"""

import hashlib
import io
import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd

from modules.setup_sheet.aggregate import RosterEmployee
from modules.setup_sheet.errors import ValidationError
from modules.setup_sheet.positions import Department
from modules.setup_sheet.time_model import WEEKDAY_NAMES, TimeWindow, day_of_week, week_dates

logger = logging.getLogger(__name__)


_SHIFT_PATTERN = re.compile(
    r"(\d{1,2}:\d{2}\s*(?:AM|PM|A|P))\s*-\s*(\d{1,2}:\d{2}\s*(?:AM|PM|A|P))",
    re.IGNORECASE,
)

NAME_COLUMNS = ["Employee", "employee", "Name", "name", "Employee Name"]

EXCEL_EXTENSIONS = (".xlsx", ".xls")


@dataclass
class ParsedShift:
    window: TimeWindow
    department: Department
    position: str
    is_leadership: bool
    original_text: str


# =============================================================================
# CELL PARSING
# =============================================================================

def parse_position_info(text: Optional[str]) -> Dict[str, Any]:
    """Department, position title and leadership flag from "Leadership | FOH - Shift Leader"."""
    if not text:
        return {"department": Department.FOH, "position": "Team Member", "is_leadership": False}

    lowered = text.lower()

    department = Department.FOH
    if "boh" in lowered or "kitchen" in lowered or "back of house" in lowered:
        department = Department.BOH

    is_leadership = "leadership" in lowered or "leader" in lowered or "manager" in lowered

    position = "Team Member"
    if "shift leader" in lowered:
        position = "Shift Leader"
    elif "manager" in lowered:
        position = "Manager"
    elif "general" in lowered:
        position = "General"

    return {"department": department, "position": position, "is_leadership": is_leadership}


def parse_shift_entry(text: Any) -> List[ParsedShift]:
    """Every shift found in one schedule cell; unparseable lines are skipped."""
    if not isinstance(text, str) or not text.strip():
        return []

    shifts = []
    for line in (l.strip() for l in text.strip().splitlines()):
        if not line:
            continue
        match = _SHIFT_PATTERN.search(line)
        if not match:
            logger.warning(f"Skipping schedule line without a time range: '{line}'")
            continue
        try:
            window = TimeWindow.of(match.group(1), match.group(2))
        except ValidationError as e:
            logger.warning(f"Skipping schedule line '{line}': {e.message}")
            continue

        info = parse_position_info(line.replace(match.group(0), "").strip())
        shifts.append(ParsedShift(
            window=window,
            department=info["department"],
            position=info["position"],
            is_leadership=info["is_leadership"],
            original_text=line,
        ))
    return shifts


def day_from_column(column: Any) -> Optional[int]:
    """Store day-of-week for headers like "Sun, 5/18/25", "Monday" or "mon"."""
    if not isinstance(column, str):
        return None
    prefix = column.strip().lower()[:3]
    if len(prefix) < 3:
        return None
    for index, name in enumerate(WEEKDAY_NAMES):
        if name.startswith(prefix):
            return index
    return None


def roster_employee_id(name: str, roster_date: date) -> str:
    digest = hashlib.sha1(f"{name.strip().casefold()}|{roster_date.isoformat()}".encode()).hexdigest()
    return f"emp-{digest[:12]}"


def _employee_name(row: Dict[str, Any]) -> Optional[str]:
    for column in NAME_COLUMNS:
        value = row.get(column)
        if isinstance(value, str) and value.strip():
            return value.strip()
    if row:
        first = next(iter(row.values()))
        if isinstance(first, str) and first.strip():
            return first.strip()
    return None


# =============================================================================
# GRID PARSING
# =============================================================================

def parse_roster_rows(rows: List[Dict[str, Any]], week_start: date) -> Dict[date, List[RosterEmployee]]:
    """
    Turn schedule rows into {date: [RosterEmployee]} for the week starting at week_start.

    Days with no parseable shifts are left out of the result.
    """
    dates_by_weekday = {day_of_week(d): d for d in week_dates(week_start)}
    by_date: Dict[date, Dict[str, RosterEmployee]] = {}

    for row in rows:
        name = _employee_name(row)
        if not name:
            continue

        for column, cell in row.items():
            weekday = day_from_column(column)
            if weekday is None or column in NAME_COLUMNS:
                continue

            shifts = parse_shift_entry(cell)
            if not shifts:
                continue

            roster_date = dates_by_weekday[weekday]
            employee_id = roster_employee_id(name, roster_date)
            day_entries = by_date.setdefault(roster_date, {})
            employee = day_entries.get(employee_id)
            if employee is None:
                employee = RosterEmployee(
                    id=employee_id,
                    name=name,
                    area=shifts[0].department,
                    position=shifts[0].position,
                )
                day_entries[employee_id] = employee

            if any(shift.is_leadership for shift in shifts):
                employee.is_leadership = True

            for shift in shifts:
                block = str(shift.window)
                if block not in employee.time_blocks:
                    employee.time_blocks.append(block)

    result = {d: list(entries.values()) for d, entries in by_date.items()}
    logger.info(
        f"Parsed roster for week of {week_start}: "
        f"{sum(len(v) for v in result.values())} employee-days across {len(result)} days"
    )
    return result


def read_roster_file(content: bytes, filename: str) -> List[Dict[str, Any]]:
    """Load an uploaded CSV/Excel schedule into a list of row dicts."""
    if not content:
        raise ValidationError("Uploaded schedule is empty", {"filename": filename})

    buffer = io.BytesIO(content)
    try:
        if (filename or "").lower().endswith(EXCEL_EXTENSIONS):
            df = pd.read_excel(buffer)
        else:
            df = pd.read_csv(buffer)
    except (ValueError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ValidationError(f"Could not read schedule file '{filename}': {e}", {"filename": filename})

    df = df.dropna(how="all")
    df.columns = [str(c).strip() for c in df.columns]
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")
