"""
modules/setup_sheet/time_model.py

Wall-clock value types for the setup sheet.

Time blocks and roster windows arrive as strings ("09:00", "5:00 AM",
"22:00 - 06:00"). They are parsed once into TimeOfDay / TimeWindow values so
that containment and midnight-crossing rules live in one place.

Day-of-week numbering follows the store convention: 0 = Sunday ... 6 = Saturday.
"""

import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List

from modules.setup_sheet.errors import ValidationError


MINUTES_PER_DAY = 24 * 60

WEEKDAY_NAMES = [
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
]

_TIME_PATTERN = re.compile(
    r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*(a\.?m?\.?|p\.?m?\.?)?\s*$",
    re.IGNORECASE,
)
_WINDOW_SEPARATOR = re.compile(r"\s*[-–]\s*")


# =============================================================================
# TIME OF DAY
# =============================================================================

@dataclass(frozen=True, order=True)
class TimeOfDay:
    """Minutes since midnight, 0..1439."""
    minutes: int

    def __post_init__(self):
        if not 0 <= self.minutes < MINUTES_PER_DAY:
            raise ValidationError(
                f"Time of day out of range: {self.minutes} minutes",
                {"minutes": self.minutes},
            )

    @classmethod
    def parse(cls, text: str) -> "TimeOfDay":
        """
        Parse "HH:MM" (24h, optional seconds) or 12-hour forms such as
        "5:00 AM", "5:00a" and "12:30 pm".
        """
        if not isinstance(text, str):
            raise ValidationError(f"Invalid time of day: {text!r}", {"value": text})

        match = _TIME_PATTERN.match(text)
        if not match:
            raise ValidationError(f"Invalid time of day: '{text}'", {"value": text})

        hours, minutes = int(match.group(1)), int(match.group(2))
        period = match.group(4)

        if minutes > 59:
            raise ValidationError(f"Invalid time of day: '{text}'", {"value": text})

        if period:
            if not 1 <= hours <= 12:
                raise ValidationError(f"Invalid time of day: '{text}'", {"value": text})
            is_pm = period.lower().startswith("p")
            if is_pm and hours != 12:
                hours += 12
            if not is_pm and hours == 12:
                hours = 0
        elif hours > 23:
            raise ValidationError(f"Invalid time of day: '{text}'", {"value": text})

        return cls(hours * 60 + minutes)

    def __str__(self) -> str:
        hours, minutes = divmod(self.minutes, 60)
        return f"{hours:02d}:{minutes:02d}"


# =============================================================================
# TIME WINDOW
# =============================================================================

@dataclass(frozen=True)
class TimeWindow:
    """
    A wall-clock interval [start, end).

    An end earlier than the start means the window crosses midnight, so
    "22:00 - 06:00" lasts eight hours.
    """
    start: TimeOfDay
    end: TimeOfDay

    def __post_init__(self):
        if self.start == self.end:
            raise ValidationError(
                f"Time window {self.start} - {self.end} has no length",
                {"start": str(self.start), "end": str(self.end)},
            )

    @classmethod
    def of(cls, start: str, end: str) -> "TimeWindow":
        return cls(TimeOfDay.parse(start), TimeOfDay.parse(end))

    @classmethod
    def parse(cls, text: str) -> "TimeWindow":
        """Parse the roster form "08:00 - 14:00" (any clock format TimeOfDay accepts)."""
        if not isinstance(text, str):
            raise ValidationError(f"Invalid time window: {text!r}", {"value": text})

        parts = [p for p in _WINDOW_SEPARATOR.split(text.strip()) if p]
        if len(parts) != 2:
            raise ValidationError(f"Invalid time window: '{text}'", {"value": text})

        return cls(TimeOfDay.parse(parts[0]), TimeOfDay.parse(parts[1]))

    @property
    def crosses_midnight(self) -> bool:
        return self.end.minutes < self.start.minutes

    @property
    def duration_minutes(self) -> int:
        if self.crosses_midnight:
            return MINUTES_PER_DAY - self.start.minutes + self.end.minutes
        return self.end.minutes - self.start.minutes

    def _span(self, offset: int = 0):
        begin = self.start.minutes + offset
        return begin, begin + self.duration_minutes

    def contains(self, other: "TimeWindow") -> bool:
        """True when `other` lies fully inside this window, same day or the day after."""
        begin, finish = self._span()
        for offset in (0, MINUTES_PER_DAY):
            other_begin, other_finish = other._span(offset)
            if begin <= other_begin and other_finish <= finish:
                return True
        return False

    def overlaps(self, other: "TimeWindow") -> bool:
        begin, finish = self._span()
        for offset in (-MINUTES_PER_DAY, 0, MINUTES_PER_DAY):
            other_begin, other_finish = other._span(offset)
            if other_begin < finish and begin < other_finish:
                return True
        return False

    def __str__(self) -> str:
        return f"{self.start} - {self.end}"


# =============================================================================
# WEEK ARITHMETIC
# =============================================================================

def day_of_week(value: date) -> int:
    """Store convention: 0 = Sunday ... 6 = Saturday."""
    return (value.weekday() + 1) % 7


def parse_week_starts_on(name: str) -> int:
    """Map a weekday name ("sunday", "mon", ...) to the store day-of-week number."""
    normalized = (name or "").strip().lower()
    for index, weekday in enumerate(WEEKDAY_NAMES):
        if normalized and weekday.startswith(normalized[:3]):
            return index
    raise ValidationError(f"Unknown weekday name: '{name}'", {"value": name})


def week_start_for(value: date, week_starts_on: int = 0) -> date:
    """Return the first day of the store week containing `value`."""
    offset = (day_of_week(value) - week_starts_on) % 7
    return value - timedelta(days=offset)


def next_week_start(today: date, week_starts_on: int = 0) -> date:
    """The next upcoming week boundary strictly after the current week."""
    return week_start_for(today, week_starts_on) + timedelta(days=7)


def week_end_for(week_start: date) -> date:
    return week_start + timedelta(days=6)


def week_dates(week_start: date) -> List[date]:
    return [week_start + timedelta(days=i) for i in range(7)]
