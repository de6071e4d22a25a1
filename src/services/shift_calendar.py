"""
Shift calendar.

Static table of shift codes and the rule deciding whether a shift is
active at a given minute of the day. Working shifts carry a window in
minutes since midnight (site time); week-off, leave and holiday carry none.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Dict, Iterator, Optional
from zoneinfo import ZoneInfo

from models.roster import ShiftType


@dataclass(frozen=True)
class ShiftDefinition:
    """Display name, timing label and active window of one shift code."""

    code: ShiftType
    name: str
    timing: str
    start_minute: Optional[int] = None
    end_minute: Optional[int] = None

    @property
    def is_working(self) -> bool:
        return self.start_minute is not None


@dataclass(frozen=True)
class ShiftState:
    is_working_today: bool
    is_on_duty: bool


SHIFT_DEFINITIONS: Dict[ShiftType, ShiftDefinition] = {
    ShiftType.G_SHIFT: ShiftDefinition(
        ShiftType.G_SHIFT, "General Shift", "9:30 AM to 5:45 PM", 9 * 60 + 30, 17 * 60 + 45
    ),
    ShiftType.A_SHIFT: ShiftDefinition(
        ShiftType.A_SHIFT, "Morning Shift", "6 AM to 2 PM", 6 * 60, 14 * 60
    ),
    ShiftType.B_SHIFT: ShiftDefinition(
        ShiftType.B_SHIFT, "Evening Shift", "2 PM to 10 PM", 14 * 60, 22 * 60
    ),
    ShiftType.NRMT: ShiftDefinition(
        ShiftType.NRMT, "NRMT Shift", "8 AM to 4:45 PM", 8 * 60, 16 * 60 + 45
    ),
    ShiftType.TOWNSHIP: ShiftDefinition(
        ShiftType.TOWNSHIP, "Township Shift", "9:30 AM to 5:45 PM", 9 * 60 + 30, 17 * 60 + 45
    ),
    ShiftType.WEEK_OFF: ShiftDefinition(ShiftType.WEEK_OFF, "Week Off", "Off Day"),
    ShiftType.LEAVE: ShiftDefinition(ShiftType.LEAVE, "Leave", "On Leave"),
    ShiftType.HOLIDAY: ShiftDefinition(ShiftType.HOLIDAY, "Holiday", "Holiday"),
}

DEFAULT_WORKDAY_SHIFT = ShiftType.G_SHIFT
DEFAULT_WEEKEND_SHIFT = ShiftType.WEEK_OFF


def evaluate_shift(shift_type: ShiftType, minute_of_day: int) -> ShiftState:
    """
    Evaluate a shift at a minute of the day.

    Both window ends are inclusive, so the boundary minute counts as on duty.
    An unknown code raises KeyError; callers validate codes at the edit boundary.
    """
    definition = SHIFT_DEFINITIONS[ShiftType(shift_type)]
    if not definition.is_working:
        return ShiftState(is_working_today=False, is_on_duty=False)
    on_duty = definition.start_minute <= minute_of_day <= definition.end_minute
    return ShiftState(is_working_today=True, is_on_duty=on_duty)


def is_active_now(shift_type: ShiftType, minute_of_day: int) -> bool:
    return evaluate_shift(shift_type, minute_of_day).is_on_duty


def default_shift_for(day: date) -> ShiftType:
    """Weekdays get the general shift; Saturday and Sunday are week off."""
    return DEFAULT_WEEKEND_SHIFT if day.weekday() >= 5 else DEFAULT_WORKDAY_SHIFT


def site_tz(name: str) -> tzinfo:
    if name.upper() in ("UTC", "Z"):
        return timezone.utc
    return ZoneInfo(name)


def to_site_time(instant: datetime, tz: tzinfo) -> datetime:
    """Express an instant in site time; naive values are taken as UTC."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(tz)


def minute_of_day(local: datetime) -> int:
    return local.hour * 60 + local.minute


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Every calendar date from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def shift_types_payload() -> Dict[str, dict]:
    """Shift table keyed by code, as served to clients."""
    return {
        code.value: {
            "name": definition.name,
            "timing": definition.timing,
            "is_working": definition.is_working,
            "start_minute": definition.start_minute,
            "end_minute": definition.end_minute,
        }
        for code, definition in SHIFT_DEFINITIONS.items()
    }
