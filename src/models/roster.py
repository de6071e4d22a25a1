"""Duty roster models."""

from __future__ import annotations

import datetime as dt
import uuid
from datetime import date, datetime, timezone, tzinfo
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, ValidationInfo, field_validator


class ShiftType(str, Enum):
    """Closed set of shift codes; values round-trip exactly as written."""

    G_SHIFT = "G-Shift"
    A_SHIFT = "A-Shift"
    B_SHIFT = "B-Shift"
    NRMT = "NRMT"
    TOWNSHIP = "Township"
    WEEK_OFF = "WO"
    LEAVE = "LV"
    HOLIDAY = "H"


class Department(str, Enum):
    ITFM = "ITFM"
    SOFTWARE_DEVELOPMENT = "Software Development"


class RosterStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


def as_calendar_date(
    value: Union[str, date, datetime], tz: Optional[tzinfo] = None
) -> date:
    """
    Normalize a date-ish value to a calendar date.

    Aware datetimes are converted to the site timezone ``tz`` (UTC when not
    given) first, so stored dates share the day boundary used for "today".
    Naive datetimes are taken as already being site-local.
    """
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return date.fromisoformat(text)
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz or timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    raise ValueError(f"Unsupported date value: {value!r}")


def _site_tz(info: ValidationInfo) -> Optional[tzinfo]:
    """Site timezone passed as validation context, e.g. ``context={"tz": tz}``."""
    return (info.context or {}).get("tz")


class ShiftEntry(BaseModel):
    """One engineer's shift on one calendar date."""

    date: dt.date
    shift_type: ShiftType = ShiftType.G_SHIFT

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value, info: ValidationInfo):
        return as_calendar_date(value, _site_tz(info))


class RosterEngineer(BaseModel):
    """An engineer row in a roster; ``engineer_ref`` is empty for manual entries."""

    entry_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    engineer_ref: Optional[str] = None
    engineer_name: str
    job_role: str
    department: Department = Department.ITFM
    location: str
    contact_no: str
    shifts: List[ShiftEntry] = Field(default_factory=list)

    @field_validator("shifts")
    @classmethod
    def validate_unique_dates(cls, shifts: List[ShiftEntry]) -> List[ShiftEntry]:
        """Each date may carry at most one shift per engineer."""
        seen = set()
        for entry in shifts:
            if entry.date in seen:
                raise ValueError(f"duplicate shift for {entry.date.isoformat()}")
            seen.add(entry.date)
        return shifts

    def shift_on(self, day: date) -> Optional[ShiftEntry]:
        for entry in self.shifts:
            if entry.date == day:
                return entry
        return None


class DutyRoster(BaseModel):
    """Weekly schedule of engineer shifts."""

    id: str
    title: str = "Duty Roster"
    week_start_date: date
    week_end_date: date
    status: RosterStatus = RosterStatus.DRAFT
    engineers: List[RosterEngineer] = Field(default_factory=list)
    created_by: str
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    version: int = 0

    def covers(self, day: date) -> bool:
        return self.week_start_date <= day <= self.week_end_date

    def overlaps(self, start: date, end: date) -> bool:
        return self.week_start_date <= end and self.week_end_date >= start


class RosterCreate(BaseModel):
    """Inbound payload for creating a roster."""

    week_start_date: date
    week_end_date: date
    title: Optional[str] = None
    engineers: List[RosterEngineer] = Field(default_factory=list)
    status: RosterStatus = RosterStatus.DRAFT
    prepopulate: bool = False

    @field_validator("week_start_date", "week_end_date", mode="before")
    @classmethod
    def normalize_dates(cls, value, info: ValidationInfo):
        return as_calendar_date(value, _site_tz(info))


class RosterUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    week_start_date: Optional[date] = None
    week_end_date: Optional[date] = None
    title: Optional[str] = None
    engineers: Optional[List[RosterEngineer]] = None
    status: Optional[RosterStatus] = None

    @field_validator("week_start_date", "week_end_date", mode="before")
    @classmethod
    def normalize_dates(cls, value, info: ValidationInfo):
        if value is None:
            return value
        return as_calendar_date(value, _site_tz(info))


class RosterEngineerCreate(BaseModel):
    """Payload for adding one engineer row to an existing roster."""

    engineer_ref: Optional[str] = None
    engineer_name: str
    job_role: str
    department: Department = Department.ITFM
    location: str
    contact_no: str
    shifts: List[ShiftEntry] = Field(default_factory=list)


class ShiftUpdate(BaseModel):
    """Payload for setting one engineer's shift on one date."""

    date: dt.date
    shift_type: ShiftType

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, value, info: ValidationInfo):
        return as_calendar_date(value, _site_tz(info))
