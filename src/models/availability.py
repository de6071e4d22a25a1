"""Engineer availability models."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from models.roster import ShiftType
from models.user import User


class EngineerAvailability(BaseModel):
    """An engineer annotated with their shift state at the evaluated instant."""

    engineer: User
    in_roster: bool = False
    shift_type: Optional[ShiftType] = None
    is_working_today: bool = False
    is_on_duty: bool = False


class AvailabilityReport(BaseModel):
    """Ranked engineers plus whether a published roster covered today."""

    has_roster: bool
    roster_id: Optional[str] = None
    evaluated_at: datetime
    today: date
    engineers: List[EngineerAvailability] = Field(default_factory=list)
