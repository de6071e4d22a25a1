"""Validation helpers shared by services; failures raise our ValidationError."""

from datetime import date, tzinfo
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from models.roster import as_calendar_date
from utils.error_handling import ValidationError

E = TypeVar("E", bound=Enum)


def ensure_present(value: Any, field: str) -> None:
    """Raise ValidationError if value is missing, empty or blank."""
    if value is None or value == [] or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required")


def ensure_text(value: Any, field: str) -> str:
    """Return ``value`` trimmed, rejecting missing, blank or non-string input."""
    ensure_present(value, field)
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value.strip()


def parse_enum(enum_cls: Type[E], value: Any, label: str) -> E:
    """Coerce a raw value into ``enum_cls``, listing the allowed values on failure."""
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {label} '{value}'; expected one of {allowed}") from exc


def parse_calendar_date(value: Any, label: str, tz: Optional[tzinfo] = None) -> date:
    """Normalize a date-ish value to a calendar date in the site timezone ``tz``."""
    if value is None:
        raise ValidationError(f"{label} is required")
    try:
        return as_calendar_date(value, tz)
    except ValueError as exc:
        raise ValidationError(f"Invalid {label} '{value}'") from exc
