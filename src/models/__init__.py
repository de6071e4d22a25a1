"""Pydantic models for API payloads and stored documents."""

from models.availability import AvailabilityReport, EngineerAvailability  # noqa: F401
from models.notification import Notification, NotificationType  # noqa: F401
from models.response import ApiResponse  # noqa: F401
from models.roster import (  # noqa: F401
    Department,
    DutyRoster,
    RosterCreate,
    RosterEngineer,
    RosterEngineerCreate,
    RosterStatus,
    RosterUpdate,
    ShiftEntry,
    ShiftType,
    ShiftUpdate,
)
from models.ticket import (  # noqa: F401
    ActionLogEntry,
    ApprovedReassign,
    CallType,
    EngineerWorkload,
    LogKind,
    PendingReassign,
    RejectedReassign,
    Severity,
    Ticket,
    TicketCreate,
    TicketStats,
    TicketStatus,
)
from models.user import Role, User  # noqa: F401
