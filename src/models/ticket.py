"""Ticket models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


class CallType(str, Enum):
    """Kind of problem being reported."""

    HARDWARE = "hardware"
    SOFTWARE = "software"
    NETWORK = "network"
    ACCESS = "access"
    OTHER = "other"


class TicketStatus(str, Enum):
    """Lifecycle states: open -> assigned -> in-progress -> resolved."""

    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


class Severity(str, Enum):
    """Severity set by the admin at assignment time."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class LogKind(str, Enum):
    """System entries are written by lifecycle transitions; work entries by people."""

    SYSTEM = "system"
    WORK = "work"


class ActionLogEntry(BaseModel):
    """One append-only audit trail entry."""

    action: str
    details: Optional[str] = None
    performed_by: str
    timestamp: datetime
    kind: LogKind = LogKind.SYSTEM


class _ReassignBase(BaseModel):
    requested_by: str
    requested_to: str
    reason: str
    requested_at: datetime


class PendingReassign(_ReassignBase):
    """An engineer's request awaiting an admin decision."""

    status: Literal["pending"] = "pending"


class ApprovedReassign(_ReassignBase):
    """Request an admin approved; ownership moved to ``requested_to``."""

    status: Literal["approved"] = "approved"
    decided_by: str
    decided_at: datetime


class RejectedReassign(_ReassignBase):
    """Request an admin rejected; ownership unchanged."""

    status: Literal["rejected"] = "rejected"
    decided_by: str
    decided_at: datetime


ReassignRequest = Annotated[
    Union[PendingReassign, ApprovedReassign, RejectedReassign],
    Field(discriminator="status"),
]


class Ticket(BaseModel):
    """A reported IT issue and its full history."""

    id: str
    ticket_id: str
    asset_id: str
    call_type: CallType
    problem_description: str
    location: str
    raised_by: str
    status: TicketStatus = TicketStatus.OPEN
    severity: Severity = Severity.MEDIUM
    assigned_to: Optional[str] = None
    action_logs: List[ActionLogEntry] = Field(default_factory=list)
    reassign_request: Optional[ReassignRequest] = None
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None
    version: int = 0

    @property
    def has_pending_reassign(self) -> bool:
        return isinstance(self.reassign_request, PendingReassign)

    @property
    def work_log_count(self) -> int:
        return sum(1 for entry in self.action_logs if entry.kind == LogKind.WORK)


class TicketCreate(BaseModel):
    """Inbound payload for raising a ticket."""

    asset_id: str
    call_type: CallType
    problem_description: str = Field(max_length=1000)
    location: str
    severity: Optional[Severity] = None

    @field_validator("asset_id", "problem_description", "location")
    @classmethod
    def validate_required(cls, value: str) -> str:
        """Reject blank strings; the store keeps trimmed values."""
        cleaned = (value or "").strip()
        if not cleaned:
            raise ValueError("field must not be blank")
        return cleaned


class TicketStats(BaseModel):
    """Admin dashboard counters."""

    total: int
    by_status: Dict[str, int]
    pending_reassignments: int
    by_severity: Dict[str, int]
    by_call_type: Dict[str, int]


class EngineerWorkload(BaseModel):
    """Open ticket load per active engineer."""

    id: str
    employee_id: Optional[str] = None
    name: str
    department: Optional[str] = None
    active_tickets: int
