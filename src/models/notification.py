"""Notification event contract."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, model_validator

from models.user import Role


class NotificationType(str, Enum):
    NEW_TICKET = "new_ticket"
    ASSIGNED = "assigned"
    ACTION_UPDATE = "action_update"
    RESOLVED = "resolved"
    REASSIGN_REQUEST = "reassign_request"
    REASSIGNED = "reassigned"
    CRITICAL = "critical"


class Notification(BaseModel):
    """Addressed to exactly one of a specific user or a whole role."""

    id: str
    type: NotificationType
    title: str
    message: str
    ticket: Optional[str] = None
    ticket_id: Optional[str] = None
    for_user: Optional[str] = None
    for_role: Optional[Role] = None
    read: bool = False
    created_at: datetime

    @model_validator(mode="after")
    def validate_single_audience(self) -> "Notification":
        if (self.for_user is None) == (self.for_role is None):
            raise ValueError("exactly one of for_user or for_role must be set")
        return self

    @property
    def recipient_key(self) -> str:
        """Partition key used by the notification store."""
        if self.for_user is not None:
            return f"user#{self.for_user}"
        return f"role#{self.for_role.value}"
