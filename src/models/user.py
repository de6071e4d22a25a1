"""User directory models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class Role(str, Enum):
    """Roles recognised by the helpdesk."""

    USER = "user"
    ENGINEER = "engineer"
    ADMIN = "admin"


class User(BaseModel):
    """Registered user as seen by the lifecycle and roster services."""

    id: str
    name: str
    email: str
    role: Role = Role.USER
    is_active: bool = True
    employee_id: Optional[str] = None
    department: Optional[str] = None
    designation: Optional[str] = None
    engineer_type: Optional[str] = None
    location: Optional[str] = None
    phone: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_engineer(self) -> bool:
        return self.role == Role.ENGINEER
