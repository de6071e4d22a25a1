"""Common response wrapper."""

from typing import Any, Optional
from pydantic import BaseModel


class ApiResponse(BaseModel):
    """Generic API response envelope returned by every handler."""

    success: bool = True
    message: Optional[str] = None
    count: Optional[int] = None
    data: Optional[Any] = None
