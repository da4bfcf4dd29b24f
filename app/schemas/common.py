"""
Shared envelope shapes used across the API.
"""
from typing import Any, Optional
from pydantic import BaseModel


class Envelope(BaseModel):
    """Generic success envelope."""
    status: int
    message: str
    data: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Client error envelope (400 / 404): every violation in `errors`."""
    status: int
    message: str
    errors: list[str]


class FaultResponse(BaseModel):
    """Envelope for unexpected server-side failures."""
    status: int = 500
    message: str = "Something broke!"
    error: str
