"""
User records and the response envelopes that carry them.

Request bodies are not parsed by these models directly: raw JSON goes through
`app.services.validation` first, which builds `UserCreate` / `UserUpdate`
from already-checked values.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    name: str
    email: str
    age: int


class UserUpdate(BaseModel):
    """Partial update. Only fields explicitly set are written."""
    name: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    age: int


class UserEnvelope(BaseModel):
    status: int = Field(description="HTTP status code, mirrored in the body.")
    message: str
    data: Optional[UserOut] = None


class UserListEnvelope(BaseModel):
    status: int = Field(description="HTTP status code, mirrored in the body.")
    message: str
    data: list[UserOut] = Field(default_factory=list)
