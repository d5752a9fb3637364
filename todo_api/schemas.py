"""
Pydantic schemas for the todo API.

Task, user and notification bodies are open documents: the named fields are
the ones the API reasons about, anything else the client sends is kept.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Document(BaseModel):
    model_config = ConfigDict(extra="allow")

    def as_document(self) -> dict:
        """Fields the client actually sent, declared or extra."""
        keep = set(self.model_fields_set) | set(self.model_extra or {})
        return {k: v for k, v in self.model_dump().items() if k in keep}


class LoginPayload(Document):
    email: Optional[str] = None


class UserPayload(Document):
    email: str
    name: Optional[str] = None
    role: Optional[str] = None


class TaskPayload(Document):
    email: Optional[str] = None
    title: Optional[str] = None
    status: Optional[str] = None


class TaskUpdatePayload(Document):
    """Partial task update; every supplied field is set on the task."""


class NotificationPayload(Document):
    email: Optional[str] = None


class SuccessResponse(BaseModel):
    success: Literal[True] = True


class LoginFailedResponse(BaseModel):
    success: Literal[False] = False
    message: str


class InsertResponse(BaseModel):
    acknowledged: bool
    insertedId: Optional[str] = None


class WelcomeResponse(BaseModel):
    message: str
    insertedId: None = None


class UpdateResponse(BaseModel):
    acknowledged: bool
    matchedCount: int
    modifiedCount: int
    upsertedCount: int = 0
    upsertedId: Optional[str] = None


class DeleteResponse(BaseModel):
    acknowledged: bool
    deletedCount: int


class RunningSummaryResponse(BaseModel):
    count: int
    titles: str


class SearchHit(BaseModel):
    id: str = Field(..., alias="_id")


class HealthResponse(BaseModel):
    status: Literal["healthy"] = "healthy"
