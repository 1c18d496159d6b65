"""
Notely Backend - Pydantic Request/Response Schemas
====================================================

What:  Pydantic models defining the API contract between the client and backend.
How:   FastAPI uses these to parse request bodies, serialize responses and
       generate the OpenAPI document.

Schemas are kept apart from the SQLAlchemy models so the owning user id and
other internal columns never leak into responses.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NoteCreateRequest(BaseModel):
    """
    Body of POST /api/notes.

    `text` is optional at the schema level so that a missing or null value
    reaches NoteService and gets the same 400 "Empty note" as blank text.
    """
    text: Optional[str] = Field(default=None, description="Note content; trimmed before storing")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class NoteResponse(BaseModel):
    """A single note as returned by list and create."""
    id: uuid.UUID = Field(description="Unique note identifier (UUID)")
    text: str = Field(description="Trimmed note content")
    created_at: datetime = Field(description="When the note was created (UTC ISO 8601)")
    updated_at: datetime = Field(description="Last update timestamp (UTC ISO 8601)")

    model_config = {"from_attributes": True}


class DeleteResponse(BaseModel):
    """Confirmation returned by DELETE /api/notes/{id}."""
    success: bool = Field(default=True)


class ErrorResponse(BaseModel):
    """
    Standardized error body for every JSON error.

    Example:
        {
            "error": "not_authenticated",
            "message": "Not authenticated",
            "request_id": "1f2e3d4c"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


class ServiceInfoResponse(BaseModel):
    status: str = Field(default="ok")
    env: str = Field(description="development or production")
    message: str = Field(default="Backend service running")
