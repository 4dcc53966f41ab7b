"""Admin API schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class CreateBehaviorRequest(BaseModel):
    """POST /v1/admin/behaviors request."""

    name: str = Field(min_length=1)
    description: str | None = None
    prompt: str = Field(min_length=1)
    is_active: bool = True


class UpdateBehaviorRequest(BaseModel):
    """PATCH /v1/admin/behaviors/{id} - all fields optional."""

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    prompt: str | None = Field(default=None, min_length=1)
    is_active: bool | None = None


class BehaviorOut(BaseModel):
    """Behavior as returned by the admin API."""

    behavior_id: str
    name: str
    description: str | None = None
    prompt: str
    is_active: bool
    position: int
    created_at: datetime
    updated_at: datetime


class TranscriptSegment(BaseModel):
    """One timestamped speech segment."""

    speaker: str | None = None
    text: str
    start: float | None = None
    end: float | None = None


class CreateCallRequest(BaseModel):
    """POST /v1/admin/calls request - registers a transcribed call."""

    title: str | None = None
    transcription: list[TranscriptSegment] | str | None = None
    create_feedback_placeholder: bool = False


class CallOut(BaseModel):
    """Registered call."""

    call_id: str
    title: str | None = None
    transcription: Any = None
    created_at: datetime
