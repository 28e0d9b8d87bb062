"""
Pydantic schemas for session-related request/response validation.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional
from pydantic import AfterValidator, BaseModel, Field, model_validator

from agenda.db.base import as_utc

# Offsets are normalized away so listings sort by the real instant on every backend
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


class SessionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field("", max_length=2000)
    speaker: str = Field("", max_length=255)
    location: str = Field("", max_length=255)
    session_type: Literal["session", "workshop", "networking"] = "session"
    start_time: UTCDateTime
    end_time: UTCDateTime
    # Falls back to DEFAULT_SESSION_CAPACITY when omitted
    capacity: Optional[int] = Field(None, gt=0, le=100000)

    @model_validator(mode="after")
    def check_time_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class SessionUpdate(BaseModel):
    capacity: Optional[int] = Field(None, gt=0, le=100000)
    # "open" lifts an administrative close; the status is then re-derived
    status: Optional[Literal["open", "closed"]] = None

    @model_validator(mode="after")
    def check_not_empty(self):
        if self.capacity is None and self.status is None:
            raise ValueError("Provide capacity and/or status")
        return self


class SessionResponse(BaseModel):
    id: str
    event_id: str
    title: str
    description: str
    speaker: str
    location: str
    session_type: str
    start_time: UTCDateTime
    end_time: UTCDateTime
    capacity: int
    confirmed_count: int
    waitlist_count: int
    status: str
    created_at: UTCDateTime
    updated_at: UTCDateTime

    model_config = {"from_attributes": True}


class SessionListResponse(BaseModel):
    sessions: list[SessionResponse]
    total: int
    cached: bool = False
