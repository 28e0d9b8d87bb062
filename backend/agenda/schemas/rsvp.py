"""
Pydantic schemas for RSVP request/response validation.
"""

from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from agenda.schemas.session import UTCDateTime


class UserInfo(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr


class RSVPCreate(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=128)
    user_info: UserInfo


class RSVPResponse(BaseModel):
    rsvp_id: str
    session_id: str
    status: str
    position: Optional[int] = None
    message: str


class PromotedUserResponse(BaseModel):
    user_id: str
    user_name: str


class RSVPCancelResponse(BaseModel):
    message: str
    session_id: str
    promoted: Optional[PromotedUserResponse] = None


class AttendeeResponse(BaseModel):
    id: str
    user_id: str
    user_name: str
    user_email: str
    status: str
    position: Optional[int]
    registered_at: UTCDateTime
    promoted_at: Optional[UTCDateTime]

    model_config = {"from_attributes": True}


class AttendeesResponse(BaseModel):
    session_id: str
    confirmed: list[AttendeeResponse]
    waitlisted: list[AttendeeResponse]
    total_confirmed: int
    total_waitlisted: int
