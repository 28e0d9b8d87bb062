from agenda.schemas.session import SessionCreate, SessionUpdate, SessionResponse, SessionListResponse
from agenda.schemas.rsvp import (
    UserInfo, RSVPCreate, RSVPResponse, RSVPCancelResponse,
    PromotedUserResponse, AttendeeResponse, AttendeesResponse,
)
from agenda.schemas.capacity import CapacitySnapshot, LiveCapacityResponse

__all__ = [
    "SessionCreate", "SessionUpdate", "SessionResponse", "SessionListResponse",
    "UserInfo", "RSVPCreate", "RSVPResponse", "RSVPCancelResponse",
    "PromotedUserResponse", "AttendeeResponse", "AttendeesResponse",
    "CapacitySnapshot", "LiveCapacityResponse",
]
