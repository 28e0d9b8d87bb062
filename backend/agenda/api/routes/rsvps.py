"""
RSVP endpoints with concurrency-safe admission control.
"""

from fastapi import APIRouter, status

from agenda.api.dependencies import AdmissionDep
from agenda.schemas.rsvp import (
    AttendeeResponse,
    AttendeesResponse,
    PromotedUserResponse,
    RSVPCancelResponse,
    RSVPCreate,
    RSVPResponse,
)
from agenda.services.cache_service import invalidate_event

router = APIRouter(prefix="/sessions/{session_id}", tags=["RSVPs"])


@router.post("/rsvps", response_model=RSVPResponse, status_code=status.HTTP_201_CREATED)
async def create_rsvp(session_id: str, rsvp_data: RSVPCreate, controller: AdmissionDep):
    """
    RSVP to a session.

    Confirmed while seats remain, otherwise waitlisted at the next position.
    Concurrent RSVPs for the same session are serialized with optimistic
    locking; after repeated conflicts the API returns a retryable 409.
    """
    outcome = await controller.rsvp(session_id, rsvp_data.user_id, rsvp_data.user_info)
    await invalidate_event(outcome.event_id)
    return RSVPResponse(
        rsvp_id=outcome.rsvp_id,
        session_id=outcome.session_id,
        status=outcome.status,
        position=outcome.position,
        message=outcome.message,
    )


@router.delete("/rsvps/{user_id}", response_model=RSVPCancelResponse)
async def cancel_rsvp(session_id: str, user_id: str, controller: AdmissionDep):
    """Cancel an RSVP. A vacated confirmed seat goes to the head of the waitlist."""
    outcome = await controller.cancel(session_id, user_id)
    await invalidate_event(outcome.event_id)

    promoted = None
    if outcome.promoted is not None:
        promoted = PromotedUserResponse(
            user_id=outcome.promoted.user_id,
            user_name=outcome.promoted.user_name,
        )
    return RSVPCancelResponse(
        message="RSVP cancelled successfully",
        session_id=session_id,
        promoted=promoted,
    )


@router.get("/attendees", response_model=AttendeesResponse)
async def list_attendees(session_id: str, controller: AdmissionDep):
    """Confirmed attendees and the waitlist in position order."""
    attendees = await controller.get_attendees(session_id)
    return AttendeesResponse(
        session_id=session_id,
        confirmed=[AttendeeResponse.model_validate(r) for r in attendees.confirmed],
        waitlisted=[AttendeeResponse.model_validate(r) for r in attendees.waitlisted],
        total_confirmed=len(attendees.confirmed),
        total_waitlisted=len(attendees.waitlisted),
    )
