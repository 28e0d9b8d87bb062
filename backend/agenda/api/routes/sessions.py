"""
Session endpoints: creation, listing, admin edits and the live capacity feed.
Listings and the capacity feed are cached in Redis per event.
"""

from fastapi import APIRouter, status

from agenda.api.dependencies import AdmissionDep, ReporterDep
from agenda.schemas.capacity import LiveCapacityResponse
from agenda.schemas.session import SessionCreate, SessionListResponse, SessionResponse, SessionUpdate
from agenda.services.cache_service import (
    CAPACITY_KIND,
    SESSIONS_KIND,
    get_cached,
    invalidate_event,
    set_cached,
)
from agenda.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Sessions"])


@router.post(
    "/events/{event_id}/sessions",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_session_endpoint(event_id: str, session_data: SessionCreate, controller: AdmissionDep):
    """Create a session with its own seat limit inside an event."""
    session = await controller.create_session(event_id, session_data)
    await invalidate_event(event_id)
    return session


@router.get("/events/{event_id}/sessions", response_model=SessionListResponse)
async def list_sessions_endpoint(event_id: str, reporter: ReporterDep):
    """Sessions of an event sorted by start time."""
    cached = await get_cached(SESSIONS_KIND, event_id)
    if cached:
        logger.info("sessions_list_cache_hit", event_id=event_id)
        cached["cached"] = True
        return SessionListResponse(**cached)

    sessions = await reporter.get_sessions(event_id)
    response_data = {
        "sessions": [SessionResponse.model_validate(s).model_dump() for s in sessions],
        "total": len(sessions),
        "cached": False,
    }
    await set_cached(SESSIONS_KIND, event_id, response_data)
    return SessionListResponse(**response_data)


@router.get("/events/{event_id}/capacity", response_model=LiveCapacityResponse)
async def live_capacity_endpoint(event_id: str, reporter: ReporterDep):
    """
    Occupancy per session for dashboards.
    Eventually consistent: may lag the latest RSVP by up to the cache TTL
    when Redis is enabled.
    """
    cached = await get_cached(CAPACITY_KIND, event_id)
    if cached:
        cached["cached"] = True
        return LiveCapacityResponse(**cached)

    snapshots = await reporter.live_capacity(event_id)
    response_data = {
        "event_id": event_id,
        "capacity_data": [s.model_dump() for s in snapshots],
        "total_sessions": len(snapshots),
        "cached": False,
    }
    await set_cached(CAPACITY_KIND, event_id, response_data)
    return LiveCapacityResponse(**response_data)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session_endpoint(session_id: str, reporter: ReporterDep):
    """Single session. Not cached (needs real-time counters)."""
    return await reporter.get_session(session_id)


@router.patch("/sessions/{session_id}", response_model=SessionResponse)
async def update_session_endpoint(session_id: str, update_data: SessionUpdate, controller: AdmissionDep):
    """
    Administrative edit: change capacity and/or close/reopen the session.
    Raising capacity promotes waitlisted RSVPs into the new seats.
    """
    session = await controller.update_session(session_id, update_data)
    await invalidate_event(session.event_id)
    return session
