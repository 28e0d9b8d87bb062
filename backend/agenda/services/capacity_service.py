"""
Read-only capacity reporting for dashboards.

Built on the reader handles only: nothing here can touch session
counters or RSVP state. Reads are plain SELECTs with no locks, so
polling never slows down admission writers. Confirmed/waitlisted
figures are counted from the RSVP rows themselves rather than taken
from the cached counters.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.exceptions import SessionNotFound
from agenda.models.event_session import EventSession
from agenda.models.rsvp import RSVPStatus
from agenda.repositories import RSVPReader, SessionReader
from agenda.schemas.capacity import CapacitySnapshot


def occupancy_rate(confirmed: int, capacity: int) -> int:
    """Percentage of seats taken, rounded half up."""
    if capacity <= 0:
        return 0
    return (200 * confirmed + capacity) // (2 * capacity)


class CapacityReporter:

    def __init__(self, db: AsyncSession):
        self.sessions = SessionReader(db)
        self.rsvps = RSVPReader(db)

    async def get_session(self, session_id: str) -> EventSession:
        session = await self.sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    async def get_sessions(self, event_id: str) -> list[EventSession]:
        """All sessions of an event, earliest start first."""
        return await self.sessions.list_for_event(event_id)

    async def live_capacity(self, event_id: str) -> list[CapacitySnapshot]:
        sessions = await self.sessions.list_for_event(event_id)
        counts = await self.rsvps.counts_for_sessions([s.id for s in sessions])

        snapshots = []
        for session in sessions:
            confirmed = counts[session.id][RSVPStatus.CONFIRMED]
            waitlisted = counts[session.id][RSVPStatus.WAITLISTED]
            snapshots.append(
                CapacitySnapshot(
                    session_id=session.id,
                    title=session.title,
                    capacity=session.capacity,
                    confirmed=confirmed,
                    waitlisted=waitlisted,
                    available=max(0, session.capacity - confirmed),
                    occupancy_rate=occupancy_rate(confirmed, session.capacity),
                    status=session.status,
                    start_time=session.start_time,
                )
            )
        return snapshots
