"""
Session persistence.

SessionReader is the read-only handle (used by the capacity reporter).
SessionStore adds the writes, including the compare-and-set on the
cached counters; only the admission controller builds one.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.db.base import utcnow
from agenda.models.event_session import EventSession


class SessionReader:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, session_id: str) -> Optional[EventSession]:
        result = await self.db.execute(
            select(EventSession)
            .where(EventSession.id == session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_event(self, event_id: str) -> list[EventSession]:
        result = await self.db.execute(
            select(EventSession)
            .where(EventSession.event_id == event_id)
            .order_by(EventSession.start_time.asc(), EventSession.created_at.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())


class SessionStore(SessionReader):

    async def add(self, session: EventSession) -> EventSession:
        self.db.add(session)
        await self.db.flush()
        await self.db.refresh(session)
        return session

    async def compare_and_set(self, session_id: str, expected_version: int, **values) -> bool:
        """
        Write `values` onto the session row only if nobody else has written
        since `expected_version` was read. Bumps version and updated_at.

        Returns False on a version miss; the caller must roll back and retry.
        """
        result = await self.db.execute(
            update(EventSession)
            .where(
                EventSession.id == session_id,
                EventSession.version == expected_version,
            )
            .values(
                version=EventSession.version + 1,
                updated_at=utcnow(),
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
