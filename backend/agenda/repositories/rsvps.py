"""
RSVP persistence.

All mutating methods only stage changes in the caller's transaction;
the admission controller commits them together with the session
compare-and-set so a single rsvp/cancel is all-or-nothing.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.db.base import utcnow
from agenda.models.rsvp import RSVP, RSVPStatus


class RSVPReader:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_live(self, session_id: str, user_id: str) -> Optional[RSVP]:
        result = await self.db.execute(
            select(RSVP)
            .where(
                RSVP.session_id == session_id,
                RSVP.user_id == user_id,
                RSVP.status.in_(RSVPStatus.LIVE),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def list_confirmed(self, session_id: str) -> list[RSVP]:
        result = await self.db.execute(
            select(RSVP)
            .where(RSVP.session_id == session_id, RSVP.status == RSVPStatus.CONFIRMED)
            .order_by(RSVP.registered_at.asc(), RSVP.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_waitlisted(self, session_id: str, limit: Optional[int] = None) -> list[RSVP]:
        query = (
            select(RSVP)
            .where(RSVP.session_id == session_id, RSVP.status == RSVPStatus.WAITLISTED)
            .order_by(RSVP.position.asc())
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_by_status(self, session_id: str, status: str) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(RSVP)
            .where(RSVP.session_id == session_id, RSVP.status == status)
        )
        return result.scalar_one()

    async def counts_for_sessions(self, session_ids: list[str]) -> dict[str, dict[str, int]]:
        """Live confirmed/waitlisted counts for many sessions in one query."""
        if not session_ids:
            return {}
        result = await self.db.execute(
            select(RSVP.session_id, RSVP.status, func.count())
            .where(RSVP.session_id.in_(session_ids), RSVP.status.in_(RSVPStatus.LIVE))
            .group_by(RSVP.session_id, RSVP.status)
        )
        counts = {sid: {RSVPStatus.CONFIRMED: 0, RSVPStatus.WAITLISTED: 0} for sid in session_ids}
        for session_id, status, total in result.all():
            counts[session_id][status] = total
        return counts


class RSVPStore(RSVPReader):

    def add(self, rsvp: RSVP) -> RSVP:
        self.db.add(rsvp)
        return rsvp

    async def mark_cancelled(self, rsvp_id: str, now: datetime) -> None:
        await self.db.execute(
            update(RSVP)
            .where(RSVP.id == rsvp_id, RSVP.status.in_(RSVPStatus.LIVE))
            .values(status=RSVPStatus.CANCELLED, position=None, cancelled_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )

    async def promote(self, rsvp_ids: list[str], now: datetime) -> None:
        if not rsvp_ids:
            return
        await self.db.execute(
            update(RSVP)
            .where(RSVP.id.in_(rsvp_ids), RSVP.status == RSVPStatus.WAITLISTED)
            .values(status=RSVPStatus.CONFIRMED, position=None, promoted_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )

    async def shift_waitlist(self, session_id: str, after_position: int, by: int = 1) -> int:
        """
        Close a gap in the waitlist: every waitlisted RSVP behind
        `after_position` moves up `by` places. One bulk statement.
        """
        result = await self.db.execute(
            update(RSVP)
            .where(
                RSVP.session_id == session_id,
                RSVP.status == RSVPStatus.WAITLISTED,
                RSVP.position > after_position,
            )
            .values(position=RSVP.position - by, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
