"""
Admission control for per-session seat limits.

CONCURRENCY STRATEGY: Optimistic Locking with Bounded Retry
===========================================================

Problem:
  Two users RSVP for the last seat of a session at the same time.
  Both count 9/10 confirmed, both decide "confirmed", both write.
  Result: 11/10. The same race hands two waitlisted users the same
  position, or promotes the same waitlisted user twice.

Solution:
  Every admission write (rsvp, cancel, capacity edit) is one transaction
  that ends with a compare-and-set on the session row:

  1. Read the session (counters + version) and whatever RSVPs the
     decision needs
  2. Decide (confirm / waitlist / promote / renumber)
  3. UPDATE event_sessions SET <counters>, version = version + 1
     WHERE id = :session_id AND version = :read_version
  4. If rows_affected == 0, another writer committed first -> roll back,
     back off, re-read and decide again
  5. Otherwise stage the RSVP writes and commit everything together

  Writers on the same session serialize on that one row; writers on
  different sessions never touch the same row and never contend.
  After RSVP_MAX_RETRY_ATTEMPTS misses the caller gets a retryable
  Conflict. The DB CHECK (confirmed_count <= capacity) and the partial
  unique index on live RSVPs are the final safety net.

Session status is re-derived from the counters after every mutation:
closed if an admin closed it, full if confirmed_count >= capacity,
open otherwise.
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.config import Settings, get_settings
from agenda.core.exceptions import (
    AdmissionError,
    AlreadyRegistered,
    CapacityExceededInternally,
    Conflict,
    InvalidCapacity,
    RSVPNotFound,
    SessionClosed,
    SessionNotFound,
)
from agenda.core.logging import get_logger
from agenda.core.metrics import (
    admission_latency,
    record_cancellation,
    record_promotion,
    record_retry,
    record_rsvp,
)
from agenda.db.base import utcnow
from agenda.models.event_session import EventSession, SessionStatus
from agenda.models.rsvp import RSVP, RSVPStatus
from agenda.repositories import RSVPStore, SessionStore
from agenda.schemas.rsvp import UserInfo
from agenda.schemas.session import SessionCreate, SessionUpdate

logger = get_logger(__name__)

T = TypeVar("T")

# Returned by an attempt whose compare-and-set lost the race
_STALE = object()


@dataclass
class RSVPOutcome:
    rsvp_id: str
    event_id: str
    session_id: str
    status: str
    position: Optional[int]

    @property
    def message(self) -> str:
        if self.status == RSVPStatus.CONFIRMED:
            return "Successfully registered for session!"
        return f"Added to waitlist (position {self.position})"


@dataclass
class PromotedUser:
    user_id: str
    user_name: str


@dataclass
class CancelOutcome:
    event_id: str
    session_id: str
    cancelled_status: str
    promoted: Optional[PromotedUser] = None


@dataclass
class Attendees:
    confirmed: list[RSVP] = field(default_factory=list)
    waitlisted: list[RSVP] = field(default_factory=list)


def derive_status(capacity: int, confirmed_count: int, closed: bool) -> str:
    if closed:
        return SessionStatus.CLOSED
    if confirmed_count >= capacity:
        return SessionStatus.FULL
    return SessionStatus.OPEN


class AdmissionController:
    """
    Owns the session counters. Nothing else holds a SessionStore/RSVPStore.
    One instance per request; all durable state lives in the database.
    """

    def __init__(self, db: AsyncSession, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.db = db
        self.sessions = SessionStore(db)
        self.rsvps = RSVPStore(db)
        self.max_attempts = max(1, settings.RSVP_MAX_RETRY_ATTEMPTS)
        self.backoff_seconds = settings.RSVP_RETRY_BACKOFF_SECONDS
        self.default_capacity = settings.DEFAULT_SESSION_CAPACITY

    # ------------------------------------------------------------------
    # Session lifecycle (admin)
    # ------------------------------------------------------------------

    async def create_session(self, event_id: str, data: SessionCreate) -> EventSession:
        capacity = data.capacity if data.capacity is not None else self.default_capacity
        session = await self.sessions.add(
            EventSession(
                event_id=event_id,
                title=data.title,
                description=data.description,
                speaker=data.speaker,
                location=data.location,
                session_type=data.session_type,
                start_time=data.start_time,
                end_time=data.end_time,
                capacity=capacity,
                confirmed_count=0,
                waitlist_count=0,
                status=SessionStatus.OPEN,
            )
        )
        await self.db.commit()

        logger.info(
            "session_created",
            session_id=session.id,
            event_id=event_id,
            title=session.title,
            capacity=capacity,
        )
        return session

    async def update_session(self, session_id: str, data: SessionUpdate) -> EventSession:
        """
        Administrative edit of capacity and/or the closed override.

        Raising capacity promotes waitlisted RSVPs (FIFO) into the new
        seats. Capacity can never drop below the confirmed count.
        """

        async def attempt():
            session = await self._require_session(session_id)
            version = session.version
            confirmed = session.confirmed_count
            waitlisted = session.waitlist_count

            capacity = data.capacity if data.capacity is not None else session.capacity
            if capacity < confirmed:
                raise InvalidCapacity(session_id, capacity, confirmed)

            closed = session.status == SessionStatus.CLOSED
            if data.status is not None:
                closed = data.status == SessionStatus.CLOSED

            free_seats = capacity - confirmed
            heads = []
            if free_seats > 0 and waitlisted > 0:
                heads = await self.rsvps.list_waitlisted(session_id, limit=min(free_seats, waitlisted))

            confirmed += len(heads)
            waitlisted -= len(heads)
            self._check_capacity(session_id, capacity, confirmed)

            if not await self.sessions.compare_and_set(
                session_id,
                version,
                capacity=capacity,
                confirmed_count=confirmed,
                waitlist_count=waitlisted,
                status=derive_status(capacity, confirmed, closed),
            ):
                return _STALE

            if heads:
                now = utcnow()
                await self.rsvps.promote([r.id for r in heads], now)
                await self.rsvps.shift_waitlist(session_id, after_position=len(heads), by=len(heads))
            return [(r.user_id, r.position) for r in heads]

        promoted = await self._atomic("update_session", session_id, attempt)
        record_promotion("capacity_increase", len(promoted))
        logger.info(
            "session_updated",
            session_id=session_id,
            capacity=data.capacity,
            status=data.status,
            promoted=[user_id for user_id, _ in promoted],
        )
        return await self._require_session(session_id)

    # ------------------------------------------------------------------
    # RSVP / cancel
    # ------------------------------------------------------------------

    async def rsvp(self, session_id: str, user_id: str, user_info: UserInfo) -> RSVPOutcome:
        """
        Confirm the user if a seat is free, otherwise append them to the
        waitlist at position waitlist_count + 1.
        """

        async def attempt():
            session = await self._require_session(session_id)

            existing = await self.rsvps.get_live(session_id, user_id)
            if existing is not None:
                raise AlreadyRegistered(session_id, user_id, existing.status, existing.position)

            if session.status == SessionStatus.CLOSED:
                raise SessionClosed(session_id)

            version = session.version
            capacity = session.capacity
            confirmed = await self._live_count(session, RSVPStatus.CONFIRMED)
            waitlisted = await self._live_count(session, RSVPStatus.WAITLISTED)

            if confirmed < capacity:
                status, position = RSVPStatus.CONFIRMED, None
                confirmed += 1
            else:
                status, position = RSVPStatus.WAITLISTED, waitlisted + 1
                waitlisted += 1
            self._check_capacity(session_id, capacity, confirmed)

            if not await self.sessions.compare_and_set(
                session_id,
                version,
                confirmed_count=confirmed,
                waitlist_count=waitlisted,
                status=derive_status(capacity, confirmed, closed=False),
            ):
                return _STALE

            rsvp = self.rsvps.add(
                RSVP(
                    session_id=session_id,
                    user_id=user_id,
                    user_name=user_info.name,
                    user_email=user_info.email,
                    status=status,
                    position=position,
                    registered_at=utcnow(),
                )
            )
            await self.db.flush()
            return RSVPOutcome(
                rsvp_id=rsvp.id,
                event_id=session.event_id,
                session_id=session_id,
                status=status,
                position=position,
            )

        try:
            with admission_latency.labels(operation="rsvp").time():
                outcome = await self._atomic("rsvp", session_id, attempt)
        except AdmissionError as exc:
            record_rsvp(exc.code)
            raise

        record_rsvp(outcome.status)
        logger.info(
            f"rsvp_{outcome.status}",
            session_id=session_id,
            user_id=user_id,
            rsvp_id=outcome.rsvp_id,
            position=outcome.position,
        )
        return outcome

    async def cancel(self, session_id: str, user_id: str) -> CancelOutcome:
        """
        Cancel the user's live RSVP.

        Confirmed: the lowest-position waitlisted RSVP (if any) takes the
        seat and the rest of the waitlist moves up one place.
        Waitlisted: everyone behind the cancelled entry moves up one place.
        """

        async def attempt():
            session = await self._require_session(session_id)
            rsvp = await self.rsvps.get_live(session_id, user_id)
            if rsvp is None:
                raise RSVPNotFound(session_id, user_id)

            version = session.version
            capacity = session.capacity
            confirmed = session.confirmed_count
            waitlisted = session.waitlist_count
            cancelled_status = rsvp.status
            cancelled_position = rsvp.position

            head = None
            if cancelled_status == RSVPStatus.CONFIRMED:
                heads = await self.rsvps.list_waitlisted(session_id, limit=1)
                if heads:
                    # Seat passes straight to the head of the queue
                    head = heads[0]
                    waitlisted -= 1
                else:
                    confirmed -= 1
            else:
                waitlisted -= 1

            if not await self.sessions.compare_and_set(
                session_id,
                version,
                confirmed_count=confirmed,
                waitlist_count=waitlisted,
                status=derive_status(capacity, confirmed, session.status == SessionStatus.CLOSED),
            ):
                return _STALE

            now = utcnow()
            await self.rsvps.mark_cancelled(rsvp.id, now)

            promoted = None
            if head is not None:
                await self.rsvps.promote([head.id], now)
                await self.rsvps.shift_waitlist(session_id, after_position=head.position)
                promoted = PromotedUser(user_id=head.user_id, user_name=head.user_name)
            elif cancelled_status == RSVPStatus.WAITLISTED:
                await self.rsvps.shift_waitlist(session_id, after_position=cancelled_position)

            return CancelOutcome(
                event_id=session.event_id,
                session_id=session_id,
                cancelled_status=cancelled_status,
                promoted=promoted,
            )

        with admission_latency.labels(operation="cancel").time():
            outcome = await self._atomic("cancel", session_id, attempt)

        if outcome.promoted is not None:
            record_cancellation("promoted")
            record_promotion("cancellation")
            # TODO: notify the promoted user once a notification channel exists
            logger.info(
                "waitlist_promoted",
                session_id=session_id,
                user_id=outcome.promoted.user_id,
                vacated_by=user_id,
            )
        elif outcome.cancelled_status == RSVPStatus.CONFIRMED:
            record_cancellation("seat_released")
        else:
            record_cancellation("waitlist_left")

        logger.info(
            "rsvp_cancelled",
            session_id=session_id,
            user_id=user_id,
            previous_status=outcome.cancelled_status,
        )
        return outcome

    async def get_attendees(self, session_id: str) -> Attendees:
        await self._require_session(session_id)
        return Attendees(
            confirmed=await self.rsvps.list_confirmed(session_id),
            waitlisted=await self.rsvps.list_waitlisted(session_id),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _require_session(self, session_id: str) -> EventSession:
        session = await self.sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    async def _live_count(self, session: EventSession, status: str) -> int:
        """Authoritative count of live RSVPs; the cached counter is cross-checked."""
        live = await self.rsvps.count_by_status(session.id, status)
        cached = session.confirmed_count if status == RSVPStatus.CONFIRMED else session.waitlist_count
        if live != cached:
            logger.warning(
                "session_counter_drift",
                session_id=session.id,
                status=status,
                cached=cached,
                live=live,
            )
        return live

    def _check_capacity(self, session_id: str, capacity: int, confirmed: int) -> None:
        if confirmed > capacity:
            logger.error(
                "capacity_invariant_violated",
                session_id=session_id,
                capacity=capacity,
                confirmed=confirmed,
            )
            raise CapacityExceededInternally(session_id, capacity, confirmed)

    def _backoff_delay(self, attempt: int) -> float:
        base = self.backoff_seconds * (2 ** (attempt - 1))
        return base + random.uniform(0, self.backoff_seconds)

    async def _atomic(
        self,
        operation: str,
        session_id: str,
        attempt_fn: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Run attempt_fn as one transaction, retrying on lost compare-and-set
        or storage-level contention. Domain errors roll back and propagate.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                outcome = await attempt_fn()
                if outcome is not _STALE:
                    await self.db.commit()
                    return outcome
                reason = "version_conflict"
            except AdmissionError:
                await self.db.rollback()
                raise
            except (OperationalError, IntegrityError) as exc:
                reason = type(exc).__name__

            await self.db.rollback()
            record_retry(operation)
            logger.info(
                "admission_retry",
                operation=operation,
                session_id=session_id,
                attempt=attempt,
                reason=reason,
            )
            if attempt < self.max_attempts:
                await asyncio.sleep(self._backoff_delay(attempt))

        logger.warning(
            "admission_conflict",
            operation=operation,
            session_id=session_id,
            attempts=self.max_attempts,
        )
        raise Conflict(session_id, self.max_attempts)
