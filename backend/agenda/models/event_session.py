"""
Event session model: a time slot inside an event with its own seat limit.

Key design decisions:
- `confirmed_count` / `waitlist_count` are denormalized (avoids COUNT queries on
  every RSVP) and are written only by the admission controller
- `version` column enables optimistic locking; every admission write is a
  compare-and-set on it, which serializes writers per session
- `event_id` is an opaque reference to an event owned by another system
"""

from sqlalchemy import Column, Integer, String, DateTime, Index, CheckConstraint
from sqlalchemy.orm import relationship

from agenda.db.base import Base, TimestampMixin, new_id


class SessionStatus:
    OPEN = "open"
    FULL = "full"
    CLOSED = "closed"

    ALL = (OPEN, FULL, CLOSED)


class SessionType:
    SESSION = "session"
    WORKSHOP = "workshop"
    NETWORKING = "networking"

    ALL = (SESSION, WORKSHOP, NETWORKING)


class EventSession(Base, TimestampMixin):
    __tablename__ = "event_sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    event_id = Column(String(128), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(2000), nullable=False, default="")
    speaker = Column(String(255), nullable=False, default="")
    location = Column(String(255), nullable=False, default="")
    session_type = Column(String(20), nullable=False, default=SessionType.SESSION)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)

    capacity = Column(Integer, nullable=False)
    confirmed_count = Column(Integer, nullable=False, default=0)
    waitlist_count = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=SessionStatus.OPEN)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    rsvps = relationship("RSVP", back_populates="session", lazy="raise")

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_session_capacity_positive"),
        CheckConstraint("confirmed_count >= 0", name="check_session_confirmed_non_negative"),
        CheckConstraint("waitlist_count >= 0", name="check_session_waitlist_non_negative"),
        # Final safety net against overbooking
        CheckConstraint("confirmed_count <= capacity", name="check_session_confirmed_lte_capacity"),
        CheckConstraint("status IN ('open', 'full', 'closed')", name="check_session_status"),
        Index("ix_event_sessions_event_start", "event_id", "start_time"),
    )

    def __repr__(self) -> str:
        return (
            f"<EventSession(id={self.id}, title={self.title}, "
            f"confirmed={self.confirmed_count}/{self.capacity}, waitlist={self.waitlist_count})>"
        )
