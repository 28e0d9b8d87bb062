"""
RSVP model: one user's claim on a seat in one session.

Key design decisions:
- Cancelled RSVPs are kept (terminal state) instead of deleted
- Partial unique index allows at most one live (non-cancelled) RSVP per
  (session_id, user_id); a user may RSVP again after cancelling
- `position` is only set while waitlisted and forms a dense 1..N sequence
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, CheckConstraint, text
from sqlalchemy.orm import relationship

from agenda.db.base import Base, TimestampMixin, new_id


class RSVPStatus:
    CONFIRMED = "confirmed"
    WAITLISTED = "waitlisted"
    CANCELLED = "cancelled"

    LIVE = (CONFIRMED, WAITLISTED)


class RSVP(Base, TimestampMixin):
    __tablename__ = "session_rsvps"

    id = Column(String(36), primary_key=True, default=new_id)
    session_id = Column(String(36), ForeignKey("event_sessions.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String(128), nullable=False)
    user_name = Column(String(255), nullable=False)
    user_email = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False)
    position = Column(Integer, nullable=True)
    registered_at = Column(DateTime(timezone=True), nullable=False)
    promoted_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    session = relationship("EventSession", back_populates="rsvps", lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "status IN ('confirmed', 'waitlisted', 'cancelled')",
            name="check_rsvp_status",
        ),
        CheckConstraint(
            "(status = 'waitlisted' AND position >= 1) OR (status != 'waitlisted' AND position IS NULL)",
            name="check_rsvp_position_only_when_waitlisted",
        ),
        Index("ix_session_rsvps_session_user", "session_id", "user_id"),
        Index("ix_session_rsvps_session_status", "session_id", "status"),
        # One live RSVP per user per session
        Index(
            "uq_session_rsvps_live_user",
            "session_id",
            "user_id",
            unique=True,
            postgresql_where=text("status != 'cancelled'"),
            sqlite_where=text("status != 'cancelled'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<RSVP(id={self.id}, session={self.session_id}, user={self.user_id}, status={self.status})>"
