"""Initial schema: event sessions and RSVPs with counters, constraints and indexes.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "event_sessions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("event_id", sa.String(128), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.String(2000), nullable=False, server_default=""),
        sa.Column("speaker", sa.String(255), nullable=False, server_default=""),
        sa.Column("location", sa.String(255), nullable=False, server_default=""),
        sa.Column("session_type", sa.String(20), nullable=False, server_default="session"),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("confirmed_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("waitlist_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("capacity > 0", name="check_session_capacity_positive"),
        sa.CheckConstraint("confirmed_count >= 0", name="check_session_confirmed_non_negative"),
        sa.CheckConstraint("waitlist_count >= 0", name="check_session_waitlist_non_negative"),
        sa.CheckConstraint("confirmed_count <= capacity", name="check_session_confirmed_lte_capacity"),
        sa.CheckConstraint("status IN ('open', 'full', 'closed')", name="check_session_status"),
    )
    op.create_index("ix_event_sessions_event_id", "event_sessions", ["event_id"])
    # Listing query: all sessions of one event ordered by start time
    op.create_index("ix_event_sessions_event_start", "event_sessions", ["event_id", "start_time"])

    op.create_table(
        "session_rsvps",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "session_id",
            sa.String(36),
            sa.ForeignKey("event_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("user_name", sa.String(255), nullable=False),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("registered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("promoted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('confirmed', 'waitlisted', 'cancelled')",
            name="check_rsvp_status",
        ),
        sa.CheckConstraint(
            "(status = 'waitlisted' AND position >= 1) OR (status != 'waitlisted' AND position IS NULL)",
            name="check_rsvp_position_only_when_waitlisted",
        ),
    )
    op.create_index("ix_session_rsvps_session_user", "session_rsvps", ["session_id", "user_id"])
    # Admission reads: "all waitlisted RSVPs of session X", "count confirmed of session X"
    op.create_index("ix_session_rsvps_session_status", "session_rsvps", ["session_id", "status"])
    # At most one live RSVP per (session, user); cancelled rows are kept as history
    op.create_index(
        "uq_session_rsvps_live_user",
        "session_rsvps",
        ["session_id", "user_id"],
        unique=True,
        postgresql_where=sa.text("status != 'cancelled'"),
        sqlite_where=sa.text("status != 'cancelled'"),
    )


def downgrade() -> None:
    op.drop_table("session_rsvps")
    op.drop_table("event_sessions")
