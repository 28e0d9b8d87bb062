"""
Domain errors raised by the admission-control engine.

Every error carries the HTTP status it maps to and a stable `code` so
callers can tell "already confirmed" from "already waitlisted" from
"not found" without parsing messages. The FastAPI handler in main.py
renders them as:

    {"error": <code>, "detail": <message>, ...payload}
"""

from typing import Any, Optional

from fastapi import status


class AdmissionError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "admission_error"

    def __init__(self, detail: str, **payload: Any):
        super().__init__(detail)
        self.detail = detail
        self.payload = payload

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.detail, **self.payload}


class SessionNotFound(AdmissionError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "session_not_found"

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} not found", session_id=session_id)


class RSVPNotFound(AdmissionError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "rsvp_not_found"

    def __init__(self, session_id: str, user_id: str):
        super().__init__(
            "No RSVP found for this session",
            session_id=session_id,
            user_id=user_id,
        )


class AlreadyRegistered(AdmissionError):
    """A live RSVP exists; payload carries its status so the UI can render it."""

    status_code = status.HTTP_409_CONFLICT
    code = "already_registered"

    def __init__(self, session_id: str, user_id: str, rsvp_status: str, position: Optional[int]):
        super().__init__(
            "Already registered for this session",
            session_id=session_id,
            user_id=user_id,
            status=rsvp_status,
            position=position,
        )
        self.rsvp_status = rsvp_status
        self.position = position


class SessionClosed(AdmissionError):
    status_code = status.HTTP_409_CONFLICT
    code = "session_closed"

    def __init__(self, session_id: str):
        super().__init__("Session is closed for RSVPs", session_id=session_id)


class InvalidCapacity(AdmissionError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "invalid_capacity"

    def __init__(self, session_id: str, capacity: int, confirmed: int):
        super().__init__(
            f"Capacity {capacity} is below the {confirmed} confirmed attendees",
            session_id=session_id,
            capacity=capacity,
            confirmed=confirmed,
        )


class Conflict(AdmissionError):
    """Concurrent writers kept winning the session row. Safe to retry."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"

    def __init__(self, session_id: str, attempts: int):
        super().__init__(
            "Session is under heavy contention. Please try again.",
            session_id=session_id,
            attempts=attempts,
            retryable=True,
        )


class CapacityExceededInternally(AdmissionError):
    """Invariant breach: a confirm would push confirmed_count past capacity."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "capacity_exceeded_internally"

    def __init__(self, session_id: str, capacity: int, confirmed: int):
        super().__init__(
            "Internal capacity invariant violated",
            session_id=session_id,
            capacity=capacity,
            confirmed=confirmed,
        )
