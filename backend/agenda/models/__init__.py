from agenda.models.event_session import EventSession, SessionStatus, SessionType
from agenda.models.rsvp import RSVP, RSVPStatus

__all__ = ["EventSession", "SessionStatus", "SessionType", "RSVP", "RSVPStatus"]
