"""
Storage layer for sessions and RSVPs.

Readers are safe to hand to anything; the *Store classes can mutate
counters and RSVP state and belong to the admission controller only.
"""

from .sessions import SessionReader, SessionStore
from .rsvps import RSVPReader, RSVPStore

__all__ = ['SessionReader', 'SessionStore', 'RSVPReader', 'RSVPStore']
