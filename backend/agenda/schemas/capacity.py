"""
Schemas for the live capacity dashboard feed.
"""

from pydantic import BaseModel

from agenda.schemas.session import UTCDateTime


class CapacitySnapshot(BaseModel):
    session_id: str
    title: str
    capacity: int
    confirmed: int
    waitlisted: int
    available: int
    occupancy_rate: int
    status: str
    start_time: UTCDateTime


class LiveCapacityResponse(BaseModel):
    event_id: str
    capacity_data: list[CapacitySnapshot]
    total_sessions: int
    cached: bool = False
