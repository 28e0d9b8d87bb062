"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from agenda.api.routes import sessions, rsvps

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(sessions.router)
api_router.include_router(rsvps.router)
