"""
Top-level router for version 1 of the API.

Mounts the events, users and audit routers under their prefixes.
"""

from fastapi import APIRouter

from .endpoints import audit, events, users

router = APIRouter()

router.include_router(events.router, prefix="/events", tags=["events"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])
