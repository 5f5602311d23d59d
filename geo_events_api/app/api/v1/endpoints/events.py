"""
Event endpoints for API v1.

Every route requires a bearer token.  Updating and deleting are
limited to the event's owner (or an admin, see
``ADMIN_CAN_MANAGE_ALL_EVENTS``).  Service errors are turned into
JSON responses by the application-wide handler in ``main.py``.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from geo_events_api.app.core.security import get_current_actor
from geo_events_api.app.schemas.event import EventCreate, EventFilter, EventRead, EventUpdate
from geo_events_api.app.schemas.user import Actor
from geo_events_api.app.services.event_service import EventService, get_event_service


router = APIRouter()


@router.post("/", response_model=EventRead, status_code=status.HTTP_201_CREATED)
async def create_event(
    event: EventCreate,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
) -> EventRead:
    """Create a new event owned by the current user.

    Returns 400 listing missing fields and 409 if an event with the
    same title and date already exists.
    """
    return await service.create(actor, event)


@router.get("/", response_model=List[EventRead])
async def list_events(
    category: Optional[str] = Query(None, description="Exact, case-sensitive category"),
    longitude: Optional[str] = Query(None, description="Longitude of the search centre"),
    latitude: Optional[str] = Query(None, description="Latitude of the search centre"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
) -> List[EventRead]:
    """List events, optionally filtered.

    - **category**: exact match.
    - **longitude**, **latitude**: only events within the search
      radius (50 km by default) of this point, nearest first.
    - **limit**, **offset**: pagination.
    """
    event_filter = EventFilter.from_query(
        category=category,
        longitude=longitude,
        latitude=latitude,
        limit=limit,
        offset=offset,
    )
    return await service.list_events(event_filter)


@router.get("/{event_id}", response_model=EventRead)
async def get_event(
    event_id: str,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
) -> EventRead:
    return await service.get(event_id)


@router.put("/{event_id}", response_model=EventRead)
async def update_event(
    event_id: str,
    updates: EventUpdate,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
) -> EventRead:
    """Update an existing event.

    Partial updates are supported; fields that are omitted or empty
    remain unchanged.
    """
    return await service.update(actor, event_id, updates)


@router.delete("/{event_id}")
async def delete_event(
    event_id: str,
    actor: Actor = Depends(get_current_actor),
    service: EventService = Depends(get_event_service),
) -> dict:
    await service.delete(actor, event_id)
    return {"message": "Event deleted successfully"}
