"""
Business logic for events.

``EventService`` orchestrates the event lifecycle: it validates
payloads, consults ``DuplicateDetector`` and ``OwnershipGuard``,
persists through ``EventStore`` and fires best-effort notifications
and audit records.  Searching is delegated to ``EventQueryEngine``.

Every failure is raised as a ``ServiceError`` subclass.  Notification
and audit failures are logged and never change the outcome.
"""

import logging
import uuid
from typing import List, Mapping, Optional, Union

from ..core.config import settings
from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..schemas.event import EventCreate, EventFilter, EventRead, EventUpdate
from ..schemas.user import Actor
from .audit_service import AuditService
from .duplicate_detector import DuplicateDetector
from .event_query import EventQuery, EventQueryEngine
from .event_store import EventStore, format_date
from .notification_service import NotificationDispatcher, get_dispatcher
from .ownership import OwnershipGuard

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "description", "date", "location", "category")
PATCHABLE_FIELDS = ("title", "description", "category", "date", "location")


class EventService:
    """Create, update, delete and search events."""

    def __init__(
        self,
        store: EventStore,
        detector: Optional[DuplicateDetector] = None,
        guard: Optional[OwnershipGuard] = None,
        query_engine: Optional[EventQueryEngine] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
    ) -> None:
        self.store = store
        self.detector = detector or DuplicateDetector(store)
        self.guard = guard or OwnershipGuard(admin_bypass=settings.admin_can_manage_all_events)
        self.query_engine = query_engine or EventQueryEngine(store)
        self.dispatcher = dispatcher

    async def create(self, actor: Actor, payload: EventCreate) -> EventRead:
        """Create an event owned by ``actor``.

        Raises ``ValidationError`` when fields are missing and
        ``ConflictError`` when the title and date are already taken.
        """
        _validate_create(payload)
        title = payload.title.strip()
        duplicate_id = self.detector.find_duplicate(title, payload.date)
        if duplicate_id:
            logger.warning("Actor %s tried to create duplicate event '%s'", actor.id, title)
            raise ConflictError(existing_id=duplicate_id)

        event = self.store.insert(
            EventRead(
                id=uuid.uuid4().hex,
                title=title,
                description=payload.description,
                category=payload.category,
                date=payload.date,
                location=payload.location,
                owner_id=actor.id,
            )
        )
        logger.info("Actor %s created event %s '%s'", actor.id, event.id, event.title)
        await self._after_change("create", "created", actor, event, {"title": event.title})
        return event

    async def get(self, event_id: str) -> EventRead:
        event = self.store.find_by_id(event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        return event

    async def update(self, actor: Actor, event_id: str, patch: EventUpdate) -> EventRead:
        """Apply ``patch`` to an event owned by ``actor``.

        Only truthy fields of ``patch`` are applied; an empty string or
        other falsy value leaves the stored value as it is.
        """
        event = await self.get(event_id)
        self.guard.authorize(actor, event, "update")

        changes = {
            field: getattr(patch, field)
            for field in PATCHABLE_FIELDS
            if getattr(patch, field)
        }
        if "title" in changes:
            changes["title"] = changes["title"].strip()
            if not changes["title"]:
                del changes["title"]
        updated = event.model_copy(update=changes)

        key_changed = updated.title != event.title or format_date(updated.date) != format_date(event.date)
        if key_changed:
            duplicate_id = self.detector.find_duplicate(updated.title, updated.date, exclude_id=event_id)
            if duplicate_id:
                logger.warning("Update of event %s would duplicate event %s", event_id, duplicate_id)
                raise ConflictError(existing_id=duplicate_id)

        if not changes:
            return event
        saved = self.store.save(updated)
        logger.info("Actor %s updated event %s (%s)", actor.id, event_id, ", ".join(sorted(changes)))
        await self._after_change("update", "updated", actor, saved, {"fields": sorted(changes)})
        return saved

    async def delete(self, actor: Actor, event_id: str) -> None:
        """Delete an event owned by ``actor``.

        A second delete of the same id raises ``NotFoundError``.
        """
        event = await self.get(event_id)
        self.guard.authorize(actor, event, "delete")
        if not self.store.delete(event_id):
            # Removed concurrently between the lookup and the delete.
            raise NotFoundError("Event", event_id)
        logger.info("Actor %s deleted event %s", actor.id, event_id)
        await self._after_change("delete", "deleted", actor, event, {"title": event.title})

    def search(self, event_filter: Union[EventFilter, Mapping, None] = None) -> EventQuery:
        return self.query_engine.search(event_filter)

    async def list_events(self, event_filter: Union[EventFilter, Mapping, None] = None) -> List[EventRead]:
        return self.search(event_filter).all()

    async def _after_change(self, audit_action: str, notice: str, actor: Actor, event: EventRead, details: dict) -> None:
        await AuditService.record(
            actor_id=actor.id,
            action=audit_action,
            object_type="event",
            object_id=event.id,
            details=details,
        )
        if self.dispatcher is not None:
            self.dispatcher.dispatch(notice, actor.email, event)


def _validate_create(payload: EventCreate) -> None:
    errors = []
    for field in REQUIRED_FIELDS:
        value = getattr(payload, field)
        if value is None:
            errors.append({"field": field, "message": f"{field} is required"})
        elif field == "title" and not value.strip():
            errors.append({"field": field, "message": "title must not be empty"})
    if errors:
        raise ValidationError(errors)


def get_event_service() -> EventService:
    """FastAPI dependency: an ``EventService`` wired to the configured database."""
    return EventService(EventStore(), dispatcher=get_dispatcher())
