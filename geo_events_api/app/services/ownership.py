"""
Ownership checks for event mutations.

Only the actor who created an event may update or delete it.  Admins
may act on any event while ``admin_bypass`` is enabled (see
``ADMIN_CAN_MANAGE_ALL_EVENTS``).
"""

import logging
from typing import Optional

from ..core.errors import ForbiddenError, NotFoundError
from ..schemas.event import EventRead
from ..schemas.user import Actor

logger = logging.getLogger(__name__)


class OwnershipGuard:
    """Decide whether an actor may mutate an event."""

    def __init__(self, admin_bypass: bool = True) -> None:
        self.admin_bypass = admin_bypass

    def is_allowed(self, actor: Actor, event: EventRead) -> bool:
        if actor.id == event.owner_id:
            return True
        return self.admin_bypass and actor.is_admin

    def authorize(self, actor: Actor, event: Optional[EventRead], action: str = "modify") -> None:
        """Raise unless ``actor`` may ``action`` the event.

        Raises
        ------
        NotFoundError
            If the event could not be resolved.
        ForbiddenError
            If the actor is neither the owner nor a permitted admin.
        """
        if event is None:
            raise NotFoundError("Event", "")
        if not self.is_allowed(actor, event):
            logger.warning("Actor %s may not %s event %s", actor.id, action, event.id)
            raise ForbiddenError(f"Not authorized to {action} this event")
