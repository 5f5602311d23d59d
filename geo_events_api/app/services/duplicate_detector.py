"""
Pre-flight check for the ``(title, date)`` natural key.

The lookup and the following write do not share a transaction, so two
concurrent creators of the same title and date can both pass this
check.  The unique index on ``events(title, date)`` remains the
authoritative guard; when it fires the store raises ``ConflictError``
just like this check would have.
"""

from datetime import datetime
from typing import Optional

from .event_store import EventStore


class DuplicateDetector:
    def __init__(self, store: EventStore) -> None:
        self._store = store

    def find_duplicate(self, title: str, date: datetime, exclude_id: Optional[str] = None) -> Optional[str]:
        """Return the id of an event already using ``title`` and ``date``.

        An event whose id equals ``exclude_id`` is ignored, which lets an
        event be updated without changing its title or date.
        """
        existing = self._store.find_one(title, date)
        if existing is None or existing.id == exclude_id:
            return None
        return existing.id
