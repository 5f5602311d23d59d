"""
SQLite-backed event store.

The store is the only component that talks SQL for events.  It is
constructed with a connection factory so services never reach for a
global connection, and it converts rows to ``EventRead`` models.

Database failures are translated here: a violation of the unique
``(title, date)`` index becomes ``ConflictError``; every other
``sqlite3`` error becomes ``StorageError``.
"""

import logging
import sqlite3
from datetime import datetime
from typing import Callable, Iterator, Optional

from ..core.db import get_connection
from ..core.errors import ConflictError, StorageError
from ..schemas.event import EventFilter, EventRead, GeoPoint, to_utc

logger = logging.getLogger(__name__)

EVENT_COLUMNS = (
    "id, title, description, category, date, longitude, latitude, "
    "owner_id, created_at, updated_at"
)


def format_date(value: datetime) -> str:
    """Canonical storage form of an event date (UTC, ISO-8601)."""
    return to_utc(value).isoformat()


def row_to_event(row: sqlite3.Row) -> EventRead:
    return EventRead(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        category=row["category"],
        date=datetime.fromisoformat(row["date"]),
        location=GeoPoint(longitude=row["longitude"], latitude=row["latitude"]),
        owner_id=row["owner_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _translate_integrity_error(exc: sqlite3.IntegrityError, event: EventRead) -> Exception:
    if "UNIQUE" in str(exc) and "events.title" in str(exc):
        logger.warning(
            "Storage rejected duplicate event '%s' on %s", event.title, format_date(event.date)
        )
        return ConflictError()
    return StorageError(f"Could not store event: {exc}")


class EventStore:
    """Persistence operations for events."""

    def __init__(self, connection_factory: Callable[[], sqlite3.Connection] = get_connection) -> None:
        self._connect = connection_factory

    def find_by_id(self, event_id: str) -> Optional[EventRead]:
        """Return the event with ``event_id`` or ``None``."""
        conn = self._connect()
        try:
            row = conn.execute(
                f"SELECT {EVENT_COLUMNS} FROM events WHERE id = ?", (event_id,)
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Could not load event: {exc}") from exc
        finally:
            conn.close()
        return row_to_event(row) if row else None

    def find_one(self, title: str, date: datetime) -> Optional[EventRead]:
        """Return an event with exactly this title and date, if any."""
        conn = self._connect()
        try:
            row = conn.execute(
                f"SELECT {EVENT_COLUMNS} FROM events WHERE title = ? AND date = ? LIMIT 1",
                (title, format_date(date)),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Could not look up event: {exc}") from exc
        finally:
            conn.close()
        return row_to_event(row) if row else None

    def insert(self, event: EventRead) -> EventRead:
        """Insert a new event and return it as stored."""
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO events (id, title, description, category, date, longitude, latitude, owner_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.id,
                    event.title,
                    event.description,
                    event.category,
                    format_date(event.date),
                    event.location.longitude,
                    event.location.latitude,
                    event.owner_id,
                ),
            )
            conn.commit()
            row = conn.execute(
                f"SELECT {EVENT_COLUMNS} FROM events WHERE id = ?", (event.id,)
            ).fetchone()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise _translate_integrity_error(exc, event) from exc
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(f"Could not store event: {exc}") from exc
        finally:
            conn.close()
        return row_to_event(row)

    def save(self, event: EventRead) -> EventRead:
        """Write all mutable fields of an existing event."""
        conn = self._connect()
        try:
            cursor = conn.execute(
                """
                UPDATE events
                SET title = ?, description = ?, category = ?, date = ?,
                    longitude = ?, latitude = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (
                    event.title,
                    event.description,
                    event.category,
                    format_date(event.date),
                    event.location.longitude,
                    event.location.latitude,
                    event.id,
                ),
            )
            conn.commit()
            if cursor.rowcount == 0:
                raise StorageError(f"Event {event.id} disappeared during update")
            row = conn.execute(
                f"SELECT {EVENT_COLUMNS} FROM events WHERE id = ?", (event.id,)
            ).fetchone()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise _translate_integrity_error(exc, event) from exc
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(f"Could not update event: {exc}") from exc
        finally:
            conn.close()
        return row_to_event(row)

    def delete(self, event_id: str) -> bool:
        """Delete an event.  Returns ``False`` if nothing was deleted."""
        conn = self._connect()
        try:
            cursor = conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StorageError(f"Could not delete event: {exc}") from exc
        finally:
            conn.close()
        return cursor.rowcount > 0

    def query(self, event_filter: EventFilter, radius_meters: float) -> Iterator[EventRead]:
        """Yield events matching ``event_filter``.

        With a ``near`` point, only events within ``radius_meters`` are
        returned, nearest first; otherwise events are ordered by date.
        The connection stays open while the generator is consumed.
        """
        where_clauses: list[str] = []
        params: list = []
        order_params: list = []
        order_by = "date ASC, id ASC"
        select = f"SELECT {EVENT_COLUMNS} FROM events"
        if event_filter.category is not None:
            where_clauses.append("category = ?")
            params.append(event_filter.category)
        if event_filter.near is not None:
            lon, lat = event_filter.near.as_tuple()
            where_clauses.append("haversine_m(longitude, latitude, ?, ?) <= ?")
            params.extend([lon, lat, radius_meters])
            order_by = "haversine_m(longitude, latitude, ?, ?) ASC, id ASC"
            order_params = [lon, lat]
        if where_clauses:
            select += " WHERE " + " AND ".join(where_clauses)
        select += f" ORDER BY {order_by}"
        params.extend(order_params)
        if event_filter.limit is not None:
            select += " LIMIT ? OFFSET ?"
            params.extend([event_filter.limit, event_filter.offset])
        elif event_filter.offset:
            # SQLite only accepts OFFSET after a LIMIT; -1 means no limit.
            select += " LIMIT -1 OFFSET ?"
            params.append(event_filter.offset)

        conn = self._connect()
        try:
            try:
                cursor = conn.execute(select, tuple(params))
            except sqlite3.Error as exc:
                raise StorageError(f"Could not search events: {exc}") from exc
            for row in cursor:
                yield row_to_event(row)
        finally:
            conn.close()
