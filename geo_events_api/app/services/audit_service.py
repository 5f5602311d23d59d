"""
Audit service for recording and querying system actions.

Writes audit records to the ``audit_logs`` table and reads them back
with filters and pagination.  Event creation, updates and deletions
as well as user registration are recorded.  Only administrators can
read audit logs.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..core.db import get_connection
from ..core.errors import InvalidFilterError

logger = logging.getLogger(__name__)


class AuditService:
    """Service class for writing and retrieving audit logs."""

    @classmethod
    async def log(
        cls,
        actor_id: Optional[str],
        action: str,
        object_type: str,
        object_id: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Insert a new audit record.

        Parameters
        ----------
        actor_id : Optional[str]
            ID of the user performing the action.  ``None`` for system
            actions.
        action : str
            Short description of the action ("create", "update", "delete").
        object_type : str
            Type of object affected ("event", "user").
        object_id : Optional[str]
            Identifier of the affected object.
        details : Optional[dict]
            Additional structured data, stored as JSON.
        """
        conn = get_connection()
        try:
            details_json = json.dumps(details, default=str) if details else None
            conn.execute(
                """
                INSERT INTO audit_logs (actor_id, action, object_type, object_id, details)
                VALUES (?, ?, ?, ?, ?)
                """,
                (actor_id, action, object_type, object_id, details_json),
            )
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def record(cls, *args, **kwargs) -> None:
        """Like ``log`` but never raises: audit failures must not block the action."""
        try:
            await cls.log(*args, **kwargs)
        except (sqlite3.Error, TypeError, ValueError):
            logger.exception("Failed to write audit log entry")

    @classmethod
    async def list_logs(
        cls,
        actor_id: Optional[str] = None,
        object_type: Optional[str] = None,
        action: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Retrieve audit records, newest first.

        Date filters accept ISO-8601 strings; aware values are converted
        to UTC, the zone SQLite uses for ``CURRENT_TIMESTAMP``.
        Raises ``InvalidFilterError`` for unparseable dates.
        """
        where_clauses: List[str] = []
        params: List[Any] = []
        if actor_id is not None:
            where_clauses.append("actor_id = ?")
            params.append(actor_id)
        if object_type:
            where_clauses.append("object_type = ?")
            params.append(object_type)
        if action:
            where_clauses.append("action = ?")
            params.append(action)
        if start_date:
            where_clauses.append("timestamp >= ?")
            params.append(_to_sqlite_timestamp(start_date, "start_date"))
        if end_date:
            where_clauses.append("timestamp <= ?")
            params.append(_to_sqlite_timestamp(end_date, "end_date"))
        query = "SELECT id, actor_id, action, object_type, object_id, timestamp, details FROM audit_logs"
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        logs = []
        for row in rows:
            details_data = None
            if row["details"]:
                try:
                    details_data = json.loads(row["details"])
                except json.JSONDecodeError:
                    details_data = row["details"]
            logs.append(
                {
                    "id": row["id"],
                    "actor_id": row["actor_id"],
                    "action": row["action"],
                    "object_type": row["object_type"],
                    "object_id": row["object_id"],
                    "timestamp": row["timestamp"],
                    "details": details_data,
                }
            )
        return logs


def _to_sqlite_timestamp(value: str, parameter: str) -> str:
    """Convert an ISO-8601 string to SQLite's ``YYYY-MM-DD HH:MM:SS`` form."""
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise InvalidFilterError(f"{parameter} must be an ISO-8601 date", parameter=parameter) from None
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%d %H:%M:%S")
