"""
Audit log endpoints for API v1.

Logs capture event and user changes and support filtering by actor,
object type, action and date range.  Only admins may read them.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from geo_events_api.app.core.security import require_roles
from geo_events_api.app.schemas.user import Actor
from geo_events_api.app.services.audit_service import AuditService

router = APIRouter()


@router.get("/logs")
async def list_audit_logs(
    actor_id: Optional[str] = Query(None, description="Filter by acting user ID"),
    object_type: Optional[str] = Query(None, description="Filter by object type (event, user)"),
    action: Optional[str] = Query(None, description="Filter by action (create, update, delete)"),
    start_date: Optional[str] = Query(None, description="Start date (ISO format) for filtering"),
    end_date: Optional[str] = Query(None, description="End date (ISO format) for filtering"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    actor: Actor = Depends(require_roles("admin")),
) -> List[dict]:
    """Retrieve audit logs, newest first."""
    return await AuditService.list_logs(
        actor_id=actor_id,
        object_type=object_type,
        action=action,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
