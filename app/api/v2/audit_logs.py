"""
Audit trail read API -- admin-only.

Provides:
- GET /audit-logs -- paginated, filtered list with pre-pagination total
- GET /audit-logs/{audit_log_id} -- one entry with actor and changes
- GET /entity-history/{entity_type}/{entity_id} -- full history of one entity

Unknown enum values and unparseable dates are rejected with 422 by FastAPI's
query validation; they are never coerced into an empty result.
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query

from app.api.deps import DbSession, AdminUser
from app.config import settings
from app.exceptions import NotFoundError, ValidationError
from app.models.audit_log import AuditEntityType, AuditAction
from app.schemas.audit_log import AuditLogResponse, AuditLogListResponse
from app.services.audit_store import (
    AuditLogFilters,
    as_utc,
    get_audit_logs,
    get_audit_log,
    get_entity_audit_history,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    db: DbSession,
    current_user: AdminUser,
    entity_type: Optional[AuditEntityType] = Query(None, alias="entityType"),
    entity_id: Optional[str] = Query(None, alias="entityId", max_length=36),
    actor_id: Optional[str] = Query(None, alias="actorId", max_length=36),
    action: Optional[AuditAction] = None,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    limit: int = Query(settings.AUDIT_LOG_DEFAULT_LIMIT, ge=1, le=settings.AUDIT_LOG_MAX_LIMIT),
    offset: int = Query(0, ge=0),
):
    """List audit logs, most recent first."""
    if start_date and end_date and as_utc(start_date) > as_utc(end_date):
        raise ValidationError(
            "startDate must not be after endDate",
            errors=[{"field": "query.startDate", "message": "after endDate", "type": "value_error"}],
        )

    filters = AuditLogFilters(
        entity_type=entity_type,
        entity_id=entity_id,
        actor_id=actor_id,
        action=action,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    logs, total = await get_audit_logs(db, filters)

    return AuditLogListResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/audit-logs/{audit_log_id}", response_model=AuditLogResponse)
async def read_audit_log(
    audit_log_id: str,
    db: DbSession,
    current_user: AdminUser,
):
    """Get a single audit log entry."""
    audit_log = await get_audit_log(db, audit_log_id)
    if audit_log is None:
        raise NotFoundError("Audit log", audit_log_id)
    return audit_log


@router.get(
    "/entity-history/{entity_type}/{entity_id}",
    response_model=list[AuditLogResponse],
)
async def read_entity_history(
    entity_type: AuditEntityType,
    entity_id: str,
    db: DbSession,
    current_user: AdminUser,
):
    """Everything that happened to one entity. Empty list when nothing did."""
    return await get_entity_audit_history(db, entity_type, entity_id)
