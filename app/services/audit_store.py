"""
Audit Store - read side of the audit trail.

Every query hits the database directly (no caching) and returns logs
most-recent-first, each with its live ``actor`` and its ``changes`` loaded.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.audit_log import AuditLog, AuditEntityType, AuditAction

logger = logging.getLogger(__name__)


@dataclass
class AuditLogFilters:
    """Independent, AND-combined filters for ``get_audit_logs``."""

    entity_type: Optional[AuditEntityType] = None
    entity_id: Optional[str] = None
    actor_id: Optional[str] = None
    action: Optional[AuditAction] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: Optional[int] = None
    offset: Optional[int] = None


def as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to already be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _enriched():
    return select(AuditLog).options(
        selectinload(AuditLog.actor),
        selectinload(AuditLog.changes),
    )


def _conditions(filters: AuditLogFilters) -> list:
    conditions = []
    if filters.entity_type is not None:
        conditions.append(AuditLog.entity_type == AuditEntityType(filters.entity_type))
    if filters.entity_id:
        conditions.append(AuditLog.entity_id == filters.entity_id)
    if filters.actor_id:
        conditions.append(AuditLog.actor_id == filters.actor_id)
    if filters.action is not None:
        conditions.append(AuditLog.action == AuditAction(filters.action))
    if filters.start_date is not None:
        conditions.append(AuditLog.occurred_at >= as_utc(filters.start_date))
    if filters.end_date is not None:
        conditions.append(AuditLog.occurred_at <= as_utc(filters.end_date))
    return conditions


async def get_audit_logs(
    db: AsyncSession,
    filters: Optional[AuditLogFilters] = None,
) -> tuple[list[AuditLog], int]:
    """List audit logs matching ``filters``.

    Returns:
        Tuple of (logs for the requested page, total matching before pagination)
    """
    filters = filters or AuditLogFilters()
    conditions = _conditions(filters)

    count_query = select(func.count()).select_from(AuditLog).where(*conditions)
    total = (await db.execute(count_query)).scalar() or 0

    query = _enriched().where(*conditions).order_by(AuditLog.occurred_at.desc(), AuditLog.id.desc())
    if filters.offset:
        query = query.offset(filters.offset)
    if filters.limit is not None:
        query = query.limit(filters.limit)

    result = await db.execute(query)
    return list(result.scalars().all()), total


async def get_audit_log(db: AsyncSession, audit_log_id: str) -> Optional[AuditLog]:
    """Get a single audit log, or None if it does not exist."""
    result = await db.execute(_enriched().where(AuditLog.id == audit_log_id))
    return result.scalar_one_or_none()


async def get_entity_audit_history(
    db: AsyncSession,
    entity_type: AuditEntityType | str,
    entity_id: str,
) -> list[AuditLog]:
    """Complete history of one entity, never truncated. Empty if none."""
    result = await db.execute(
        _enriched()
        .where(
            AuditLog.entity_type == AuditEntityType(entity_type),
            AuditLog.entity_id == entity_id,
        )
        .order_by(AuditLog.occurred_at.desc(), AuditLog.id.desc())
    )
    return list(result.scalars().all())
