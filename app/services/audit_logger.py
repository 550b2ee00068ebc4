"""
Audit Logger - records one immutable AuditLog (+ its field changes) per
business mutation.

Calling contract for mutating endpoints:
1. load the entity and take ``snapshot(entity)`` before touching it
2. apply the mutation and ``commit()`` it
3. call ``record_audit_event`` with the before/after snapshots

``record_audit_event`` is an error boundary: a failed audit write is logged
and reported to Sentry but never propagates, because losing an audit entry
is acceptable while failing the already-committed business change is not.
"""
import logging
from typing import Any, Mapping, Optional

from fastapi import Request
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.sentry import capture_exception
from app.models.audit_log import AuditLog, AuditLogChange, AuditEntityType, AuditAction
from app.models.user import User
from app.services.audit_diff import compute_changes, normalize_value

logger = logging.getLogger(__name__)


ENTITY_LABELS: dict[AuditEntityType, str] = {
    AuditEntityType.QUOTE: "Devis",
    AuditEntityType.INVOICE: "Facture",
    AuditEntityType.RESERVATION: "Réservation",
    AuditEntityType.SERVICE: "Service",
    AuditEntityType.WORKFLOW: "Workflow",
    AuditEntityType.WORKFLOW_STEP: "Étape de workflow",
    AuditEntityType.USER: "Utilisateur",
    AuditEntityType.WORKSHOP_TASK: "Tâche atelier",
}

ACTION_LABELS: dict[AuditAction, str] = {
    AuditAction.CREATED: "créé",
    AuditAction.UPDATED: "modifié",
    AuditAction.DELETED: "supprimé",
    AuditAction.VALIDATED: "validé",
    AuditAction.REJECTED: "refusé",
    AuditAction.COMPLETED: "terminé",
    AuditAction.CANCELLED: "annulé",
    AuditAction.PAID: "payé",
    AuditAction.CONFIRMED: "confirmé",
}

# Labels whose noun is feminine take the "-e" participle
FEMININE_ENTITIES = frozenset({
    AuditEntityType.INVOICE,
    AuditEntityType.RESERVATION,
    AuditEntityType.WORKFLOW_STEP,
    AuditEntityType.WORKSHOP_TASK,
})

# status value -> action, per entity; any other transition is "updated"
STATUS_TRANSITION_ACTIONS: dict[AuditEntityType, dict[str, AuditAction]] = {
    AuditEntityType.QUOTE: {
        "approved": AuditAction.VALIDATED,
        "rejected": AuditAction.REJECTED,
        "completed": AuditAction.COMPLETED,
        "cancelled": AuditAction.CANCELLED,
    },
    AuditEntityType.INVOICE: {
        "paid": AuditAction.PAID,
        "cancelled": AuditAction.CANCELLED,
    },
    AuditEntityType.RESERVATION: {
        "confirmed": AuditAction.CONFIRMED,
        "cancelled": AuditAction.CANCELLED,
        "completed": AuditAction.COMPLETED,
    },
}


def _enum_value(value) -> str:
    return str(getattr(value, "value", value))


def status_transition_action(
    entity_type: AuditEntityType,
    previous_status: Optional[str],
    new_status: Optional[str],
) -> AuditAction:
    """Name the action for a status change; unchanged or unnamed ones are "updated"."""
    if new_status is None or new_status == previous_status:
        return AuditAction.UPDATED
    return STATUS_TRANSITION_ACTIONS.get(entity_type, {}).get(new_status, AuditAction.UPDATED)


def render_summary(
    entity_type: AuditEntityType,
    action: AuditAction,
    subject: Optional[str] = None,
    suffix: Optional[str] = None,
) -> str:
    """Render the one-line French summary, e.g. ``Facture payée``.

    ``subject`` is quoted after the entity label (a service name), ``suffix``
    is appended verbatim (``par le client``).
    """
    verb = ACTION_LABELS[action]
    if entity_type in FEMININE_ENTITIES:
        verb += "e"
    parts = [ENTITY_LABELS[entity_type]]
    if subject:
        parts.append(f'"{subject}"')
    parts.append(verb)
    if suffix:
        parts.append(suffix)
    return " ".join(parts)


def resolve_actor_name(user: Optional[User]) -> Optional[str]:
    """Display name frozen into the log: "First Last", else the email."""
    if user is None:
        return None
    full_name = f"{user.first_name or ''} {user.last_name or ''}".strip()
    return full_name or user.email


def get_client_ip(request: Optional[Request]) -> Optional[str]:
    """Extract real client IP from request, respecting proxy headers."""
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()[:45]
    return request.client.host if request.client else None


def build_audit_log(
    *,
    entity_type: AuditEntityType | str,
    entity_id: str,
    action: AuditAction | str,
    summary: str,
    actor: Optional[User] = None,
    previous: Optional[Mapping[str, Any]] = None,
    new: Optional[Mapping[str, Any]] = None,
    metadata: Optional[Mapping[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLog:
    """Assemble an AuditLog and its change rows without touching the database.

    Raises ValueError for an entity type or action outside the enumerations.
    """
    entity_type = AuditEntityType(entity_type)
    action = AuditAction(action)

    previous = normalize_value(previous) if previous is not None else None
    new = normalize_value(new) if new is not None else None

    audit_log = AuditLog(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        summary=summary,
        metadata_=normalize_value(metadata) if metadata is not None else None,
        actor_id=actor.id if actor is not None else None,
        actor_role=actor.role if actor is not None else None,
        actor_name=resolve_actor_name(actor),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    audit_log.changes = [
        AuditLogChange(
            field=change["field"],
            previous_value=change["previous_value"],
            new_value=change["new_value"],
        )
        for change in compute_changes(previous, new)
    ]
    return audit_log


async def record_audit_event(
    db: AsyncSession,
    *,
    entity_type: AuditEntityType | str,
    entity_id: str,
    action: AuditAction | str,
    summary: str,
    actor: Optional[User] = None,
    request: Optional[Request] = None,
    previous: Optional[Mapping[str, Any]] = None,
    new: Optional[Mapping[str, Any]] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> Optional[AuditLog]:
    """Persist an audit entry and its changes in one transaction.

    Must be called after the business mutation has been committed. Returns
    the stored AuditLog, or None when recording failed (already logged).
    """
    try:
        user_agent = request.headers.get("user-agent") if request is not None else None
        audit_log = build_audit_log(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            summary=summary,
            actor=actor,
            previous=previous,
            new=new,
            metadata=metadata,
            ip_address=get_client_ip(request),
            user_agent=user_agent,
        )
        db.add(audit_log)
        await db.commit()
    except Exception as exc:
        context = {
            "entity_type": _enum_value(entity_type),
            "entity_id": str(entity_id),
            "action": _enum_value(action),
        }
        logger.exception("Failed to record audit event", extra=context)
        capture_exception(exc, context=context)
        try:
            await db.rollback()
            # rollback expires the actor; reload it for the caller's next audit call
            actor_state = sa_inspect(actor, raiseerr=False) if actor is not None else None
            if actor_state is not None and actor_state.persistent:
                await db.refresh(actor)
        except Exception:
            logger.warning("Session recovery after audit failure also failed", extra=context)
        return None

    logger.debug(
        "Audit event recorded",
        extra={"audit_log_id": audit_log.id, "change_count": len(audit_log.changes)},
    )
    return audit_log
