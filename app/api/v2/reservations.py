"""
Reservations API - workshop bookings.

Confirming a reservation seeds its workshop checklist: one WorkshopTask per
step of the booked service's workflow.
"""
import logging

from fastapi import APIRouter, Request, status, Query
from sqlalchemy import select
from typing import Optional

from app.api.deps import DbSession, CurrentUser, AdminUser
from app.exceptions import NotFoundError, ForbiddenError
from app.models.audit_log import AuditEntityType, AuditAction
from app.models.reservation import Reservation, WorkshopTask
from app.models.service import Service, Workflow, WorkflowStep
from app.models.user import User
from app.schemas.reservation import (
    ReservationCreate,
    ReservationUpdate,
    ReservationResponse,
)
from app.security.rbac import Role, get_user_role
from app.services.audit_diff import snapshot
from app.services.audit_logger import (
    record_audit_event,
    render_summary,
    status_transition_action,
)

router = APIRouter()
logger = logging.getLogger(__name__)


async def _get_reservation_or_404(db, reservation_id: str) -> Reservation:
    result = await db.execute(select(Reservation).where(Reservation.id == reservation_id))
    reservation = result.scalar_one_or_none()
    if not reservation:
        raise NotFoundError("Reservation", reservation_id)
    return reservation


async def initialize_workshop_tasks(db, reservation: Reservation) -> int:
    """Create the missing workshop tasks for a reservation. Returns how many were added."""
    result = await db.execute(
        select(WorkflowStep)
        .join(Workflow, Workflow.id == WorkflowStep.workflow_id)
        .where(Workflow.service_id == reservation.service_id)
        .order_by(WorkflowStep.step_number)
    )
    steps = result.scalars().all()
    if not steps:
        logger.info(
            "No workflow steps for reserved service, no workshop tasks created",
            extra={"reservation_id": reservation.id, "service_id": reservation.service_id},
        )
        return 0

    existing = await db.execute(
        select(WorkshopTask.workflow_step_id).where(WorkshopTask.reservation_id == reservation.id)
    )
    seeded = set(existing.scalars().all())

    added = 0
    for step in steps:
        if step.id in seeded:
            continue
        db.add(WorkshopTask(reservation_id=reservation.id, workflow_step_id=step.id))
        added += 1
    return added


@router.get("", response_model=list[ReservationResponse])
async def list_reservations(
    db: DbSession,
    current_user: CurrentUser,
    status: Optional[str] = Query(None),
):
    """List reservations. Clients only see their own."""
    query = select(Reservation).order_by(Reservation.scheduled_date)
    if get_user_role(current_user) in (Role.CLIENT, Role.CLIENT_PROFESSIONNEL):
        query = query.where(Reservation.client_id == current_user.id)
    if status:
        query = query.where(Reservation.status == status)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(reservation_id: str, db: DbSession, current_user: CurrentUser):
    """Get a single reservation by ID."""
    reservation = await _get_reservation_or_404(db, reservation_id)
    if (
        get_user_role(current_user) in (Role.CLIENT, Role.CLIENT_PROFESSIONNEL)
        and reservation.client_id != current_user.id
    ):
        raise ForbiddenError("Not your reservation")
    return reservation


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    reservation_data: ReservationCreate,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Book a workshop slot for a client."""
    for model, object_id, resource in (
        (User, reservation_data.client_id, "User"),
        (Service, reservation_data.service_id, "Service"),
    ):
        result = await db.execute(select(model.id).where(model.id == object_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError(resource, object_id)

    reservation = Reservation(**reservation_data.model_dump(), status="pending")
    db.add(reservation)
    await db.commit()
    await db.refresh(reservation)
    response = ReservationResponse.model_validate(reservation)

    await record_audit_event(
        db,
        entity_type=AuditEntityType.RESERVATION,
        entity_id=reservation.id,
        action=AuditAction.CREATED,
        summary=render_summary(AuditEntityType.RESERVATION, AuditAction.CREATED),
        actor=current_user,
        request=request,
        new=snapshot(reservation),
    )
    return response


@router.patch("/{reservation_id}", response_model=ReservationResponse)
async def update_reservation(
    reservation_id: str,
    reservation_data: ReservationUpdate,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Reschedule, assign, or move a reservation through its statuses."""
    reservation = await _get_reservation_or_404(db, reservation_id)
    previous = snapshot(reservation)
    previous_status = reservation.status

    for field, value in reservation_data.model_dump(exclude_unset=True).items():
        setattr(reservation, field, value)

    metadata = None
    if reservation.status == "confirmed" and previous_status != "confirmed":
        added = await initialize_workshop_tasks(db, reservation)
        metadata = {"workshop_tasks_created": added}

    await db.commit()
    await db.refresh(reservation)
    response = ReservationResponse.model_validate(reservation)

    action = status_transition_action(AuditEntityType.RESERVATION, previous_status, reservation.status)
    await record_audit_event(
        db,
        entity_type=AuditEntityType.RESERVATION,
        entity_id=reservation.id,
        action=action,
        summary=render_summary(AuditEntityType.RESERVATION, action),
        actor=current_user,
        request=request,
        previous=previous,
        new=snapshot(reservation),
        metadata=metadata,
    )
    return response


@router.delete("/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reservation(
    reservation_id: str,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Delete a reservation together with its workshop tasks."""
    reservation = await _get_reservation_or_404(db, reservation_id)
    previous = snapshot(reservation)

    result = await db.execute(
        select(WorkshopTask).where(WorkshopTask.reservation_id == reservation_id)
    )
    task_states = []
    for task in result.scalars().all():
        task_states.append(snapshot(task))
        await db.delete(task)
    await db.delete(reservation)
    await db.commit()

    await record_audit_event(
        db,
        entity_type=AuditEntityType.RESERVATION,
        entity_id=reservation_id,
        action=AuditAction.DELETED,
        summary=render_summary(AuditEntityType.RESERVATION, AuditAction.DELETED),
        actor=current_user,
        request=request,
        previous=previous,
        metadata={"workshop_tasks_deleted": len(task_states)} if task_states else None,
    )
    for task_state in task_states:
        await record_audit_event(
            db,
            entity_type=AuditEntityType.WORKSHOP_TASK,
            entity_id=task_state["id"],
            action=AuditAction.DELETED,
            summary=render_summary(
                AuditEntityType.WORKSHOP_TASK, AuditAction.DELETED, suffix="avec la réservation"
            ),
            actor=current_user,
            request=request,
            previous=task_state,
            metadata={"reservation_id": reservation_id},
        )
