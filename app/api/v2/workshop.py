"""
Workshop API - the per-reservation task checklist worked by shop staff.
"""
from fastapi import APIRouter, Request
from sqlalchemy import select
from datetime import datetime, timezone

from app.api.deps import DbSession, StaffUser
from app.exceptions import NotFoundError
from app.models.audit_log import AuditEntityType, AuditAction
from app.models.reservation import Reservation, WorkshopTask
from app.models.service import WorkflowStep
from app.schemas.reservation import WorkshopTaskUpdate, WorkshopTaskResponse
from app.services.audit_diff import snapshot
from app.services.audit_logger import record_audit_event, render_summary

router = APIRouter()


@router.get("/reservations/{reservation_id}/tasks", response_model=list[WorkshopTaskResponse])
async def list_reservation_tasks(
    reservation_id: str,
    db: DbSession,
    current_user: StaffUser,
):
    """Tasks of one reservation, in workflow step order."""
    result = await db.execute(select(Reservation.id).where(Reservation.id == reservation_id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Reservation", reservation_id)

    result = await db.execute(
        select(WorkshopTask)
        .join(WorkflowStep, WorkflowStep.id == WorkshopTask.workflow_step_id)
        .where(WorkshopTask.reservation_id == reservation_id)
        .order_by(WorkflowStep.step_number)
    )
    return result.scalars().all()


@router.patch("/tasks/{task_id}", response_model=WorkshopTaskResponse)
async def update_workshop_task(
    task_id: str,
    task_data: WorkshopTaskUpdate,
    request: Request,
    db: DbSession,
    current_user: StaffUser,
):
    """Tick off (or reopen) a task and leave a comment."""
    result = await db.execute(select(WorkshopTask).where(WorkshopTask.id == task_id))
    task = result.scalar_one_or_none()
    if not task:
        raise NotFoundError("Workshop task", task_id)

    previous = snapshot(task)
    was_completed = task.is_completed
    update_data = task_data.model_dump(exclude_unset=True)

    if "comment" in update_data:
        task.comment = update_data["comment"]
    if "is_completed" in update_data and update_data["is_completed"] is not None:
        task.is_completed = update_data["is_completed"]
        if task.is_completed and not was_completed:
            task.completed_at = datetime.now(timezone.utc)
            task.completed_by_user_id = current_user.id
        elif not task.is_completed:
            task.completed_at = None
            task.completed_by_user_id = None

    await db.commit()
    await db.refresh(task)
    response = WorkshopTaskResponse.model_validate(task)

    action = AuditAction.COMPLETED if task.is_completed and not was_completed else AuditAction.UPDATED
    await record_audit_event(
        db,
        entity_type=AuditEntityType.WORKSHOP_TASK,
        entity_id=task.id,
        action=action,
        summary=render_summary(AuditEntityType.WORKSHOP_TASK, action),
        actor=current_user,
        request=request,
        previous=previous,
        new=snapshot(task),
        metadata={"reservation_id": task.reservation_id},
    )
    return response
