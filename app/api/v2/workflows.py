"""
Workflows API - the ordered steps a service goes through in the workshop.
"""
from fastapi import APIRouter, Request, status
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.api.deps import DbSession, CurrentUser, AdminUser
from app.exceptions import NotFoundError
from app.models.audit_log import AuditEntityType, AuditAction
from app.models.service import Workflow, WorkflowStep
from app.schemas.service import (
    WorkflowUpdate,
    WorkflowResponse,
    WorkflowStepCreate,
    WorkflowStepUpdate,
    WorkflowStepResponse,
)
from app.services.audit_diff import snapshot
from app.services.audit_logger import record_audit_event, render_summary

router = APIRouter()


async def _get_workflow_or_404(db, workflow_id: str) -> Workflow:
    result = await db.execute(
        select(Workflow)
        .where(Workflow.id == workflow_id)
        .options(selectinload(Workflow.steps))
        .execution_options(populate_existing=True)
    )
    workflow = result.scalar_one_or_none()
    if not workflow:
        raise NotFoundError("Workflow", workflow_id)
    return workflow


async def _get_step_or_404(db, step_id: str) -> WorkflowStep:
    result = await db.execute(select(WorkflowStep).where(WorkflowStep.id == step_id))
    step = result.scalar_one_or_none()
    if not step:
        raise NotFoundError("Workflow step", step_id)
    return step


async def record_step_deletion(db, step_state: dict, actor, request: Request) -> None:
    """Record a step removed together with its workflow."""
    await record_audit_event(
        db,
        entity_type=AuditEntityType.WORKFLOW_STEP,
        entity_id=step_state["id"],
        action=AuditAction.DELETED,
        summary=render_summary(
            AuditEntityType.WORKFLOW_STEP, AuditAction.DELETED,
            subject=step_state["title"], suffix="avec le workflow",
        ),
        actor=actor,
        request=request,
        previous=step_state,
        metadata={"workflow_id": step_state["workflow_id"]},
    )


@router.get("/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(workflow_id: str, db: DbSession, current_user: CurrentUser):
    """Get a workflow with its steps."""
    return await _get_workflow_or_404(db, workflow_id)


@router.patch("/{workflow_id}", response_model=WorkflowResponse)
async def update_workflow(
    workflow_id: str,
    workflow_data: WorkflowUpdate,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Rename or redescribe a workflow."""
    workflow = await _get_workflow_or_404(db, workflow_id)
    previous = snapshot(workflow)

    for field, value in workflow_data.model_dump(exclude_unset=True).items():
        setattr(workflow, field, value)

    await db.commit()
    workflow = await _get_workflow_or_404(db, workflow_id)
    response = WorkflowResponse.model_validate(workflow)

    await record_audit_event(
        db,
        entity_type=AuditEntityType.WORKFLOW,
        entity_id=workflow_id,
        action=AuditAction.UPDATED,
        summary=render_summary(AuditEntityType.WORKFLOW, AuditAction.UPDATED, subject=workflow.name),
        actor=current_user,
        request=request,
        previous=previous,
        new=snapshot(workflow),
    )
    return response


@router.delete("/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workflow(
    workflow_id: str,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Delete a workflow and all of its steps."""
    workflow = await _get_workflow_or_404(db, workflow_id)
    previous = snapshot(workflow)
    step_states = [snapshot(step) for step in workflow.steps]
    step_count = len(step_states)

    await db.delete(workflow)
    await db.commit()

    await record_audit_event(
        db,
        entity_type=AuditEntityType.WORKFLOW,
        entity_id=workflow_id,
        action=AuditAction.DELETED,
        summary=render_summary(AuditEntityType.WORKFLOW, AuditAction.DELETED, subject=previous["name"]),
        actor=current_user,
        request=request,
        previous=previous,
        metadata={"step_count": step_count},
    )
    for step_state in step_states:
        await record_step_deletion(db, step_state, actor=current_user, request=request)


@router.post(
    "/{workflow_id}/steps",
    response_model=WorkflowStepResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_workflow_step(
    workflow_id: str,
    step_data: WorkflowStepCreate,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Append a step to a workflow."""
    await _get_workflow_or_404(db, workflow_id)

    step = WorkflowStep(workflow_id=workflow_id, **step_data.model_dump())
    db.add(step)
    await db.commit()
    await db.refresh(step)
    response = WorkflowStepResponse.model_validate(step)

    await record_audit_event(
        db,
        entity_type=AuditEntityType.WORKFLOW_STEP,
        entity_id=step.id,
        action=AuditAction.CREATED,
        summary=render_summary(AuditEntityType.WORKFLOW_STEP, AuditAction.CREATED, subject=step.title),
        actor=current_user,
        request=request,
        new=snapshot(step),
        metadata={"workflow_id": workflow_id},
    )
    return response


@router.patch("/steps/{step_id}", response_model=WorkflowStepResponse)
async def update_workflow_step(
    step_id: str,
    step_data: WorkflowStepUpdate,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Edit or renumber a step."""
    step = await _get_step_or_404(db, step_id)
    previous = snapshot(step)

    for field, value in step_data.model_dump(exclude_unset=True).items():
        setattr(step, field, value)

    await db.commit()
    await db.refresh(step)
    response = WorkflowStepResponse.model_validate(step)

    await record_audit_event(
        db,
        entity_type=AuditEntityType.WORKFLOW_STEP,
        entity_id=step.id,
        action=AuditAction.UPDATED,
        summary=render_summary(AuditEntityType.WORKFLOW_STEP, AuditAction.UPDATED, subject=step.title),
        actor=current_user,
        request=request,
        previous=previous,
        new=snapshot(step),
    )
    return response


@router.delete("/steps/{step_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workflow_step(
    step_id: str,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Remove a step from its workflow."""
    step = await _get_step_or_404(db, step_id)
    previous = snapshot(step)

    await db.delete(step)
    await db.commit()

    await record_audit_event(
        db,
        entity_type=AuditEntityType.WORKFLOW_STEP,
        entity_id=step_id,
        action=AuditAction.DELETED,
        summary=render_summary(AuditEntityType.WORKFLOW_STEP, AuditAction.DELETED, subject=previous["title"]),
        actor=current_user,
        request=request,
        previous=previous,
    )
