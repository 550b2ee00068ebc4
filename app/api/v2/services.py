"""
Services API - the repair catalogue.

Creating a service also creates its (empty) workshop workflow; both
creations are recorded in the audit trail.
"""
from fastapi import APIRouter, Request, status, Query
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.api.deps import DbSession, CurrentUser, AdminUser
from app.api.v2.workflows import record_step_deletion
from app.exceptions import NotFoundError
from app.models.audit_log import AuditEntityType, AuditAction
from app.models.service import Service, Workflow
from app.schemas.service import (
    ServiceCreate,
    ServiceUpdate,
    ServiceResponse,
    WorkflowResponse,
)
from app.services.audit_diff import snapshot
from app.services.audit_logger import record_audit_event, render_summary

router = APIRouter()


async def _get_service_or_404(db, service_id: str) -> Service:
    result = await db.execute(select(Service).where(Service.id == service_id))
    service = result.scalar_one_or_none()
    if not service:
        raise NotFoundError("Service", service_id)
    return service


@router.get("", response_model=list[ServiceResponse])
async def list_services(
    db: DbSession,
    current_user: CurrentUser,
    include_inactive: bool = Query(False),
):
    """List catalogue services."""
    query = select(Service).order_by(Service.name)
    if not include_inactive:
        query = query.where(Service.is_active.is_(True))
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(service_id: str, db: DbSession, current_user: CurrentUser):
    """Get a single service by ID."""
    return await _get_service_or_404(db, service_id)


@router.get("/{service_id}/workflow", response_model=WorkflowResponse)
async def get_service_workflow(service_id: str, db: DbSession, current_user: CurrentUser):
    """Get the workshop workflow of a service, steps in order."""
    result = await db.execute(
        select(Workflow)
        .where(Workflow.service_id == service_id)
        .options(selectinload(Workflow.steps))
        .execution_options(populate_existing=True)
    )
    workflow = result.scalars().first()
    if not workflow:
        raise NotFoundError("Workflow for service", service_id)
    return workflow


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(
    service_data: ServiceCreate,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Create a service together with its workflow."""
    service = Service(**service_data.model_dump())
    db.add(service)
    await db.flush()

    workflow = Workflow(
        service_id=service.id,
        name=f"Workflow {service.name}",
        description=f"Étapes de réalisation pour {service.name}",
    )
    db.add(workflow)
    await db.commit()
    await db.refresh(service)
    await db.refresh(workflow)
    response = ServiceResponse.model_validate(service)
    # Both snapshots are taken up front: a failed first audit write rolls
    # back and expires every instance in the session
    service_state = snapshot(service)
    workflow_state = snapshot(workflow)

    await record_audit_event(
        db,
        entity_type=AuditEntityType.SERVICE,
        entity_id=response.id,
        action=AuditAction.CREATED,
        summary=render_summary(
            AuditEntityType.SERVICE, AuditAction.CREATED,
            subject=response.name, suffix="avec workflow associé",
        ),
        actor=current_user,
        request=request,
        new=service_state,
        metadata={"workflow_id": workflow_state["id"]},
    )
    await record_audit_event(
        db,
        entity_type=AuditEntityType.WORKFLOW,
        entity_id=workflow_state["id"],
        action=AuditAction.CREATED,
        summary=render_summary(
            AuditEntityType.WORKFLOW, AuditAction.CREATED, subject=workflow_state["name"]
        ),
        actor=current_user,
        request=request,
        new=workflow_state,
        metadata={"service_id": response.id},
    )
    return response


@router.patch("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: str,
    service_data: ServiceUpdate,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Update a service."""
    service = await _get_service_or_404(db, service_id)
    previous = snapshot(service)

    for field, value in service_data.model_dump(exclude_unset=True).items():
        setattr(service, field, value)

    await db.commit()
    await db.refresh(service)
    response = ServiceResponse.model_validate(service)

    await record_audit_event(
        db,
        entity_type=AuditEntityType.SERVICE,
        entity_id=service.id,
        action=AuditAction.UPDATED,
        summary=render_summary(AuditEntityType.SERVICE, AuditAction.UPDATED, subject=service.name),
        actor=current_user,
        request=request,
        previous=previous,
        new=snapshot(service),
    )
    return response


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(
    service_id: str,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Delete a service and its workflow.

    The workflow and its steps go with the service; each of them gets its
    own "deleted" entry so their histories are closed too.
    """
    service = await _get_service_or_404(db, service_id)
    previous = snapshot(service)

    result = await db.execute(
        select(Workflow)
        .where(Workflow.service_id == service_id)
        .options(selectinload(Workflow.steps))
        .execution_options(populate_existing=True)
    )
    workflow_states = []
    step_states = []
    for workflow in result.scalars().all():
        workflow_states.append(snapshot(workflow))
        step_states.extend(snapshot(step) for step in workflow.steps)
        await db.delete(workflow)
    await db.delete(service)
    await db.commit()

    workflow_ids = [state["id"] for state in workflow_states]
    await record_audit_event(
        db,
        entity_type=AuditEntityType.SERVICE,
        entity_id=service_id,
        action=AuditAction.DELETED,
        summary=render_summary(AuditEntityType.SERVICE, AuditAction.DELETED, subject=previous["name"]),
        actor=current_user,
        request=request,
        previous=previous,
        metadata={"workflow_ids": workflow_ids} if workflow_ids else None,
    )
    for workflow_state in workflow_states:
        await record_audit_event(
            db,
            entity_type=AuditEntityType.WORKFLOW,
            entity_id=workflow_state["id"],
            action=AuditAction.DELETED,
            summary=render_summary(
                AuditEntityType.WORKFLOW, AuditAction.DELETED,
                subject=workflow_state["name"], suffix="avec le service",
            ),
            actor=current_user,
            request=request,
            previous=workflow_state,
            metadata={"service_id": service_id},
        )
    for step_state in step_states:
        await record_step_deletion(db, step_state, actor=current_user, request=request)
