"""
Quotes API - repair quotes (devis) requested by clients and priced by the shop.
"""
from fastapi import APIRouter, Request, status, Query
from sqlalchemy import select, func
from typing import Optional
from datetime import datetime, timezone

from app.api.deps import DbSession, CurrentUser, AdminUser
from app.exceptions import NotFoundError, ForbiddenError
from app.models.audit_log import AuditEntityType, AuditAction
from app.models.quote import Quote
from app.models.service import Service
from app.models.user import User
from app.schemas.quote import (
    QuoteCreate,
    ClientQuoteRequest,
    QuoteUpdate,
    QuoteResponse,
)
from app.security.rbac import Role, get_user_role
from app.services.audit_diff import snapshot
from app.services.audit_logger import (
    record_audit_event,
    render_summary,
    status_transition_action,
)

router = APIRouter()


async def generate_quote_reference(db) -> str:
    """Next reference for the current month, e.g. DEV-03-00012."""
    now = datetime.now(timezone.utc)
    start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    result = await db.execute(
        select(func.count()).select_from(Quote).where(Quote.created_at >= start_of_month)
    )
    count = (result.scalar() or 0) + 1
    return f"DEV-{now.month:02d}-{count:05d}"


async def _get_quote_or_404(db, quote_id: str) -> Quote:
    result = await db.execute(select(Quote).where(Quote.id == quote_id))
    quote = result.scalar_one_or_none()
    if not quote:
        raise NotFoundError("Quote", quote_id)
    return quote


async def _ensure_exists(db, model, object_id: str, resource: str) -> None:
    result = await db.execute(select(model.id).where(model.id == object_id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError(resource, object_id)


def _is_client(user: User) -> bool:
    return get_user_role(user) in (Role.CLIENT, Role.CLIENT_PROFESSIONNEL)


@router.get("", response_model=list[QuoteResponse])
async def list_quotes(
    db: DbSession,
    current_user: CurrentUser,
    status: Optional[str] = Query(None),
):
    """List quotes. Clients only see their own."""
    query = select(Quote).order_by(Quote.created_at.desc())
    if _is_client(current_user):
        query = query.where(Quote.client_id == current_user.id)
    if status:
        query = query.where(Quote.status == status)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{quote_id}", response_model=QuoteResponse)
async def get_quote(quote_id: str, db: DbSession, current_user: CurrentUser):
    """Get a single quote by ID."""
    quote = await _get_quote_or_404(db, quote_id)
    if _is_client(current_user) and quote.client_id != current_user.id:
        raise ForbiddenError("Not your quote")
    return quote


@router.post("/request", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
async def request_quote(
    quote_data: ClientQuoteRequest,
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
):
    """Request a quote for the signed-in client."""
    await _ensure_exists(db, Service, quote_data.service_id, "Service")

    quote = Quote(
        **quote_data.model_dump(),
        client_id=current_user.id,
        reference=await generate_quote_reference(db),
        status="pending",
    )
    db.add(quote)
    await db.commit()
    await db.refresh(quote)
    response = QuoteResponse.model_validate(quote)

    await record_audit_event(
        db,
        entity_type=AuditEntityType.QUOTE,
        entity_id=quote.id,
        action=AuditAction.CREATED,
        summary=render_summary(AuditEntityType.QUOTE, AuditAction.CREATED, suffix="par le client"),
        actor=current_user,
        request=request,
        new=snapshot(quote),
        metadata={"reference": quote.reference},
    )
    return response


@router.post("", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED)
async def create_quote(
    quote_data: QuoteCreate,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Create a quote on behalf of a client."""
    await _ensure_exists(db, User, quote_data.client_id, "User")
    await _ensure_exists(db, Service, quote_data.service_id, "Service")

    quote = Quote(
        **quote_data.model_dump(),
        reference=await generate_quote_reference(db),
        status="pending",
    )
    db.add(quote)
    await db.commit()
    await db.refresh(quote)
    response = QuoteResponse.model_validate(quote)

    await record_audit_event(
        db,
        entity_type=AuditEntityType.QUOTE,
        entity_id=quote.id,
        action=AuditAction.CREATED,
        summary=render_summary(AuditEntityType.QUOTE, AuditAction.CREATED, suffix="par l'administrateur"),
        actor=current_user,
        request=request,
        new=snapshot(quote),
        metadata={"reference": quote.reference},
    )
    return response


@router.patch("/{quote_id}", response_model=QuoteResponse)
async def update_quote(
    quote_id: str,
    quote_data: QuoteUpdate,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Update a quote; a status change is recorded as its named action."""
    quote = await _get_quote_or_404(db, quote_id)
    previous = snapshot(quote)
    previous_status = quote.status

    for field, value in quote_data.model_dump(exclude_unset=True).items():
        setattr(quote, field, value)

    await db.commit()
    await db.refresh(quote)
    response = QuoteResponse.model_validate(quote)

    action = status_transition_action(AuditEntityType.QUOTE, previous_status, quote.status)
    await record_audit_event(
        db,
        entity_type=AuditEntityType.QUOTE,
        entity_id=quote.id,
        action=action,
        summary=render_summary(AuditEntityType.QUOTE, action),
        actor=current_user,
        request=request,
        previous=previous,
        new=snapshot(quote),
    )
    return response


@router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quote(
    quote_id: str,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Delete a quote."""
    quote = await _get_quote_or_404(db, quote_id)
    previous = snapshot(quote)

    await db.delete(quote)
    await db.commit()

    await record_audit_event(
        db,
        entity_type=AuditEntityType.QUOTE,
        entity_id=quote_id,
        action=AuditAction.DELETED,
        summary=render_summary(AuditEntityType.QUOTE, AuditAction.DELETED),
        actor=current_user,
        request=request,
        previous=previous,
        metadata={"reference": previous["reference"]},
    )
