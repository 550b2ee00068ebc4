"""
Invoices API - invoices (factures) and their payment status.
"""
from fastapi import APIRouter, Request, status, Query
from sqlalchemy import select, func
from typing import Optional
from datetime import datetime, timezone

from app.api.deps import DbSession, CurrentUser, AdminUser
from app.exceptions import NotFoundError, ForbiddenError
from app.models.audit_log import AuditEntityType, AuditAction
from app.models.invoice import Invoice
from app.models.quote import Quote
from app.models.user import User
from app.schemas.invoice import InvoiceCreate, InvoiceUpdate, InvoiceResponse
from app.security.rbac import Role, get_user_role
from app.services.audit_diff import snapshot
from app.services.audit_logger import (
    record_audit_event,
    render_summary,
    status_transition_action,
)

router = APIRouter()


async def generate_invoice_number(db) -> str:
    """Next number for today, e.g. FACT-14-03-004."""
    now = datetime.now(timezone.utc)
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    result = await db.execute(
        select(func.count()).select_from(Invoice).where(Invoice.created_at >= start_of_day)
    )
    count = (result.scalar() or 0) + 1
    return f"FACT-{now.day:02d}-{now.month:02d}-{count:03d}"


async def _get_invoice_or_404(db, invoice_id: str) -> Invoice:
    result = await db.execute(select(Invoice).where(Invoice.id == invoice_id))
    invoice = result.scalar_one_or_none()
    if not invoice:
        raise NotFoundError("Invoice", invoice_id)
    return invoice


@router.get("", response_model=list[InvoiceResponse])
async def list_invoices(
    db: DbSession,
    current_user: CurrentUser,
    status: Optional[str] = Query(None),
):
    """List invoices. Clients only see their own."""
    query = select(Invoice).order_by(Invoice.created_at.desc())
    if get_user_role(current_user) in (Role.CLIENT, Role.CLIENT_PROFESSIONNEL):
        query = query.where(Invoice.client_id == current_user.id)
    if status:
        query = query.where(Invoice.status == status)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: str, db: DbSession, current_user: CurrentUser):
    """Get a single invoice by ID."""
    invoice = await _get_invoice_or_404(db, invoice_id)
    if (
        get_user_role(current_user) in (Role.CLIENT, Role.CLIENT_PROFESSIONNEL)
        and invoice.client_id != current_user.id
    ):
        raise ForbiddenError("Not your invoice")
    return invoice


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    invoice_data: InvoiceCreate,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Issue an invoice, optionally from a quote."""
    result = await db.execute(select(User.id).where(User.id == invoice_data.client_id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("User", invoice_data.client_id)
    if invoice_data.quote_id:
        result = await db.execute(select(Quote.id).where(Quote.id == invoice_data.quote_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Quote", invoice_data.quote_id)

    invoice = Invoice(
        **invoice_data.model_dump(),
        invoice_number=await generate_invoice_number(db),
        status="pending",
    )
    db.add(invoice)
    await db.commit()
    await db.refresh(invoice)
    response = InvoiceResponse.model_validate(invoice)

    await record_audit_event(
        db,
        entity_type=AuditEntityType.INVOICE,
        entity_id=invoice.id,
        action=AuditAction.CREATED,
        summary=render_summary(AuditEntityType.INVOICE, AuditAction.CREATED),
        actor=current_user,
        request=request,
        new=snapshot(invoice),
        metadata={"invoice_number": invoice.invoice_number, "quote_id": invoice.quote_id},
    )
    return response


@router.patch("/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: str,
    invoice_data: InvoiceUpdate,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Update an invoice. Marking it paid stamps ``paid_at``."""
    invoice = await _get_invoice_or_404(db, invoice_id)
    previous = snapshot(invoice)
    previous_status = invoice.status

    for field, value in invoice_data.model_dump(exclude_unset=True).items():
        setattr(invoice, field, value)
    if invoice.status == "paid" and previous_status != "paid":
        invoice.paid_at = datetime.now(timezone.utc)

    await db.commit()
    await db.refresh(invoice)
    response = InvoiceResponse.model_validate(invoice)

    action = status_transition_action(AuditEntityType.INVOICE, previous_status, invoice.status)
    await record_audit_event(
        db,
        entity_type=AuditEntityType.INVOICE,
        entity_id=invoice.id,
        action=action,
        summary=render_summary(AuditEntityType.INVOICE, action),
        actor=current_user,
        request=request,
        previous=previous,
        new=snapshot(invoice),
    )
    return response


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(
    invoice_id: str,
    request: Request,
    db: DbSession,
    current_user: AdminUser,
):
    """Delete an invoice."""
    invoice = await _get_invoice_or_404(db, invoice_id)
    previous = snapshot(invoice)

    await db.delete(invoice)
    await db.commit()

    await record_audit_event(
        db,
        entity_type=AuditEntityType.INVOICE,
        entity_id=invoice_id,
        action=AuditAction.DELETED,
        summary=render_summary(AuditEntityType.INVOICE, AuditAction.DELETED),
        actor=current_user,
        request=request,
        previous=previous,
        metadata={"invoice_number": previous["invoice_number"]},
    )
