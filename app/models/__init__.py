from app.models.user import User
from app.models.service import Service, Workflow, WorkflowStep
from app.models.quote import Quote
from app.models.invoice import Invoice
from app.models.reservation import Reservation, WorkshopTask
from app.models.audit_log import AuditLog, AuditLogChange, AuditEntityType, AuditAction

__all__ = [
    "User",
    "Service",
    "Workflow",
    "WorkflowStep",
    "Quote",
    "Invoice",
    "Reservation",
    "WorkshopTask",
    "AuditLog",
    "AuditLogChange",
    "AuditEntityType",
    "AuditAction",
]
