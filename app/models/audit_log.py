"""
Audit Log - what changed, who changed it, and when, for every tracked entity.

One AuditLog row per recorded action, plus zero or more AuditLogChange rows
holding the field-level before/after values.

- entity_type + entity_id form a polymorphic reference, not a foreign key:
  the log outlives the entity it describes.
- actor_id is a live reference to the user (SET NULL on delete) while
  actor_role / actor_name are frozen at write time. Both are kept.
- Rows are written once and never updated.
"""
import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Text, ForeignKey, JSON, Index, Enum
from sqlalchemy.orm import relationship
from app.database import Base


class AuditEntityType(str, enum.Enum):
    QUOTE = "quote"
    INVOICE = "invoice"
    RESERVATION = "reservation"
    SERVICE = "service"
    WORKFLOW = "workflow"
    WORKFLOW_STEP = "workflow_step"
    USER = "user"
    WORKSHOP_TASK = "workshop_task"


class AuditAction(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    VALIDATED = "validated"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    PAID = "paid"
    CONFIRMED = "confirmed"


def _enum_column(enum_cls, name: str):
    # Stored as VARCHAR + CHECK so values stay readable in plain SQL
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=True,
        validate_strings=True,
        length=30,
        values_callable=lambda members: [m.value for m in members],
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # What was touched
    entity_type = Column(_enum_column(AuditEntityType, "audit_entity_type"), nullable=False)
    entity_id = Column(String(36), nullable=False)

    # What happened
    action = Column(_enum_column(AuditAction, "audit_action"), nullable=False, index=True)
    summary = Column(Text, nullable=True)
    metadata_ = Column("metadata", JSON, nullable=True)

    # Who did it (live reference + frozen snapshot)
    actor_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actor_role = Column(String(30), nullable=True)
    actor_name = Column(String(255), nullable=True)

    # Where it came from
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    # When (set in Python for sub-second ordering on every backend)
    occurred_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    actor = relationship("User", lazy="selectin")
    changes = relationship(
        "AuditLogChange",
        back_populates="audit_log",
        order_by="AuditLogChange.field",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        Index("ix_audit_logs_actor_id", "actor_id"),
        Index("ix_audit_logs_occurred_at", "occurred_at"),
    )

    def __repr__(self):
        return f"<AuditLog {self.entity_type}:{self.entity_id} {self.action}>"


class AuditLogChange(Base):
    __tablename__ = "audit_log_changes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    audit_log_id = Column(
        String(36), ForeignKey("audit_logs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    field = Column(String(100), nullable=False)
    previous_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)

    audit_log = relationship("AuditLog", back_populates="changes")

    def __repr__(self):
        return f"<AuditLogChange {self.field}: {self.previous_value!r} -> {self.new_value!r}>"
