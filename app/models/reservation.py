"""
Reservation (workshop booking) and the per-reservation workshop task checklist.
"""
import uuid

from sqlalchemy import Column, String, Text, Integer, Numeric, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func

from app.database import Base


RESERVATION_STATUSES = ("pending", "confirmed", "completed", "cancelled")


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    quote_id = Column(String(36), ForeignKey("quotes.id", ondelete="CASCADE"), nullable=True)
    client_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="CASCADE"), nullable=False)
    assigned_employee_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    scheduled_date = Column(DateTime(timezone=True), nullable=False, index=True)
    estimated_end_date = Column(DateTime(timezone=True), nullable=True)
    wheel_count = Column(Integer, nullable=True)
    diameter = Column(String(50), nullable=True)
    price_excluding_tax = Column(Numeric(10, 2), nullable=True)

    status = Column(String(20), nullable=False, default="pending", index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Reservation {self.id} on {self.scheduled_date} - {self.status}>"


class WorkshopTask(Base):
    """One workflow step tracked for one reservation."""

    __tablename__ = "workshop_tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    reservation_id = Column(String(36), ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False, index=True)
    workflow_step_id = Column(String(36), ForeignKey("workflow_steps.id", ondelete="CASCADE"), nullable=False)
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    completed_by_user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    comment = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<WorkshopTask {self.id} done={self.is_completed}>"
