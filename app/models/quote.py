"""
SQLAlchemy model for Quotes (devis).
"""
import uuid
from sqlalchemy import (
    Column, DateTime, Integer, Numeric, String, Text, ForeignKey, Index
)
from sqlalchemy.sql import func

from app.database import Base


QUOTE_STATUSES = ("pending", "approved", "rejected", "completed", "cancelled")


class Quote(Base):
    """Repair quote requested by a client for one service."""
    __tablename__ = "quotes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Format: DEV-MM-00001
    reference = Column(String(50), unique=True, nullable=True, index=True)

    client_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="CASCADE"), nullable=False)

    status = Column(String(20), nullable=False, default="pending", index=True)

    # Pricing
    quote_amount = Column(Numeric(10, 2), nullable=True)
    price_excluding_tax = Column(Numeric(10, 2), nullable=True)
    tax_rate = Column(Numeric(5, 2), nullable=True)  # Percentage (e.g., 20.00)
    tax_amount = Column(Numeric(10, 2), nullable=True)

    # Wheel details
    wheel_count = Column(Integer, nullable=True)
    diameter = Column(String(50), nullable=True)

    notes = Column(Text, nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index('idx_quotes_client_status', 'client_id', 'status'),
    )

    def __repr__(self):
        return f"<Quote(id={self.id}, reference={self.reference}, status={self.status})>"
