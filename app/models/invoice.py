import uuid

from sqlalchemy import Column, String, Text, Integer, Numeric, DateTime, ForeignKey
from sqlalchemy.sql import func

from app.database import Base


INVOICE_STATUSES = ("pending", "paid", "overdue", "cancelled")
PAYMENT_METHODS = ("cash", "wire_transfer", "card")


class Invoice(Base):
    """Invoice (facture), optionally issued from an approved quote."""

    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    quote_id = Column(String(36), ForeignKey("quotes.id", ondelete="CASCADE"), nullable=True, index=True)
    client_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    invoice_number = Column(String(50), unique=True, nullable=False)

    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(20), nullable=False, default="wire_transfer")
    price_excluding_tax = Column(Numeric(10, 2), nullable=True)
    tax_rate = Column(Numeric(5, 2), nullable=True)
    tax_amount = Column(Numeric(10, 2), nullable=True)
    wheel_count = Column(Integer, nullable=True)
    diameter = Column(String(50), nullable=True)

    status = Column(String(20), nullable=False, default="pending", index=True)
    due_date = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Invoice {self.invoice_number} - {self.status}>"
