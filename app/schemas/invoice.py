from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, Literal
from decimal import Decimal


InvoiceStatus = Literal["pending", "paid", "overdue", "cancelled"]
PaymentMethod = Literal["cash", "wire_transfer", "card"]


class InvoiceBase(BaseModel):
    client_id: str
    quote_id: Optional[str] = None
    amount: Decimal = Field(..., max_digits=10, decimal_places=2)
    payment_method: PaymentMethod = "wire_transfer"
    price_excluding_tax: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    tax_rate: Optional[Decimal] = Field(None, max_digits=5, decimal_places=2)
    tax_amount: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    wheel_count: Optional[int] = Field(None, ge=1, le=4)
    diameter: Optional[str] = Field(None, max_length=50)
    due_date: Optional[datetime] = None
    notes: Optional[str] = None


class InvoiceCreate(InvoiceBase):
    pass


class InvoiceUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    payment_method: Optional[PaymentMethod] = None
    status: Optional[InvoiceStatus] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None


class InvoiceResponse(InvoiceBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    invoice_number: str
    status: str
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
