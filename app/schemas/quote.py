from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, Literal
from decimal import Decimal


QuoteStatus = Literal["pending", "approved", "rejected", "completed", "cancelled"]


class QuoteBase(BaseModel):
    """Base quote schema."""
    service_id: str
    quote_amount: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    price_excluding_tax: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    tax_rate: Optional[Decimal] = Field(None, max_digits=5, decimal_places=2)
    tax_amount: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    wheel_count: Optional[int] = Field(None, ge=1, le=4)
    diameter: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    valid_until: Optional[datetime] = None


class QuoteCreate(QuoteBase):
    """Quote created by an administrator on behalf of a client."""
    client_id: str


class ClientQuoteRequest(QuoteBase):
    """Quote requested by the signed-in client."""
    pass


class QuoteUpdate(BaseModel):
    """Schema for updating a quote."""
    status: Optional[QuoteStatus] = None
    quote_amount: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    price_excluding_tax: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    tax_rate: Optional[Decimal] = Field(None, max_digits=5, decimal_places=2)
    tax_amount: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    wheel_count: Optional[int] = Field(None, ge=1, le=4)
    diameter: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
    valid_until: Optional[datetime] = None


class QuoteResponse(QuoteBase):
    """Schema for quote response."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    reference: Optional[str] = None
    client_id: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
