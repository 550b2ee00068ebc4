from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, Literal
from decimal import Decimal


ReservationStatus = Literal["pending", "confirmed", "completed", "cancelled"]


class ReservationBase(BaseModel):
    client_id: str
    service_id: str
    quote_id: Optional[str] = None
    assigned_employee_id: Optional[str] = None
    scheduled_date: datetime
    estimated_end_date: Optional[datetime] = None
    wheel_count: Optional[int] = Field(None, ge=1, le=4)
    diameter: Optional[str] = Field(None, max_length=50)
    price_excluding_tax: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    notes: Optional[str] = None


class ReservationCreate(ReservationBase):
    pass


class ReservationUpdate(BaseModel):
    assigned_employee_id: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    estimated_end_date: Optional[datetime] = None
    status: Optional[ReservationStatus] = None
    notes: Optional[str] = None


class ReservationResponse(ReservationBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WorkshopTaskUpdate(BaseModel):
    is_completed: Optional[bool] = None
    comment: Optional[str] = None


class WorkshopTaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    reservation_id: str
    workflow_step_id: str
    is_completed: bool
    completed_at: Optional[datetime] = None
    completed_by_user_id: Optional[str] = None
    comment: Optional[str] = None
