from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional
from decimal import Decimal


class ServiceBase(BaseModel):
    name: str = Field(..., max_length=255)
    description: Optional[str] = None
    base_price: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    category: Optional[str] = Field(None, max_length=100)
    is_active: bool = True
    estimated_duration: Optional[int] = Field(None, ge=0)


class ServiceCreate(ServiceBase):
    pass


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    base_price: Optional[Decimal] = Field(None, max_digits=10, decimal_places=2)
    category: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None
    estimated_duration: Optional[int] = Field(None, ge=0)


class ServiceResponse(ServiceBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WorkflowUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None


class WorkflowStepCreate(BaseModel):
    step_number: int = Field(..., ge=1)
    title: str = Field(..., max_length=255)
    description: Optional[str] = None


class WorkflowStepUpdate(BaseModel):
    step_number: Optional[int] = Field(None, ge=1)
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None


class WorkflowStepResponse(WorkflowStepCreate):
    model_config = ConfigDict(from_attributes=True)

    id: str
    workflow_id: str


class WorkflowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    service_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    steps: list[WorkflowStepResponse] = []
