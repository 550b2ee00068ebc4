from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, Any

from app.models.audit_log import AuditEntityType, AuditAction


class AuditActorResponse(BaseModel):
    """Live view of the acting user (current profile, may differ from actor_name)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str


class AuditLogChangeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    field: str
    previous_value: Optional[Any] = None
    new_value: Optional[Any] = None


class AuditLogResponse(BaseModel):
    """One audit entry with its live actor and field-level changes."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    entity_type: AuditEntityType
    entity_id: str
    action: AuditAction
    actor_id: Optional[str] = None
    actor_role: Optional[str] = None
    actor_name: Optional[str] = None
    summary: Optional[str] = None
    metadata: Optional[dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("metadata_", "metadata")
    )
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    occurred_at: datetime
    actor: Optional[AuditActorResponse] = None
    changes: list[AuditLogChangeResponse] = []


class AuditLogListResponse(BaseModel):
    """Paginated audit log list; total counts all matches before pagination."""

    logs: list[AuditLogResponse]
    total: int
    limit: int
    offset: int
