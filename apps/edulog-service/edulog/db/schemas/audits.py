import uuid
from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


class AuditLogBase(BaseModel):
    event_type: str
    event_category: str = 'application'
    action: str
    description: Optional[str] = None
    severity: str = 'info'
    status: str = 'success'
    actor_type: str = 'user'
    target_type: Optional[str] = None
    target_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class AuditLogCreate(AuditLogBase):
    pass


class AuditLog(AuditLogBase):
    id: uuid.UUID
    actor_id: Optional[uuid.UUID] = None
    # ORM attribute is metadata_json; the column is named "metadata"
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias='metadata_json')
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
