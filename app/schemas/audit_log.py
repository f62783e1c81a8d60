from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime

from app.schemas.base import CamelModel


class AuditLogCreate(BaseModel):
    actor_user_id: int
    actor_role: str
    action_type: str
    entity_type: str
    entity_id: Optional[str] = None
    role_id: Optional[int] = None
    page_id: Optional[int] = None
    summary: str
    audit_data: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None


class AuditLogResponse(CamelModel):
    audit_id: int
    actor_user_id: int
    actor_role: str
    action_type: str
    entity_type: str
    entity_id: Optional[str] = None
    role_id: Optional[int] = None
    page_id: Optional[int] = None
    summary: str
    audit_data: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: datetime


class AuditLogFilter(BaseModel):
    role_id: Optional[int] = None
    page_id: Optional[int] = None
    action_type: Optional[str] = None
    actor_user_id: Optional[int] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1, le=200)
