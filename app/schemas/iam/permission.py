from pydantic import Field, field_validator
from typing import List, Optional

from app.models.iam.permission import PageActionEnum
from app.schemas.base import CamelModel


class PermissionUpdate(CamelModel):
    """One (role, page) cell"""
    role: str = Field(..., min_length=1)
    page_id: int
    is_allowed: bool


class BulkPermissionItem(CamelModel):
    page_id: int
    is_allowed: bool


class BulkPermissionUpdate(CamelModel):
    role: str = Field(..., min_length=1)
    permissions: List[BulkPermissionItem] = Field(..., min_length=1)


class ActionPermissionUpdate(CamelModel):
    role: str = Field(..., min_length=1)
    page_id: int
    action_name: PageActionEnum
    is_allowed: bool

    @field_validator("action_name", mode="before")
    @classmethod
    def lower_action(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class PermissionChange(CamelModel):
    role: str
    page_id: int
    page_path: str
    action_name: Optional[str] = None
    previous: Optional[bool] = None
    is_allowed: bool
    changed: bool


class PermissionCheckResponse(CamelModel):
    user_id: Optional[int] = None
    role: str
    page_path: str
    action: Optional[str] = None
    has_access: bool
