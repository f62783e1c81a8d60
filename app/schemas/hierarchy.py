from pydantic import Field, field_validator
from typing import Optional
from datetime import datetime

from app.models.hierarchy import HierarchyLevelEnum
from app.schemas.base import CamelModel


class HierarchyAssignRequest(CamelModel):
    user_id: int
    assignment_type: str = Field(..., description="zone, province, district, school or class")
    assignment_id: int
    assigned_by: Optional[int] = None

    @field_validator("assignment_type", mode="before")
    @classmethod
    def lower_type(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class HierarchyUnassignRequest(CamelModel):
    user_id: int
    assignment_type: str
    assignment_id: int

    @field_validator("assignment_type", mode="before")
    @classmethod
    def lower_type(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class HierarchyAssignmentResponse(CamelModel):
    id: int
    user_id: int
    assignment_type: HierarchyLevelEnum
    assignment_id: int
    assigned_by: Optional[int] = None
    assigned_at: datetime

    @classmethod
    def from_assignment(cls, assignment) -> "HierarchyAssignmentResponse":
        return cls(
            id=assignment.assignment_id,
            user_id=assignment.user_id,
            assignment_type=assignment.level,
            assignment_id=assignment.node_id,
            assigned_by=assignment.assigned_by,
            assigned_at=assignment.assigned_at,
        )


class SchoolResponse(CamelModel):
    school_id: int
    school_name: str
    school_code: Optional[str] = None
    district_id: int


class ClassResponse(CamelModel):
    class_id: int
    class_name: str
    grade_level: Optional[int] = None
    school_id: int
