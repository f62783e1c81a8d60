# Import all models here so Base.metadata knows every table
from app.models.hierarchy import (
    Zone, Province, District, School, SchoolClass,
    HierarchyAssignment, HierarchyLevelEnum,
)
from app.models.user import User
from app.models.audit_log import AuditLog, AuditActionEnum

# IAM models
from app.models.iam.role import Role
from app.models.iam.page import Page
from app.models.iam.permission import RolePagePermission, PageActionPermission, PageActionEnum
