from app.schemas.iam.role import RoleBase, RoleCreate, RoleUpdate, RoleResponse
from app.schemas.iam.page import PageCreate, PageResponse
from app.schemas.iam.permission import (
    PermissionUpdate, BulkPermissionItem, BulkPermissionUpdate, ActionPermissionUpdate,
    PermissionChange, PermissionCheckResponse,
)
