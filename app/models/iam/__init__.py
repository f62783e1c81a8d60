from app.models.iam.role import Role
from app.models.iam.page import Page
from app.models.iam.permission import RolePagePermission, PageActionPermission, PageActionEnum
