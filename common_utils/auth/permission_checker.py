from typing import Optional

from fastapi import Depends

from app.core.exceptions import AccessControlError
from app.core.logging_config import get_logger
from app.services.access_control import AccessControl, Principal
from app.utils.response_utils import handle_access_error

from .token_validation import get_access_control, get_current_principal

logger = get_logger(__name__)


class PermissionChecker:
    """
    Route dependency: the caller's role must be allowed ``page_path``
    (and ``action`` when given). Returns the principal.
    """

    def __init__(self, page_path: str, action: Optional[str] = None):
        self.page_path = page_path
        self.action = action

    def __call__(
        self,
        principal: Principal = Depends(get_current_principal),
        access: AccessControl = Depends(get_access_control),
    ) -> Principal:
        logger.debug(f"PermissionChecker triggered for {self.page_path} action={self.action}")
        try:
            access.authorize_page(principal, self.page_path, self.action)
        except AccessControlError as e:
            raise handle_access_error(e)
        return principal


class AdminRequired:
    def __call__(
        self,
        principal: Principal = Depends(get_current_principal),
        access: AccessControl = Depends(get_access_control),
    ) -> Principal:
        try:
            access.require_admin(principal)
        except AccessControlError as e:
            logger.warning(f"Admin check failed for user {principal.user_id} ({principal.role_name})")
            raise handle_access_error(e)
        return principal


require_admin = AdminRequired()
