from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from app.config import settings
from app.database.session import get_db
from app.schemas.audit_log import AuditLogResponse, AuditLogFilter
from app.crud.audit_log import audit_log
from app.services.access_control import Principal
from app.core.exceptions import AccessControlError
from app.utils.response_utils import ResponseWrapper, handle_access_error, handle_db_error, validate_pagination_params
from common_utils.auth.permission_checker import require_admin
from sqlalchemy.exc import SQLAlchemyError
from app.core.logging_config import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/permissions", tags=["audit-logs"])


@router.get("/audit", status_code=status.HTTP_200_OK)
def get_permission_audit(
    role_id: Optional[int] = Query(None, alias="roleId"),
    page_id: Optional[int] = Query(None, alias="pageId"),
    action_type: Optional[str] = Query(None, alias="actionType"),
    page: int = Query(1, description="Page number"),
    limit: int = Query(settings.AUDIT_PAGE_SIZE, description="Items per page"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    """
    Permission audit trail, newest first.

    Example: GET /api/v1/permissions/audit?roleId=3&limit=20
    """
    page, limit = validate_pagination_params(page, limit, settings.AUDIT_PAGE_SIZE, settings.AUDIT_MAX_PAGE_SIZE)
    try:
        filters = AuditLogFilter(
            role_id=role_id,
            page_id=page_id,
            action_type=action_type,
            page=page,
            page_size=limit,
        )
        logs, total_count = audit_log.get_filtered(db=db, filters=filters)
        items = [AuditLogResponse.model_validate(log).to_wire() for log in logs]

        logger.info(
            f"Retrieved {len(items)} audit entries (total {total_count}) for admin {principal.user_id}"
        )
        return ResponseWrapper.paginated(
            items=items,
            total=total_count,
            page=page,
            per_page=limit,
            message="Audit entries fetched",
        )
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        raise handle_db_error(e)
