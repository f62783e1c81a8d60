from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import AccessControlError
from app.core.logging_config import get_logger
from app.database.session import get_db
from app.schemas.menu import MenuOrderUpdate
from app.services.access_control import AccessControl, Principal
from app.services.audit_service import AuditService
from app.services.menu_composer import MenuComposer, dashboard_path_for_role
from app.utils.response_utils import ResponseWrapper, handle_access_error, handle_db_error, handle_http_error
from common_utils.auth.permission_checker import require_admin
from common_utils.auth.token_validation import get_access_control, get_principal_or_participant

logger = get_logger(__name__)

router = APIRouter(tags=["Menu"])


@router.get("/menu", status_code=status.HTTP_200_OK)
def get_menu(
    db: Session = Depends(get_db),
    access: AccessControl = Depends(get_access_control),
    principal: Principal = Depends(get_principal_or_participant),
):
    """Navigation tree for the caller"""
    try:
        menu = MenuComposer(db, access.permissions).compose(principal.role_name)
        return ResponseWrapper.success(
            data={
                "role": principal.role_name,
                "dashboardPath": dashboard_path_for_role(principal.role_name),
                "items": menu,
            },
            message="Menu fetched",
        )
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        raise handle_db_error(e)


@router.put("/menu-order", status_code=status.HTTP_200_OK)
def update_menu_order(
    payload: MenuOrderUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    """Bulk reorder; all or nothing, one audit entry"""
    try:
        changes = MenuComposer(db).reorder([item.model_dump() for item in payload.page_orders])
        outcome = AuditService.log_menu_reordered(db, principal, changes, request=request)
        return ResponseWrapper.updated(
            data={"updated": len(changes), "pageOrders": [{"id": c["id"], "order": c["after"]} for c in changes]},
            message=f"{len(changes)} pages reordered",
            warnings=outcome.warnings,
        )
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error updating menu order: {e}")
        raise handle_http_error(e)
