from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional

from app.config import settings
from app.core.exceptions import AccessControlError
from app.core.logging_config import get_logger
from app.database.session import get_db
from app.schemas.iam import (
    ActionPermissionUpdate, BulkPermissionUpdate, PermissionChange, PermissionCheckResponse, PermissionUpdate,
)
from app.services.access_control import AccessControl, Principal
from app.services.audit_service import AuditService, merge_warnings
from app.services.menu_composer import MenuComposer
from app.utils.response_utils import ResponseWrapper, handle_access_error, handle_db_error, handle_http_error
from common_utils.auth.permission_checker import require_admin
from common_utils.auth.token_validation import get_access_control, get_principal_or_participant

logger = get_logger(__name__)

router = APIRouter(
    prefix="/permissions",
    tags=["Page Permissions"]
)


def change_to_schema(change: dict) -> dict:
    return PermissionChange(
        role=change["role"].name,
        page_id=change["page"].page_id,
        page_path=change["page"].page_path,
        action_name=change.get("action"),
        previous=change["previous"],
        is_allowed=change["allowed"],
        changed=change["changed"],
    ).to_wire()


@router.get("/matrix", status_code=status.HTTP_200_OK)
def get_permission_matrix(
    access: AccessControl = Depends(get_access_control),
    _: Principal = Depends(require_admin),
):
    """Full role x page matrix; cells without a row are reported as denied"""
    try:
        return ResponseWrapper.success(data=access.permissions.matrix(), message="Permission matrix fetched")
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        raise handle_db_error(e)


@router.put("", status_code=status.HTTP_200_OK)
def update_permission(
    payload: PermissionUpdate,
    request: Request,
    db: Session = Depends(get_db),
    access: AccessControl = Depends(get_access_control),
    principal: Principal = Depends(require_admin),
):
    """Upsert one (role, page) cell. Unchanged values are not audited again."""
    try:
        change = access.permissions.set_page_permission(payload.role, payload.page_id, payload.is_allowed)

        warnings = None
        if change["changed"]:
            warnings = AuditService.log_permission_changed(db, principal, change, request=request).warnings

        return ResponseWrapper.updated(
            data=change_to_schema(change),
            message="Permission updated" if change["changed"] else "Permission unchanged",
            warnings=warnings,
        )
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error updating permission: {e}")
        raise handle_http_error(e)


@router.put("/bulk", status_code=status.HTTP_200_OK)
def update_permissions_bulk(
    payload: BulkPermissionUpdate,
    request: Request,
    db: Session = Depends(get_db),
    access: AccessControl = Depends(get_access_control),
    principal: Principal = Depends(require_admin),
):
    """Several cells for one role in a single transaction; one audit entry per changed cell"""
    try:
        changes = access.permissions.set_page_permissions_bulk(
            payload.role, [(item.page_id, item.is_allowed) for item in payload.permissions]
        )
        outcomes = [
            AuditService.log_permission_changed(db, principal, change, request=request)
            for change in changes if change["changed"]
        ]
        return ResponseWrapper.updated(
            data=[change_to_schema(change) for change in changes],
            message=f"{len(outcomes)} permission(s) changed",
            warnings=merge_warnings(outcomes),
        )
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error in bulk permission update: {e}")
        raise handle_http_error(e)


@router.put("/actions", status_code=status.HTTP_200_OK)
def update_action_permission(
    payload: ActionPermissionUpdate,
    request: Request,
    db: Session = Depends(get_db),
    access: AccessControl = Depends(get_access_control),
    principal: Principal = Depends(require_admin),
):
    try:
        change = access.permissions.set_action_permission(
            payload.role, payload.page_id, payload.action_name.value, payload.is_allowed
        )
        warnings = None
        if change["changed"]:
            warnings = AuditService.log_action_permission_changed(db, principal, change, request=request).warnings

        return ResponseWrapper.updated(
            data=change_to_schema(change),
            message="Action permission updated" if change["changed"] else "Action permission unchanged",
            warnings=warnings,
        )
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        raise handle_db_error(e)


@router.get("/user-pages", status_code=status.HTTP_200_OK)
def get_user_pages(
    user_id: Optional[int] = Query(None, alias="userId", description="Defaults to the caller"),
    db: Session = Depends(get_db),
    access: AccessControl = Depends(get_access_control),
    principal: Principal = Depends(get_principal_or_participant),
):
    """Pages the user's role may open, in menu order"""
    try:
        _, role_name = access.resolve_target_user(principal, user_id, settings.PERMISSION_ADMIN_PAGE)
        pages = MenuComposer(db, access.permissions).flat(role_name)
        return ResponseWrapper.success(data=pages, message=f"{len(pages)} page(s) accessible")
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        raise handle_db_error(e)


@router.get("/check", status_code=status.HTTP_200_OK)
def check_permission(
    page_path: str = Query(..., alias="pagePath", min_length=1),
    action: Optional[str] = Query(None, description="view, create, update, delete, export, bulk_update"),
    user_id: Optional[int] = Query(None, alias="userId", description="Defaults to the caller"),
    access: AccessControl = Depends(get_access_control),
    principal: Principal = Depends(get_principal_or_participant),
):
    try:
        target_id, role_name = access.resolve_target_user(principal, user_id, settings.PERMISSION_ADMIN_PAGE)
        if target_id == principal.user_id:
            allowed = access.can_access(principal, page_path, action)
        else:
            allowed = access.permissions.resolve(role_name, page_path, action)

        result = PermissionCheckResponse(
            user_id=target_id, role=role_name, page_path=page_path, action=action, has_access=allowed,
        )
        return ResponseWrapper.success(data=result.to_wire(), message="Permission checked")
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        raise handle_db_error(e)
