from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import AccessControlError, NotFound
from app.core.logging_config import get_logger
from app.crud.iam import role_crud
from app.database.session import get_db
from app.models.audit_log import AuditActionEnum
from app.models.iam import Role
from app.schemas.iam import RoleCreate, RoleResponse, RoleUpdate
from app.services.access_control import Principal
from app.services.audit_service import AuditService
from app.utils.response_utils import ResponseWrapper, handle_access_error, handle_db_error, handle_http_error
from common_utils.auth.permission_checker import require_admin

logger = get_logger(__name__)

router = APIRouter(
    prefix="/roles",
    tags=["IAM Roles"]
)


def role_to_schema(db: Session, role: Role) -> dict:
    return RoleResponse(
        role_id=role.role_id,
        name=role.name,
        description=role.description,
        user_count=role_crud.user_count(db, role_id=role.role_id),
        created_at=role.created_at,
        updated_at=role.updated_at,
    ).to_wire()


def get_role_or_404(db: Session, role_id: int) -> Role:
    role = role_crud.get(db, id=role_id)
    if not role:
        raise NotFound("Role not found", details={"roleId": role_id})
    return role


@router.get("", status_code=status.HTTP_200_OK)
def get_roles(
    db: Session = Depends(get_db),
    _: Principal = Depends(require_admin),
):
    try:
        roles = role_crud.get_all(db)
        return ResponseWrapper.success(data=[role_to_schema(db, r) for r in roles], message="Roles fetched")
    except SQLAlchemyError as e:
        raise handle_db_error(e)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_role(
    role: RoleCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    """Create a role; names are unique regardless of case"""
    try:
        created_role = role_crud.create(db=db, obj_in=role)
        logger.info(f"Role created: {created_role.role_id} ({created_role.name})")

        outcome = AuditService.record(
            db, principal,
            action_type=AuditActionEnum.ROLE_CREATED,
            entity_type="role",
            entity_id=created_role.role_id,
            role_id=created_role.role_id,
            summary=f"Role '{created_role.name}' created",
            after={"name": created_role.name, "description": created_role.description},
            request=request,
        )
        return ResponseWrapper.created(
            data=role_to_schema(db, created_role),
            message="Role created successfully",
            warnings=outcome.warnings,
        )
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating role: {e}")
        raise handle_http_error(e)


@router.put("/{role_id}", status_code=status.HTTP_200_OK)
def update_role(
    role_id: int,
    role_update: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    """Rename / re-describe a role. Permission rows follow the role id, so a rename keeps them."""
    try:
        role = get_role_or_404(db, role_id)
        before = {"name": role.name, "description": role.description}
        updated = role_crud.update(db=db, db_obj=role, obj_in=role_update)
        after = {"name": updated.name, "description": updated.description}

        outcome = None
        if before != after:
            renamed = before["name"] != after["name"]
            outcome = AuditService.record(
                db, principal,
                action_type=AuditActionEnum.ROLE_RENAMED,
                entity_type="role",
                entity_id=updated.role_id,
                role_id=updated.role_id,
                summary=(
                    f"Role '{before['name']}' renamed to '{after['name']}'" if renamed
                    else f"Role '{updated.name}' description updated"
                ),
                before=before,
                after=after,
                request=request,
            )
        return ResponseWrapper.updated(
            data=role_to_schema(db, updated),
            message="Role updated successfully",
            warnings=outcome.warnings if outcome else None,
        )
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        raise handle_db_error(e)


@router.delete("/{role_id}", status_code=status.HTTP_200_OK)
def delete_role(
    role_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    try:
        role = get_role_or_404(db, role_id)
        name = role.name
        role_crud.remove(db=db, db_obj=role)
        logger.info(f"Role deleted: {role_id} ({name})")

        outcome = AuditService.record(
            db, principal,
            action_type=AuditActionEnum.ROLE_DELETED,
            entity_type="role",
            entity_id=role_id,
            role_id=role_id,
            summary=f"Role '{name}' deleted",
            before={"name": name},
            request=request,
        )
        return ResponseWrapper.deleted(message="Role deleted successfully", warnings=outcome.warnings)
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        raise handle_db_error(e)
