from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional

from app.config import settings
from app.core.exceptions import AccessControlError
from app.core.logging_config import get_logger
from app.database.session import get_db
from app.schemas.hierarchy import (
    ClassResponse, HierarchyAssignmentResponse, HierarchyAssignRequest, HierarchyUnassignRequest, SchoolResponse,
)
from app.services.access_control import AccessControl, Principal
from app.services.audit_service import AuditService
from app.utils.response_utils import ResponseWrapper, handle_access_error, handle_db_error, handle_http_error
from common_utils.auth.permission_checker import PermissionChecker
from common_utils.auth.token_validation import get_access_control, get_current_principal

logger = get_logger(__name__)

router = APIRouter(
    prefix="/hierarchy",
    tags=["Hierarchy"]
)

can_assign = PermissionChecker(settings.HIERARCHY_ASSIGN_PAGE)


@router.post("/assign", status_code=status.HTTP_201_CREATED)
def assign_hierarchy(
    payload: HierarchyAssignRequest,
    request: Request,
    db: Session = Depends(get_db),
    access: AccessControl = Depends(get_access_control),
    principal: Principal = Depends(can_assign),
):
    """Grant a user the subtree under one node"""
    try:
        if payload.assigned_by is not None and payload.assigned_by != principal.user_id:
            logger.warning(
                f"assignedBy={payload.assigned_by} ignored, recording actor {principal.user_id}"
            )

        assignment, created = access.hierarchy.assign(
            payload.user_id, payload.assignment_type, payload.assignment_id, assigned_by=principal.user_id
        )

        warnings = None
        if created:
            warnings = AuditService.log_hierarchy_changed(
                db, principal, payload.user_id, assignment.level.value, payload.assignment_id,
                assigned=True, request=request,
            ).warnings

        return ResponseWrapper.created(
            data=HierarchyAssignmentResponse.from_assignment(assignment).to_wire(),
            message="Assignment created" if created else "Assignment already exists",
            warnings=warnings,
        )
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating hierarchy assignment: {e}")
        raise handle_http_error(e)


@router.delete("/assign", status_code=status.HTTP_200_OK)
def unassign_hierarchy(
    request: Request,
    payload: HierarchyUnassignRequest = Body(...),
    db: Session = Depends(get_db),
    access: AccessControl = Depends(get_access_control),
    principal: Principal = Depends(can_assign),
):
    try:
        removed = access.hierarchy.unassign(payload.user_id, payload.assignment_type, payload.assignment_id)
        outcome = AuditService.log_hierarchy_changed(
            db, principal, payload.user_id, removed["assignmentType"], payload.assignment_id,
            assigned=False, request=request,
        )
        return ResponseWrapper.deleted(message="Assignment removed", warnings=outcome.warnings)
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        raise handle_db_error(e)


@router.get("/assignments", status_code=status.HTTP_200_OK)
def get_assignments(
    user_id: Optional[int] = Query(None, alias="userId"),
    access: AccessControl = Depends(get_access_control),
    principal: Principal = Depends(get_current_principal),
):
    try:
        target_id, role_name = access.resolve_target_user(principal, user_id, settings.HIERARCHY_ASSIGN_PAGE)
        assignments = access.hierarchy.list_assignments(target_id)
        scope = access.scope_for(target_id, role_name)
        return ResponseWrapper.success(
            data={
                "userId": target_id,
                "assignments": [HierarchyAssignmentResponse.from_assignment(a).to_wire() for a in assignments],
                "scope": scope.to_dict(),
            },
            message=f"{len(assignments)} assignment(s)",
        )
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        raise handle_db_error(e)


@router.get("/schools", status_code=status.HTTP_200_OK)
def get_scoped_schools(
    user_id: Optional[int] = Query(None, alias="userId"),
    access: AccessControl = Depends(get_access_control),
    principal: Principal = Depends(get_current_principal),
):
    """Schools inside the user's effective scope; empty when nothing is assigned"""
    try:
        target_id, role_name = access.resolve_target_user(principal, user_id, settings.HIERARCHY_ASSIGN_PAGE)
        scope = access.scope_for(target_id, role_name)
        schools = access.hierarchy.list_schools(scope)
        return ResponseWrapper.success(
            data=[SchoolResponse.model_validate(s).to_wire() for s in schools],
            message=f"{len(schools)} school(s) in scope",
        )
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        raise handle_db_error(e)


@router.get("/classes", status_code=status.HTTP_200_OK)
def get_scoped_classes(
    user_id: Optional[int] = Query(None, alias="userId"),
    school_id: Optional[int] = Query(None, alias="schoolId"),
    access: AccessControl = Depends(get_access_control),
    principal: Principal = Depends(get_current_principal),
):
    """Classes in the user's scope; schoolId narrows that set and never widens it"""
    try:
        target_id, role_name = access.resolve_target_user(principal, user_id, settings.HIERARCHY_ASSIGN_PAGE)
        scope = access.scope_for(target_id, role_name)
        classes = access.hierarchy.list_classes(scope, school_id=school_id)
        return ResponseWrapper.success(
            data=[ClassResponse.model_validate(c).to_wire() for c in classes],
            message=f"{len(classes)} class(es) in scope",
        )
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        raise handle_db_error(e)
