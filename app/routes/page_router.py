from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import AccessControlError, NotFound
from app.core.logging_config import get_logger
from app.crud.iam import page_crud
from app.database.session import get_db
from app.models.audit_log import AuditActionEnum
from app.schemas.iam import PageCreate, PageResponse
from app.services.access_control import Principal
from app.services.audit_service import AuditService
from app.utils.response_utils import ResponseWrapper, handle_access_error, handle_db_error
from common_utils.auth.permission_checker import require_admin

logger = get_logger(__name__)

router = APIRouter(
    prefix="/pages",
    tags=["Pages"]
)


@router.get("", status_code=status.HTTP_200_OK)
def get_pages(
    db: Session = Depends(get_db),
    _: Principal = Depends(require_admin),
):
    try:
        pages = page_crud.get_all(db)
        return ResponseWrapper.success(
            data=[PageResponse.model_validate(p).to_wire() for p in pages],
            message="Pages fetched",
        )
    except SQLAlchemyError as e:
        raise handle_db_error(e)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_page(
    page: PageCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    try:
        created = page_crud.create(db=db, obj_in=page)
        logger.info(f"Page created: {created.page_id} ({created.page_path})")

        outcome = AuditService.record(
            db, principal,
            action_type=AuditActionEnum.PAGE_CREATED,
            entity_type="page",
            entity_id=created.page_id,
            page_id=created.page_id,
            summary=f"Page '{created.page_name}' ({created.page_path}) created",
            after={"pageName": created.page_name, "pagePath": created.page_path},
            request=request,
        )
        return ResponseWrapper.created(
            data=PageResponse.model_validate(created).to_wire(),
            message="Page created successfully",
            warnings=outcome.warnings,
        )
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        raise handle_db_error(e)


@router.delete("/{page_id}", status_code=status.HTTP_200_OK)
def delete_page(
    page_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    try:
        page = page_crud.get(db, id=page_id)
        if not page:
            raise NotFound("Page not found", details={"pageId": page_id})
        before = {"pageName": page.page_name, "pagePath": page.page_path}
        page_crud.remove(db=db, db_obj=page)

        outcome = AuditService.record(
            db, principal,
            action_type=AuditActionEnum.PAGE_DELETED,
            entity_type="page",
            entity_id=page_id,
            page_id=page_id,
            summary=f"Page '{before['pageName']}' ({before['pagePath']}) deleted",
            before=before,
            request=request,
        )
        return ResponseWrapper.deleted(message="Page deleted successfully", warnings=outcome.warnings)
    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        raise handle_db_error(e)
