from fastapi import APIRouter, Body, Depends, HTTPException, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import AccessControlError
from app.core.logging_config import get_logger
from app.database.session import get_db
from app.models.user import User
from app.schemas.auth import LoginRequest, LoginResponse, SessionUserResponse
from app.services.access_control import Principal
from app.services.menu_composer import dashboard_path_for_role
from app.services.session_store import SessionStore
from app.utils.response_utils import ResponseWrapper, handle_access_error, handle_db_error, handle_http_error
from common_utils.auth.token_validation import get_current_principal

logger = get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


def user_to_schema(user: User) -> SessionUserResponse:
    role_name = user.role.name if user.role else ""
    return SessionUserResponse(
        user_id=user.user_id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
        role=role_name,
        school_id=user.school_id,
        dashboard_path=dashboard_path_for_role(role_name),
    )


@router.post("/login", status_code=status.HTTP_200_OK)
def login(
    response: Response,
    form_data: LoginRequest = Body(...),
    db: Session = Depends(get_db),
):
    """Username/email + password login; sets the session cookie"""
    logger.info(f"Login attempt for: {form_data.identifier}")
    try:
        store = SessionStore(db)
        user = store.login(form_data.identifier, form_data.password)

        response.set_cookie(
            key=settings.SESSION_COOKIE_NAME,
            value=user.session_token,
            httponly=True,
            secure=settings.SESSION_COOKIE_SECURE,
            samesite="lax",
            max_age=settings.SESSION_EXPIRY_HOURS * 3600,
            path="/",
        )

        logger.info(f"Login successful for user {user.user_id} ({user.username})")
        payload = LoginResponse(
            session_token=user.session_token,
            expires_at=user.session_expires.isoformat(),
            user=user_to_schema(user),
        )
        return ResponseWrapper.success(data=payload.to_wire(), message="Login successful")

    except AccessControlError as e:
        raise handle_access_error(e)
    except SQLAlchemyError as e:
        db.rollback()
        raise handle_db_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Login failed with unexpected error: {e}")
        raise handle_http_error(e)


@router.post("/logout", status_code=status.HTTP_200_OK)
def logout(
    response: Response,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    try:
        user = db.query(User).filter(User.user_id == principal.user_id).first()
        SessionStore(db).revoke(user)
        response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
        return ResponseWrapper.success(message="Logged out successfully")
    except SQLAlchemyError as e:
        db.rollback()
        raise handle_db_error(e)


@router.get("/me", status_code=status.HTTP_200_OK)
def get_current_user_profile(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.user_id == principal.user_id).first()
    data = principal.to_dict()
    data["user"] = user_to_schema(user).to_wire()
    return ResponseWrapper.success(data=data, message="Current session")
