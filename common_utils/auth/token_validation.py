from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import AccessControlError
from app.core.logging_config import get_logger
from app.database.session import get_db
from app.services.access_control import AccessControl, Principal
from app.utils.response_utils import handle_access_error

logger = get_logger(__name__)


def extract_session_token(request: Request) -> Optional[str]:
    """
    Token sources, first match wins:
    session cookie, ``Authorization: Bearer``, then the session header.
    """
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token

    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        token = auth_header[7:].strip()
        if token:
            return token

    return request.headers.get(settings.SESSION_HEADER_NAME) or None


def get_access_control(db: Session = Depends(get_db)) -> AccessControl:
    return AccessControl(db)


def get_current_principal(
    request: Request,
    access: AccessControl = Depends(get_access_control),
) -> Principal:
    try:
        principal = access.authenticate(extract_session_token(request))
    except AccessControlError as e:
        logger.info(f"Session validation failed on {request.url.path}: {e.error_code}")
        raise handle_access_error(e)

    request.state.principal = principal
    return principal


def get_principal_or_participant(
    request: Request,
    access: AccessControl = Depends(get_access_control),
) -> Principal:
    """Session principal if a token is present, otherwise the participant tier."""
    try:
        token = extract_session_token(request)
        if token:
            principal = access.authenticate(token)
        else:
            principal = access.authenticate_participant(
                request.headers.get(settings.PARTICIPANT_HEADER_NAME)
            )
    except AccessControlError as e:
        raise handle_access_error(e)

    request.state.principal = principal
    return principal
