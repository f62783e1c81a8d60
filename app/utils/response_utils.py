import re
from typing import Any, Dict, List, Optional
from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from app.core.exceptions import AccessControlError
from app.schemas.base import (
    create_success_response,
    create_error_response,
    create_paginated_response
)
from app.core.logging_config import get_logger

logger = get_logger(__name__)


class ResponseWrapper:
    """Utility class for wrapping responses in standard format"""

    @staticmethod
    def success(data: Any = None, message: str = "Success", warnings: Optional[List[str]] = None) -> Dict[str, Any]:
        return create_success_response(data, message, warnings)

    @staticmethod
    def error(
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Wrap error response and make it JSON-safe"""
        raw = create_error_response(message, error_code, details)
        return jsonable_encoder(raw)

    @staticmethod
    def paginated(
        items: List[Any],
        total: int,
        page: int = 1,
        per_page: int = 10,
        message: str = "Success"
    ) -> Dict[str, Any]:
        return create_paginated_response(items, total, page, per_page, message)

    @staticmethod
    def created(data: Any = None, message: str = "Resource created successfully",
                warnings: Optional[List[str]] = None) -> Dict[str, Any]:
        return create_success_response(data, message, warnings)

    @staticmethod
    def updated(data: Any = None, message: str = "Resource updated successfully",
                warnings: Optional[List[str]] = None) -> Dict[str, Any]:
        return create_success_response(data, message, warnings)

    @staticmethod
    def deleted(message: str = "Resource deleted successfully", warnings: Optional[List[str]] = None) -> Dict[str, Any]:
        return create_success_response(None, message, warnings)


def _conflicting_fields(error_msg: str) -> Dict[str, str]:
    match = re.search(r"Key \((.*?)\)=\((.*?)\)", error_msg)
    if not match:
        return {}
    columns = match.group(1).split(", ")
    values = match.group(2).split(", ")
    return {col: val for col, val in zip(columns, values)}


def handle_db_error(error: Exception) -> HTTPException:
    """Convert database errors to HTTP exceptions; driver text is logged, never returned"""
    error_msg = str(error).strip().replace("\n", " ")
    lowered = error_msg.lower()

    if "duplicate key" in lowered or "unique constraint" in lowered:
        logger.warning(f"Duplicate resource: {error_msg}")
        detail = ResponseWrapper.error(
            message="Resource already exists with the same values",
            error_code="DUPLICATE_RESOURCE",
            details={"conflicting_fields": _conflicting_fields(error_msg)},
        )
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    elif "foreign key" in lowered:
        logger.warning(f"Foreign key violation: {error_msg}")
        detail = ResponseWrapper.error(
            message="Referenced resource not found",
            error_code="FOREIGN_KEY_VIOLATION",
            details={"conflicting_fields": _conflicting_fields(error_msg)},
        )
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

    logger.error(f"Database operation failed: {error_msg}")
    detail = ResponseWrapper.error(
        message="Internal server error",
        error_code="STORAGE_UNAVAILABLE",
    )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


def handle_access_error(error: AccessControlError) -> HTTPException:
    """Translate a domain error kind into the standard error envelope"""
    if error.status_code >= 500:
        # Cause was logged where it was raised; the client gets the generic text
        detail = ResponseWrapper.error(message=error.default_message, error_code=error.error_code)
    else:
        detail = ResponseWrapper.error(
            message=error.message,
            error_code=error.error_code,
            details=error.details,
        )
    return HTTPException(status_code=error.status_code, detail=detail)


def handle_http_error(error: Exception) -> HTTPException:
    """Convert HTTP and generic exceptions into structured ResponseWrapper format"""
    if isinstance(error, HTTPException):
        detail = getattr(error, "detail", str(error))
        if isinstance(detail, dict) and detail.get("success") is not None:
            return error

        detail = ResponseWrapper.error(
            message=str(detail),
            error_code="HTTP_ERROR",
        )
        return HTTPException(status_code=error.status_code, detail=detail)

    logger.exception(f"Unexpected error: {error}")
    detail = ResponseWrapper.error(
        message="Unexpected server error",
        error_code="INTERNAL_SERVER_ERROR",
    )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


def validate_pagination_params(page: int, limit: int, default: int, maximum: int) -> tuple[int, int]:
    """Clamp page/limit into range"""
    if page < 1:
        page = 1
    if limit <= 0:
        limit = default
    if limit > maximum:
        limit = maximum
    return page, limit
