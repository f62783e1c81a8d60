from typing import Any, Dict, Generic, List, Optional, TypeVar
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime
from zoneinfo import ZoneInfo

from app.config import settings

# Local time for response timestamps
LOCAL_TZ = ZoneInfo(settings.APP_TIMEZONE)

# Generic type for data payload
DataType = TypeVar('DataType')


class CamelModel(BaseModel):
    """
    Base for wire schemas: snake_case in Python, camelCase on the wire.
    Accepts either spelling on input.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class BaseResponse(BaseModel, Generic[DataType]):
    """
    Base response schema for all API endpoints
    """
    success: bool = Field(True, description="Indicates if the request was successful")
    message: str = Field("Success", description="Human readable message")
    data: Optional[DataType] = Field(None, description="Response data payload")
    warnings: Optional[List[str]] = Field(None, description="Non-fatal problems, e.g. AUDIT_WRITE_FAILED")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(LOCAL_TZ), description="Response timestamp")

    model_config = ConfigDict()


class ErrorResponse(BaseModel):
    """
    Error response schema for failed requests
    """
    success: bool = Field(False, description="Always false for error responses")
    message: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Specific error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(LOCAL_TZ), description="Error timestamp")

    model_config = ConfigDict()


class PaginationMeta(BaseModel):
    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number")
    per_page: int = Field(..., description="Items per page")
    total_pages: int = Field(..., description="Total number of pages")
    has_next: bool = Field(..., description="Whether there is a next page")
    has_prev: bool = Field(..., description="Whether there is a previous page")


def _now() -> str:
    return datetime.now(LOCAL_TZ).strftime("%Y-%m-%d %H:%M:%S")


# Utility functions for creating consistent responses
def create_success_response(
    data: Any = None,
    message: str = "Success",
    warnings: Optional[List[str]] = None,
) -> Dict[str, Any]:
    response = {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": _now(),
    }
    if warnings:
        response["warnings"] = list(warnings)
    return response


def create_error_response(message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {
        "success": False,
        "message": message,
        "error_code": error_code,
        "details": details,
        "timestamp": _now(),
    }


def create_paginated_response(
    items: List[Any],
    total: int,
    page: int,
    per_page: int,
    message: str = "Success"
) -> Dict[str, Any]:
    total_pages = (total + per_page - 1) // per_page

    return {
        "success": True,
        "message": message,
        "data": items,
        "meta": {
            "total": total,
            "page": page,
            "per_page": per_page,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1
        },
        "timestamp": _now(),
    }
