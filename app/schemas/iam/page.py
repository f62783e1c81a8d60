from pydantic import Field
from typing import Optional
from datetime import datetime

from app.schemas.base import CamelModel


class PageCreate(CamelModel):
    page_name: str = Field(..., min_length=1, max_length=150)
    page_path: str = Field(..., min_length=1, max_length=255, pattern=r"^/")
    icon_name: Optional[str] = Field("FileText", max_length=50)
    menu_category: Optional[str] = Field(None, max_length=100)
    sort_order: Optional[int] = None


class PageResponse(CamelModel):
    page_id: int
    page_name: str
    page_path: str
    icon_name: Optional[str] = None
    sort_order: Optional[int] = None
    menu_category: Optional[str] = None
    created_at: datetime
