from pydantic import Field
from typing import List

from app.schemas.base import CamelModel


class PageOrderItem(CamelModel):
    id: int
    order: int = Field(..., ge=0)


class MenuOrderUpdate(CamelModel):
    page_orders: List[PageOrderItem] = Field(..., min_length=1)
