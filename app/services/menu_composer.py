"""
Menu Composer - navigation tree for a principal
"""
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, ValidationError
from app.core.logging_config import get_logger
from app.database.session import transaction
from app.models.iam import Page
from app.services.permission_resolver import PermissionResolver, RoleMatrix, normalize_role

logger = get_logger(__name__)

GENERIC_DASHBOARD_PATH = "/dashboard"

ROLE_DASHBOARDS: Dict[str, str] = {
    "admin": "/admin",
    "director": "/director",
    "teacher": "/teacher",
    "coordinator": "/coordinator",
    "partner": "/partner",
    "collector": "/collector",
    "intern": "/intern",
    "training organizer": "/training-organizer",
    "participant": "/participant/dashboard",
}


def dashboard_path_for_role(role_name: Optional[str]) -> str:
    return ROLE_DASHBOARDS.get(normalize_role(role_name), GENERIC_DASHBOARD_PATH)


def menu_sort_key(page: Page):
    # Explicit orders first; unordered pages keep insertion (id) order after them
    return (
        page.sort_order is None,
        page.sort_order if page.sort_order is not None else page.page_id,
        page.page_name or "",
    )


def page_entry(page: Page, role_name: str) -> dict:
    path = page.page_path
    if path == GENERIC_DASHBOARD_PATH:
        path = dashboard_path_for_role(role_name)
    return {
        "id": page.page_id,
        "name": page.page_name,
        "path": path,
        "icon": page.icon_name,
        "sortOrder": page.sort_order,
        "category": page.menu_category,
    }


class MenuComposer:
    def __init__(self, db: Session, resolver: Optional[PermissionResolver] = None):
        self.db = db
        self.resolver = resolver or PermissionResolver(db)

    def visible_pages(self, role_name: str, matrix: Optional[RoleMatrix] = None) -> List[Page]:
        """Pages the role may open, in menu order. The authorisation check uses the stored path."""
        matrix = matrix or self.resolver.load(role_name)
        pages = self.db.query(Page).all()
        return sorted(
            (page for page in pages if matrix.allows(page.page_path)),
            key=menu_sort_key,
        )

    def flat(self, role_name: str) -> List[dict]:
        return [page_entry(page, role_name) for page in self.visible_pages(role_name)]

    def compose(self, role_name: str) -> List[dict]:
        """
        Ordered menu tree.

        Uncategorised pages are top-level items; categorised pages are
        grouped under one category node placed where its first page falls.
        """
        tree: List[dict] = []
        categories: Dict[str, dict] = {}
        for page in self.visible_pages(role_name):
            entry = page_entry(page, role_name)
            category = page.menu_category
            if not category:
                tree.append(entry)
                continue
            node = categories.get(category)
            if node is None:
                node = {"category": category, "children": []}
                categories[category] = node
                tree.append(node)
            node["children"].append(entry)
        return tree

    def reorder(self, page_orders: List[dict]) -> List[dict]:
        """
        Apply ``[{id, order}]`` in one transaction.

        Any unknown page id aborts the whole batch, leaving prior orders intact.
        Returns the before/after pairs for auditing.
        """
        if not page_orders:
            raise ValidationError("pageOrders must contain at least one entry")

        seen = set()
        for item in page_orders:
            if item["id"] in seen:
                raise ValidationError(f"Page {item['id']} listed more than once")
            seen.add(item["id"])

        changes = []
        with transaction(self.db):
            for item in page_orders:
                page = self.db.query(Page).filter(Page.page_id == item["id"]).first()
                if page is None:
                    raise NotFound(f"Page {item['id']} not found", details={"pageId": item["id"]})
                changes.append({"id": page.page_id, "before": page.sort_order, "after": item["order"]})
                page.sort_order = item["order"]

        logger.info(f"[menu_composer] {len(changes)} pages reordered")
        return changes
