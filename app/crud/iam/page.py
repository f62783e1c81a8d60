from typing import List, Optional
from sqlalchemy.orm import Session
from app.core.exceptions import Conflict
from app.database.session import transaction
from app.models.iam import Page
from app.schemas.iam import PageCreate
from app.crud.base import CRUDBase


class CRUDPage(CRUDBase[Page, PageCreate, PageCreate]):

    def get_by_path(self, db: Session, *, page_path: str) -> Optional[Page]:
        return db.query(Page).filter(Page.page_path == page_path).first()

    def get_all(self, db: Session) -> List[Page]:
        return db.query(Page).order_by(Page.page_id).all()

    def create(self, db: Session, *, obj_in: PageCreate) -> Page:
        if self.get_by_path(db, page_path=obj_in.page_path):
            raise Conflict(f"Page path '{obj_in.page_path}' already exists", details={"pagePath": obj_in.page_path})
        data = obj_in.model_dump()
        data["icon_name"] = data.get("icon_name") or "FileText"
        db_obj = Page(**data)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def remove(self, db: Session, *, db_obj: Page) -> Page:
        """Delete a page together with every role/action permission on it."""
        with transaction(db):
            db.delete(db_obj)
        return db_obj


page_crud = CRUDPage(Page)
