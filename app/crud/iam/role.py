from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import func
from app.core.exceptions import Conflict
from app.database.session import transaction
from app.models.iam import Role
from app.models.user import User
from app.schemas.iam import RoleCreate, RoleUpdate
from app.crud.base import CRUDBase


class CRUDRole(CRUDBase[Role, RoleCreate, RoleUpdate]):

    def get_by_name(self, db: Session, *, name: str, exclude_id: Optional[int] = None) -> Optional[Role]:
        """Case-insensitive lookup"""
        query = db.query(Role).filter(func.lower(Role.name) == name.strip().lower())
        if exclude_id is not None:
            query = query.filter(Role.role_id != exclude_id)
        return query.first()

    def get_all(self, db: Session) -> List[Role]:
        return db.query(Role).order_by(Role.name).all()

    def user_count(self, db: Session, *, role_id: int) -> int:
        return db.query(User).filter(User.role_id == role_id).count()

    def create(self, db: Session, *, obj_in: RoleCreate) -> Role:
        name = obj_in.name.strip()
        if self.get_by_name(db, name=name):
            raise Conflict(f"Role '{name}' already exists", details={"name": name})
        return super().create(db, obj_in=RoleCreate(name=name, description=obj_in.description))

    def update(self, db: Session, *, db_obj: Role, obj_in: RoleUpdate) -> Role:
        update_data = obj_in.model_dump(exclude_unset=True)
        if update_data.get("name") is not None:
            update_data["name"] = update_data["name"].strip()
            if self.get_by_name(db, name=update_data["name"], exclude_id=db_obj.role_id):
                raise Conflict(f"Role '{update_data['name']}' already exists", details={"name": update_data["name"]})
        return super().update(db, db_obj=db_obj, obj_in=update_data)

    def remove(self, db: Session, *, db_obj: Role) -> Role:
        """Delete a role and its permission rows; refused while users hold it."""
        users = self.user_count(db, role_id=db_obj.role_id)
        if users:
            raise Conflict(
                f"Role '{db_obj.name}' is assigned to {users} user(s)",
                details={"roleId": db_obj.role_id, "userCount": users},
            )
        with transaction(db):
            db.delete(db_obj)
        return db_obj


role_crud = CRUDRole(Role)
