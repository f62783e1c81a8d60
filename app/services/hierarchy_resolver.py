"""
Hierarchy Scope Resolver

A user's effective scope is the union of the subtrees rooted at each of
their assignments (zone > province > district > school > class). Admins are
unrestricted. A non-admin with no assignments sees nothing.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from sqlalchemy import false, true
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, ValidationError
from app.core.logging_config import get_logger
from app.database.session import guarded_query
from app.models.hierarchy import (
    District, HierarchyAssignment, HierarchyLevelEnum, Province, School, SchoolClass, Zone,
)
from app.models.user import User
from app.services.permission_resolver import is_admin_role

logger = get_logger(__name__)

LEVEL_MODELS = {
    HierarchyLevelEnum.ZONE: (Zone, Zone.zone_id),
    HierarchyLevelEnum.PROVINCE: (Province, Province.province_id),
    HierarchyLevelEnum.DISTRICT: (District, District.district_id),
    HierarchyLevelEnum.SCHOOL: (School, School.school_id),
    HierarchyLevelEnum.CLASS: (SchoolClass, SchoolClass.class_id),
}


def parse_level(value) -> HierarchyLevelEnum:
    if isinstance(value, HierarchyLevelEnum):
        return value
    try:
        return HierarchyLevelEnum((value or "").strip().lower())
    except ValueError:
        raise ValidationError(
            f"Invalid assignment type '{value}'",
            details={"allowed": [level.value for level in HierarchyLevelEnum]},
        )


@dataclass
class EffectiveScope:
    unrestricted: bool = False
    zones: Set[int] = field(default_factory=set)
    provinces: Set[int] = field(default_factory=set)
    districts: Set[int] = field(default_factory=set)
    schools: Set[int] = field(default_factory=set)
    classes: Set[int] = field(default_factory=set)

    def ids(self, level: HierarchyLevelEnum) -> Set[int]:
        return {
            HierarchyLevelEnum.ZONE: self.zones,
            HierarchyLevelEnum.PROVINCE: self.provinces,
            HierarchyLevelEnum.DISTRICT: self.districts,
            HierarchyLevelEnum.SCHOOL: self.schools,
            HierarchyLevelEnum.CLASS: self.classes,
        }[level]

    def in_scope(self, level, node_id: int) -> bool:
        if self.unrestricted:
            return True
        return node_id in self.ids(parse_level(level))

    @property
    def is_empty(self) -> bool:
        return not self.unrestricted and not any(
            (self.zones, self.provinces, self.districts, self.schools, self.classes)
        )

    def school_filter(self, column=School.school_id):
        """SQL predicate restricting ``column`` to visible schools."""
        if self.unrestricted:
            return true()
        if not self.schools:
            return false()
        return column.in_(sorted(self.schools))

    def class_filter(self, column=SchoolClass.class_id):
        if self.unrestricted:
            return true()
        if not self.classes:
            return false()
        return column.in_(sorted(self.classes))

    def to_dict(self) -> dict:
        return {
            "unrestricted": self.unrestricted,
            "zones": sorted(self.zones),
            "provinces": sorted(self.provinces),
            "districts": sorted(self.districts),
            "schools": sorted(self.schools),
            "classes": sorted(self.classes),
        }


class HierarchyResolver:
    def __init__(self, db: Session):
        self.db = db

    def _ids(self, column, parent_column, parent_ids: Set[int]) -> Set[int]:
        if not parent_ids:
            return set()
        return {row[0] for row in self.db.query(column).filter(parent_column.in_(parent_ids)).all()}

    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.user_id == user_id).first()
        if user is None:
            raise NotFound(f"User {user_id} not found", details={"userId": user_id})
        return user

    def list_assignments(self, user_id: int) -> List[HierarchyAssignment]:
        return guarded_query(
            self.db,
            HierarchyAssignment.__tablename__,
            lambda: (
                self.db.query(HierarchyAssignment)
                .filter(HierarchyAssignment.user_id == user_id)
                .order_by(HierarchyAssignment.assignment_id)
                .all()
            ),
            [],
        )

    def effective_scope(self, user_id: int, role_name: Optional[str] = None) -> EffectiveScope:
        if role_name is None:
            user = self.get_user(user_id)
            role_name = user.role.name if user.role else None
        if is_admin_role(role_name):
            return EffectiveScope(unrestricted=True)

        assigned = {level: set() for level in HierarchyLevelEnum}
        for assignment in self.list_assignments(user_id):
            assigned[assignment.level].add(assignment.node_id)

        scope = EffectiveScope()
        scope.zones = assigned[HierarchyLevelEnum.ZONE]
        scope.provinces = assigned[HierarchyLevelEnum.PROVINCE] | self._ids(
            Province.province_id, Province.zone_id, scope.zones)
        scope.districts = assigned[HierarchyLevelEnum.DISTRICT] | self._ids(
            District.district_id, District.province_id, scope.provinces)
        scope.schools = assigned[HierarchyLevelEnum.SCHOOL] | self._ids(
            School.school_id, School.district_id, scope.districts)
        scope.classes = assigned[HierarchyLevelEnum.CLASS] | self._ids(
            SchoolClass.class_id, SchoolClass.school_id, scope.schools)

        if scope.is_empty:
            logger.info(f"[hierarchy_resolver] User {user_id} has no assignments, scope is empty")
        return scope

    def list_schools(self, scope: EffectiveScope) -> List[School]:
        return self.db.query(School).filter(scope.school_filter()).order_by(School.school_name).all()

    def list_classes(self, scope: EffectiveScope, school_id: Optional[int] = None) -> List[SchoolClass]:
        query = self.db.query(SchoolClass).filter(scope.class_filter())
        if school_id is not None:
            query = query.filter(SchoolClass.school_id == school_id)
        return query.order_by(SchoolClass.class_name).all()

    def _require_node(self, level: HierarchyLevelEnum, node_id: int):
        model, pk = LEVEL_MODELS[level]
        node = self.db.query(model).filter(pk == node_id).first()
        if node is None:
            raise NotFound(
                f"{level.value.capitalize()} {node_id} not found",
                details={"assignmentType": level.value, "assignmentId": node_id},
            )
        return node

    def _find(self, user_id: int, level: HierarchyLevelEnum, node_id: int) -> Optional[HierarchyAssignment]:
        return (
            self.db.query(HierarchyAssignment)
            .filter(
                HierarchyAssignment.user_id == user_id,
                HierarchyAssignment.level == level,
                HierarchyAssignment.node_id == node_id,
            )
            .first()
        )

    def assign(self, user_id: int, level, node_id: int, assigned_by: int) -> Tuple[HierarchyAssignment, bool]:
        """
        Grant ``user_id`` the subtree at (level, node_id).

        Returns (assignment, created); an existing identical assignment is
        returned untouched with created=False.
        """
        level = parse_level(level)
        self.get_user(user_id)
        self._require_node(level, node_id)

        existing = self._find(user_id, level, node_id)
        if existing is not None:
            logger.info(f"[hierarchy_resolver] {existing!r} already exists, nothing to do")
            return existing, False

        assignment = HierarchyAssignment(
            user_id=user_id, level=level, node_id=node_id, assigned_by=assigned_by
        )
        self.db.add(assignment)
        try:
            self.db.commit()
        except IntegrityError:
            # Concurrent identical request won the unique constraint
            self.db.rollback()
            existing = self._find(user_id, level, node_id)
            if existing is None:
                raise
            return existing, False
        self.db.refresh(assignment)
        logger.info(f"[hierarchy_resolver] Created {assignment!r} by user {assigned_by}")
        return assignment, True

    def unassign(self, user_id: int, level, node_id: int) -> dict:
        level = parse_level(level)
        assignment = self._find(user_id, level, node_id)
        if assignment is None:
            raise NotFound(
                "Assignment not found",
                details={"userId": user_id, "assignmentType": level.value, "assignmentId": node_id},
            )
        removed = {
            "id": assignment.assignment_id,
            "userId": user_id,
            "assignmentType": level.value,
            "assignmentId": node_id,
        }
        self.db.delete(assignment)
        self.db.commit()
        logger.info(f"[hierarchy_resolver] Removed {level.value}:{node_id} from user {user_id}")
        return removed
