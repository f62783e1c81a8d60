"""
Organisational hierarchy models

Tree: Zone > Province > District > School > Class. Every node below a zone
points at exactly one parent, so a node's ancestor chain is unique.
"""
from enum import Enum as PyEnum

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, Index,
    Enum as SQLEnum, func
)
from sqlalchemy.orm import relationship
from app.database.session import Base


class HierarchyLevelEnum(str, PyEnum):
    """Levels from the root down"""
    ZONE = "zone"
    PROVINCE = "province"
    DISTRICT = "district"
    SCHOOL = "school"
    CLASS = "class"


class Zone(Base):
    __tablename__ = "zones"

    zone_id = Column(Integer, primary_key=True, index=True)
    zone_name = Column(String(150), nullable=False)

    provinces = relationship("Province", back_populates="zone")


class Province(Base):
    __tablename__ = "provinces"

    province_id = Column(Integer, primary_key=True, index=True)
    zone_id = Column(Integer, ForeignKey("zones.zone_id"), nullable=False, index=True)
    province_name = Column(String(150), nullable=False)

    zone = relationship("Zone", back_populates="provinces")
    districts = relationship("District", back_populates="province")


class District(Base):
    __tablename__ = "districts"

    district_id = Column(Integer, primary_key=True, index=True)
    province_id = Column(Integer, ForeignKey("provinces.province_id"), nullable=False, index=True)
    district_name = Column(String(150), nullable=False)

    province = relationship("Province", back_populates="districts")
    schools = relationship("School", back_populates="district")


class School(Base):
    __tablename__ = "schools"

    school_id = Column(Integer, primary_key=True, index=True)
    district_id = Column(Integer, ForeignKey("districts.district_id"), nullable=False, index=True)
    school_name = Column(String(200), nullable=False)
    school_code = Column(String(50), nullable=True, unique=True)

    district = relationship("District", back_populates="schools")
    classes = relationship("SchoolClass", back_populates="school")


class SchoolClass(Base):
    __tablename__ = "classes"

    class_id = Column(Integer, primary_key=True, index=True)
    school_id = Column(Integer, ForeignKey("schools.school_id"), nullable=False, index=True)
    class_name = Column(String(100), nullable=False)
    grade_level = Column(Integer, nullable=True)

    school = relationship("School", back_populates="classes")


class HierarchyAssignment(Base):
    """
    Grants a user the subtree rooted at (level, node_id).
    A user's effective scope is the union of all their assignments.
    """
    __tablename__ = "hierarchy_assignments"

    assignment_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    level = Column(
        SQLEnum(HierarchyLevelEnum, name="hierarchy_level_enum", native_enum=False,
                values_callable=lambda enum: [e.value for e in enum]),
        nullable=False,
    )
    node_id = Column(Integer, nullable=False)
    assigned_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    assigned_at = Column(DateTime, default=func.now(), nullable=False)

    user = relationship("User", back_populates="assignments", foreign_keys=[user_id])

    __table_args__ = (
        UniqueConstraint("user_id", "level", "node_id", name="uq_user_hierarchy_assignment"),
        Index("idx_assignment_level_node", "level", "node_id"),
    )

    def __repr__(self):
        return f"<HierarchyAssignment(user={self.user_id}, {self.level.value}:{self.node_id})>"
