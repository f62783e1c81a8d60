from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from sqlalchemy.schema import UniqueConstraint
from app.database.session import Base


class PageActionEnum(str, PyEnum):
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"
    BULK_UPDATE = "bulk_update"


class RolePagePermission(Base):
    """(role, page) -> allowed. A missing row means denied."""
    __tablename__ = "role_page_permissions"

    id = Column(Integer, primary_key=True, index=True)
    role_id = Column(Integer, ForeignKey("roles.role_id", ondelete="CASCADE"), nullable=False, index=True)
    page_id = Column(Integer, ForeignKey("pages.page_id", ondelete="CASCADE"), nullable=False, index=True)
    is_allowed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    role = relationship("Role", back_populates="page_permissions")
    page = relationship("Page", back_populates="role_permissions")

    __table_args__ = (UniqueConstraint('role_id', 'page_id', name='uq_role_page_permission'),)


class PageActionPermission(Base):
    """(role, page, action) -> allowed. Overrides the page-level answer when present."""
    __tablename__ = "page_action_permissions"

    id = Column(Integer, primary_key=True, index=True)
    role_id = Column(Integer, ForeignKey("roles.role_id", ondelete="CASCADE"), nullable=False, index=True)
    page_id = Column(Integer, ForeignKey("pages.page_id", ondelete="CASCADE"), nullable=False, index=True)
    action_name = Column(String(50), nullable=False)
    is_allowed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    role = relationship("Role", back_populates="action_permissions")
    page = relationship("Page", back_populates="action_permissions")

    __table_args__ = (
        UniqueConstraint('role_id', 'page_id', 'action_name', name='uq_page_action_permission'),
    )
