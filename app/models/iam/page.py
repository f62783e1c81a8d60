from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship
from app.database.session import Base


class Page(Base):
    """
    A path-addressed application surface.

    ``page_path`` may be a parameterised pattern such as
    ``/users/{id}/activities``; bracketed segments match any single segment.
    ``sort_order`` is set by administrators through the menu reorder endpoint
    and stays NULL until then.
    """
    __tablename__ = "pages"

    page_id = Column(Integer, primary_key=True, index=True)
    page_name = Column(String(150), nullable=False)
    page_path = Column(String(255), nullable=False, unique=True, index=True)
    icon_name = Column(String(50), default="FileText")
    sort_order = Column(Integer, nullable=True)
    menu_category = Column(String(100), nullable=True)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    role_permissions = relationship(
        "RolePagePermission", back_populates="page", cascade="all, delete-orphan"
    )
    action_permissions = relationship(
        "PageActionPermission", back_populates="page", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Page(id={self.page_id}, path={self.page_path})>"
