from sqlalchemy import Column, Integer, String, DateTime, Index, func
from sqlalchemy.orm import relationship
from app.database.session import Base

class Role(Base):
    __tablename__ = "roles"

    role_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(255))

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    users = relationship("User", back_populates="role")
    page_permissions = relationship(
        "RolePagePermission", back_populates="role", cascade="all, delete-orphan"
    )
    action_permissions = relationship(
        "PageActionPermission", back_populates="role", cascade="all, delete-orphan"
    )

    # Role names are compared case-insensitively everywhere
    __table_args__ = (
        Index("uq_roles_name_lower", func.lower(name), unique=True),
    )

    def __repr__(self):
        return f"<Role(id={self.role_id}, name={self.name})>"
