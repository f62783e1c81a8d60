"""
User Model - accounts, credentials and the single active session token
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.database.session import Base


class User(Base):
    """
    Back-office account.

    Session model: one token per user. Issuing a new token overwrites
    ``session_token``/``session_expires``, which invalidates the previous
    session (last-write-wins). Accounts are deactivated, never deleted.
    """
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), nullable=False, unique=True)
    email = Column(String(150), nullable=True, unique=True)
    full_name = Column(String(150), nullable=False)
    password = Column(String(255), nullable=False)
    role_id = Column(Integer, ForeignKey("roles.role_id"), nullable=False, index=True)
    school_id = Column(Integer, ForeignKey("schools.school_id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Session lifecycle
    session_token = Column(String(128), nullable=True, unique=True, index=True)
    session_expires = Column(DateTime, nullable=True)
    last_login = Column(DateTime, nullable=True)

    # Lockout bookkeeping
    failed_login_attempts = Column(Integer, default=0, nullable=False)
    account_locked_until = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    role = relationship("Role", back_populates="users")
    assignments = relationship(
        "HierarchyAssignment",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="HierarchyAssignment.user_id",
    )

    def __repr__(self):
        return f"<User(id={self.user_id}, username={self.username}, active={self.is_active})>"
