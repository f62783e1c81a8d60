from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, func, Index, event
from app.database.session import Base


class AuditActionEnum(str, PyEnum):
    ROLE_CREATED = "role_created"
    ROLE_RENAMED = "role_renamed"
    ROLE_DELETED = "role_deleted"
    PERMISSION_CHANGED = "permission_changed"
    ACTION_PERMISSION_CHANGED = "action_permission_changed"
    HIERARCHY_ASSIGNMENT_CHANGED = "hierarchy_assignment_changed"
    MENU_ORDER_CHANGED = "menu_order_changed"
    PAGE_CREATED = "page_created"
    PAGE_DELETED = "page_deleted"


class ImmutableAuditEntry(Exception):
    """Raised when something tries to modify or remove an existing audit row."""


class AuditLog(Base):
    __tablename__ = "permission_audit_log"

    audit_id = Column(Integer, primary_key=True, index=True)
    actor_user_id = Column(Integer, nullable=False, index=True)
    actor_role = Column(String(100), nullable=False)
    action_type = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)  # 'role', 'permission', 'hierarchy', 'menu', 'page'
    entity_id = Column(String(50), nullable=True)
    role_id = Column(Integer, nullable=True, index=True)
    page_id = Column(Integer, nullable=True, index=True)
    summary = Column(Text, nullable=False)
    audit_data = Column(JSON, nullable=True)  # {"before": ..., "after": ...}
    ip_address = Column(String(45), nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False, index=True)

    __table_args__ = (
        Index('idx_audit_role_page', 'role_id', 'page_id'),
        Index('idx_audit_action_created', 'action_type', 'created_at'),
        {"extend_existing": True}
    )


@event.listens_for(AuditLog, "before_update")
def _reject_audit_update(mapper, connection, target):
    raise ImmutableAuditEntry(f"Audit entry {target.audit_id} is append-only")


@event.listens_for(AuditLog, "before_delete")
def _reject_audit_delete(mapper, connection, target):
    raise ImmutableAuditEntry(f"Audit entry {target.audit_id} is append-only")
