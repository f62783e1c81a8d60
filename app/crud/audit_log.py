from sqlalchemy.orm import Session
from sqlalchemy import and_
from typing import Optional, List
from app.database.session import guarded_query
from app.models.audit_log import AuditLog
from app.schemas.audit_log import AuditLogCreate, AuditLogFilter
from app.core.logging_config import get_logger

logger = get_logger(__name__)


class CRUDAuditLog:
    """Append-only: there is deliberately no update or remove."""

    def create(self, db: Session, *, audit_log_data: AuditLogCreate) -> AuditLog:
        db_audit_log = AuditLog(**audit_log_data.model_dump())
        db.add(db_audit_log)
        db.commit()
        db.refresh(db_audit_log)
        return db_audit_log

    def get_by_id(self, db: Session, *, audit_id: int) -> Optional[AuditLog]:
        return db.query(AuditLog).filter(AuditLog.audit_id == audit_id).first()

    def get_filtered(
        self,
        db: Session,
        *,
        filters: AuditLogFilter
    ) -> tuple[List[AuditLog], int]:
        """
        Get audit logs with filters and pagination, newest first.
        Returns tuple of (records, total_count); an absent audit table reads
        as an empty trail.
        """
        return guarded_query(db, AuditLog.__tablename__, lambda: self._filtered(db, filters), ([], 0))

    def _filtered(self, db: Session, filters: AuditLogFilter) -> tuple[List[AuditLog], int]:
        query = db.query(AuditLog)

        conditions = []
        if filters.role_id is not None:
            conditions.append(AuditLog.role_id == filters.role_id)
        if filters.page_id is not None:
            conditions.append(AuditLog.page_id == filters.page_id)
        if filters.action_type:
            conditions.append(AuditLog.action_type == filters.action_type)
        if filters.actor_user_id is not None:
            conditions.append(AuditLog.actor_user_id == filters.actor_user_id)

        if conditions:
            query = query.filter(and_(*conditions))

        total_count = query.count()

        skip = (filters.page - 1) * filters.page_size
        records = (
            query
            .order_by(AuditLog.created_at.desc(), AuditLog.audit_id.desc())
            .offset(skip)
            .limit(filters.page_size)
            .all()
        )

        return records, total_count

    def count(self, db: Session, *, action_type: Optional[str] = None) -> int:
        query = db.query(AuditLog)
        if action_type:
            query = query.filter(AuditLog.action_type == action_type)
        return query.count()


audit_log = CRUDAuditLog()
