from dataclasses import dataclass
from typing import Optional, Dict, Any, List

from fastapi import Request
from sqlalchemy.orm import Session

from app.core.logging_config import get_logger
from app.crud.audit_log import audit_log
from app.models.audit_log import AuditActionEnum
from app.schemas.audit_log import AuditLogCreate

logger = get_logger(__name__)

AUDIT_WRITE_FAILED = "AUDIT_WRITE_FAILED"


@dataclass
class AuditOutcome:
    written: bool
    audit_id: Optional[int] = None
    error: Optional[str] = None

    @property
    def warnings(self) -> Optional[List[str]]:
        return None if self.written else [AUDIT_WRITE_FAILED]


def merge_warnings(outcomes: List[AuditOutcome]) -> Optional[List[str]]:
    """One AUDIT_WRITE_FAILED for the response if any write failed."""
    return [AUDIT_WRITE_FAILED] if any(not o.written for o in outcomes) else None


class AuditService:
    """
    Writes permission-affecting changes to permission_audit_log.

    Always called AFTER the primary change has committed. A failed audit
    write is rolled back and reported through AuditOutcome; it never undoes
    the primary change.
    """

    @staticmethod
    def record(
        db: Session,
        actor,
        action_type: AuditActionEnum,
        entity_type: str,
        summary: str,
        entity_id: Optional[Any] = None,
        role_id: Optional[int] = None,
        page_id: Optional[int] = None,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None,
        request: Optional[Request] = None,
    ) -> AuditOutcome:
        """
        Append one audit entry.

        Args:
            db: Database session (the primary change must already be committed)
            actor: Principal performing the change (user_id, role_name)
            action_type: One of AuditActionEnum
            entity_type: 'role', 'permission', 'hierarchy', 'menu' or 'page'
            summary: Human readable description
            before / after: Structured values, stored as audit_data
            request: FastAPI request object (to extract the client IP)
        """
        ip_address = None
        if request is not None and request.client:
            ip_address = request.client.host

        audit_data = None
        if before is not None or after is not None:
            audit_data = {"before": before, "after": after}

        try:
            entry = audit_log.create(
                db=db,
                audit_log_data=AuditLogCreate(
                    actor_user_id=actor.user_id,
                    actor_role=actor.role_name,
                    action_type=AuditActionEnum(action_type).value,
                    entity_type=entity_type,
                    entity_id=str(entity_id) if entity_id is not None else None,
                    role_id=role_id,
                    page_id=page_id,
                    summary=summary,
                    audit_data=audit_data,
                    ip_address=ip_address,
                ),
            )
        except Exception as e:
            db.rollback()
            logger.warning(
                f"AuditWriteFailed: action={action_type} actor={getattr(actor, 'user_id', None)} "
                f"summary='{summary}' error={e}"
            )
            return AuditOutcome(written=False, error=str(e))

        logger.info(f"Audit | {entry.action_type} | actor={entry.actor_user_id} | {summary}")
        return AuditOutcome(written=True, audit_id=entry.audit_id)

    @staticmethod
    def log_permission_changed(db: Session, actor, change: dict, request: Optional[Request] = None) -> AuditOutcome:
        role, page = change["role"], change["page"]
        state = "allowed" if change["allowed"] else "denied"
        return AuditService.record(
            db, actor,
            action_type=AuditActionEnum.PERMISSION_CHANGED,
            entity_type="permission",
            entity_id=f"{role.role_id}:{page.page_id}",
            role_id=role.role_id,
            page_id=page.page_id,
            summary=f"{role.name} {state} access to {page.page_path}",
            before={"isAllowed": change["previous"]},
            after={"isAllowed": change["allowed"]},
            request=request,
        )

    @staticmethod
    def log_action_permission_changed(db: Session, actor, change: dict, request: Optional[Request] = None) -> AuditOutcome:
        role, page = change["role"], change["page"]
        state = "allowed" if change["allowed"] else "denied"
        return AuditService.record(
            db, actor,
            action_type=AuditActionEnum.ACTION_PERMISSION_CHANGED,
            entity_type="permission",
            entity_id=f"{role.role_id}:{page.page_id}:{change['action']}",
            role_id=role.role_id,
            page_id=page.page_id,
            summary=f"{role.name} {state} '{change['action']}' on {page.page_path}",
            before={"isAllowed": change["previous"]},
            after={"isAllowed": change["allowed"], "action": change["action"]},
            request=request,
        )

    @staticmethod
    def log_hierarchy_changed(
        db: Session,
        actor,
        user_id: int,
        level: str,
        node_id: int,
        assigned: bool,
        request: Optional[Request] = None,
    ) -> AuditOutcome:
        verb = "assigned to" if assigned else "removed from"
        node = {"userId": user_id, "assignmentType": level, "assignmentId": node_id}
        return AuditService.record(
            db, actor,
            action_type=AuditActionEnum.HIERARCHY_ASSIGNMENT_CHANGED,
            entity_type="hierarchy",
            entity_id=f"{user_id}:{level}:{node_id}",
            summary=f"User {user_id} {verb} {level} {node_id}",
            before=None if assigned else node,
            after=node if assigned else None,
            request=request,
        )

    @staticmethod
    def log_menu_reordered(db: Session, actor, changes: List[dict], request: Optional[Request] = None) -> AuditOutcome:
        return AuditService.record(
            db, actor,
            action_type=AuditActionEnum.MENU_ORDER_CHANGED,
            entity_type="menu",
            summary=f"{len(changes)} pages reordered",
            before={str(c["id"]): c["before"] for c in changes},
            after={str(c["id"]): c["after"] for c in changes},
            request=request,
        )
