"""
Access Control Facade

Single entry point for request authorisation:
session validation -> permission matrix -> hierarchy scope.
Routers depend on this through common_utils.auth; audit writes follow the
mutation in the routers via AuditService.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import AccountInactive, Forbidden, NotFound, SessionExpired, Unauthenticated
from app.core.logging_config import get_logger
from app.models.user import User
from app.services.hierarchy_resolver import EffectiveScope, HierarchyResolver
from app.services.permission_resolver import PermissionResolver, is_admin_role, normalize_role
from app.services.session_store import SessionStore, utc_now

logger = get_logger(__name__)


@dataclass(frozen=True)
class Principal:
    user_id: Optional[int]
    role_name: str
    display_name: str
    username: Optional[str] = None
    is_participant: bool = False
    participant_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return not self.is_participant and is_admin_role(self.role_name)

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "username": self.username,
            "role": self.role_name,
            "displayName": self.display_name,
            "isParticipant": self.is_participant,
        }


def principal_from_user(user: User) -> Principal:
    return Principal(
        user_id=user.user_id,
        role_name=normalize_role(user.role.name if user.role else None),
        display_name=user.full_name or user.username,
        username=user.username,
    )


class AccessControl:
    def __init__(self, db: Session):
        self.db = db
        self.sessions = SessionStore(db)
        self.permissions = PermissionResolver(db)
        self.hierarchy = HierarchyResolver(db)

    # ----- identity ------------------------------------------------------

    def authenticate(self, token: Optional[str]) -> Principal:
        """
        Resolve a session token. Read-only.

        Raises Unauthenticated (missing/unknown token), SessionExpired or
        AccountInactive; all three are 401s with distinct error codes.
        """
        if not token:
            raise Unauthenticated("No session token provided")

        user = self.sessions.lookup(token)
        if user is None:
            raise Unauthenticated("Invalid session")
        if user.session_expires is None or user.session_expires <= utc_now():
            logger.info(f"[access_control] Expired session for user {user.user_id}")
            raise SessionExpired()
        if not user.is_active:
            logger.warning(f"[access_control] Inactive user {user.user_id} presented a session")
            raise AccountInactive()
        return principal_from_user(user)

    def authenticate_participant(self, participant_id: Optional[str]) -> Principal:
        """
        Weaker trust tier: the participant identity is asserted by the
        client. Only read-only page resolution accepts it.
        """
        participant_id = (participant_id or "").strip()
        if not participant_id:
            raise Unauthenticated("No participant identity provided")
        return Principal(
            user_id=None,
            role_name=settings.PARTICIPANT_ROLE_NAME,
            display_name=f"Participant {participant_id}",
            is_participant=True,
            participant_id=participant_id,
        )

    # ----- page authorisation --------------------------------------------

    def can_access(self, principal: Principal, page_path: str, action: Optional[str] = None) -> bool:
        if principal.is_participant and action is not None and action.strip().lower() != "view":
            return False
        return self.permissions.resolve(principal.role_name, page_path, action)

    def authorize_page(self, principal: Principal, page_path: str, action: Optional[str] = None) -> None:
        if not self.can_access(principal, page_path, action):
            logger.warning(
                f"[access_control] Denied {principal.role_name} (user {principal.user_id}) "
                f"on {page_path} action={action}"
            )
            raise Forbidden(
                "You do not have permission to access this page",
                details={"pagePath": page_path, "action": action},
            )

    def require_admin(self, principal: Principal) -> None:
        if not principal.is_admin:
            raise Forbidden("Admin role required")

    def require_session_principal(self, principal: Principal) -> None:
        if principal.is_participant:
            raise Forbidden("Participants cannot perform this operation")

    def resolve_target_user(
        self, principal: Principal, user_id: Optional[int], gate_page: str
    ) -> Tuple[int, str]:
        """
        (user_id, role_name) for a "defaults to caller" query parameter.
        Looking at another user requires access to ``gate_page``.
        """
        if principal.is_participant:
            if user_id is not None:
                raise Forbidden("Participants can only query their own pages")
            return principal.user_id, principal.role_name
        if user_id is None or user_id == principal.user_id:
            return principal.user_id, principal.role_name

        self.authorize_page(principal, gate_page)
        user = self.db.query(User).filter(User.user_id == user_id).first()
        if user is None:
            raise NotFound(f"User {user_id} not found", details={"userId": user_id})
        return user.user_id, normalize_role(user.role.name if user.role else None)

    # ----- hierarchy -----------------------------------------------------

    def scope_for(self, user_id: Optional[int], role_name: str) -> EffectiveScope:
        if user_id is None:
            return EffectiveScope()
        return self.hierarchy.effective_scope(user_id, role_name)
