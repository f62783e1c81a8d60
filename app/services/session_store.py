"""
Session Store - opaque session token lifecycle
Enforces a single active session per user (last-write-wins)
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import or_, func
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm import Session, joinedload

from app.config import settings
from app.core.exceptions import AccountLocked, Forbidden, StorageUnavailable, Unauthenticated
from app.core.logging_config import get_logger
from app.models.user import User
from common_utils.auth.utils import generate_session_token, verify_password

logger = get_logger(__name__)


def utc_now() -> datetime:
    """Naive UTC, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SessionStore:
    """
    Maps opaque tokens to users.

    Business Rules:
    - A user holds at most ONE token at a time
    - Issuing a token overwrites the previous one, which is thereby revoked
    - Lookups never mutate state
    - After MAX_FAILED_ATTEMPTS bad passwords the account is locked for
      LOCK_DURATION_MINUTES
    """

    def __init__(self, db: Session):
        self.db = db

    def lookup(self, token: str) -> Optional[User]:
        """Return the user holding ``token``, or None. Expiry is the caller's concern."""
        if not token:
            return None
        try:
            return (
                self.db.query(User)
                .options(joinedload(User.role))
                .filter(User.session_token == token)
                .first()
            )
        except (OperationalError, ProgrammingError) as e:
            logger.error(f"[session_store] Session lookup failed: {e}")
            raise StorageUnavailable() from e

    def issue(self, user: User) -> str:
        """
        Create a fresh token for ``user``.

        The previous token (if any) stops resolving as soon as this commits.
        """
        token = generate_session_token()
        now = utc_now()
        if user.session_token:
            logger.info(f"[session_store] Replacing active session for user {user.user_id}")

        user.session_token = token
        user.session_expires = now + timedelta(hours=settings.SESSION_EXPIRY_HOURS)
        user.last_login = now
        user.failed_login_attempts = 0
        user.account_locked_until = None
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"[session_store] Session issued for user {user.user_id}, expires {user.session_expires}")
        return token

    def revoke(self, user: User) -> None:
        user.session_token = None
        user.session_expires = None
        self.db.commit()
        logger.info(f"[session_store] Session revoked for user {user.user_id}")

    def login(self, identifier: str, password: str) -> User:
        """
        Verify credentials and issue a session.

        Raises:
            Unauthenticated: unknown user or wrong password (same message for both)
            AccountLocked: too many failed attempts, lock still running
            Forbidden: account deactivated
        """
        identifier = (identifier or "").strip()
        user = (
            self.db.query(User)
            .options(joinedload(User.role))
            .filter(or_(
                func.lower(User.username) == identifier.lower(),
                func.lower(User.email) == identifier.lower(),
            ))
            .first()
        )
        if user is None:
            logger.warning(f"[session_store] Login failed: unknown identifier '{identifier}'")
            raise Unauthenticated("Invalid credentials", details={"reason": "INVALID_CREDENTIALS"})

        now = utc_now()
        if user.account_locked_until and user.account_locked_until > now:
            logger.warning(f"[session_store] Login refused: user {user.user_id} locked until {user.account_locked_until}")
            raise AccountLocked(details={"lockedUntil": user.account_locked_until.isoformat()})

        if not user.is_active:
            logger.warning(f"[session_store] Login refused: user {user.user_id} is inactive")
            raise Forbidden("Account is inactive")

        if not verify_password(password, user.password):
            attempts = (user.failed_login_attempts or 0) + 1
            user.failed_login_attempts = attempts
            if attempts >= settings.MAX_FAILED_ATTEMPTS:
                user.account_locked_until = now + timedelta(minutes=settings.LOCK_DURATION_MINUTES)
                logger.warning(
                    f"[session_store] User {user.user_id} locked after {attempts} failed attempts"
                )
            self.db.commit()
            raise Unauthenticated("Invalid credentials", details={"reason": "INVALID_CREDENTIALS"})

        self.issue(user)
        return user
