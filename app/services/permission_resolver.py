"""
Permission Matrix Resolver

Answers "may role R open page P (and perform action A there)?" from the
role_page_permissions / page_action_permissions tables.

Resolution order:
1. role name is lower-cased
2. the admin role is allowed everything
3. exact page-path row for the role
4. the role's parameterised rows (``/users/{id}/activities``); the most
   specific pattern wins (fewest wildcard segments, then lexical order)
5. otherwise denied

With an action the same lookup runs over the action rows; when the role has
no action row for the page, the page-level answer is used.
"""
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import NotFound, ValidationError
from app.core.logging_config import get_logger
from app.models.iam import Page, PageActionEnum, PageActionPermission, Role, RolePagePermission
from app.database.session import guarded_query, transaction

logger = get_logger(__name__)

T = TypeVar("T")

_WILDCARD_SEGMENT = re.compile(r"^(\{[^/{}]+\}|\[[^/\[\]]+\])$")


def normalize_role(role_name: Optional[str]) -> str:
    return (role_name or "").strip().lower()


def is_admin_role(role_name: Optional[str]) -> bool:
    return normalize_role(role_name) == settings.ADMIN_ROLE_NAME.lower()


def split_path(path: str) -> List[str]:
    return [segment for segment in (path or "").strip().split("/") if segment]


def normalize_path(path: str) -> str:
    return "/" + "/".join(split_path(path))


def is_wildcard(segment: str) -> bool:
    return bool(_WILDCARD_SEGMENT.match(segment))


def is_pattern(path: str) -> bool:
    return any(is_wildcard(segment) for segment in split_path(path))


def pattern_matches(pattern: str, path: str) -> bool:
    """A bracketed segment matches exactly one non-empty segment; counts must agree."""
    pattern_segments = split_path(pattern)
    path_segments = split_path(path)
    if len(pattern_segments) != len(path_segments):
        return False
    return all(
        is_wildcard(expected) or expected == actual
        for expected, actual in zip(pattern_segments, path_segments)
    )


@dataclass(frozen=True)
class PathRule:
    page_id: int
    page_path: str
    allowed: bool

    @property
    def wildcards(self) -> int:
        return sum(1 for segment in split_path(self.page_path) if is_wildcard(segment))


class PathIndex:
    """Exact rows by normalised path plus pattern rows in precedence order."""

    def __init__(self, rules: List[PathRule]):
        self.exact: Dict[str, PathRule] = {}
        patterns = []
        for rule in rules:
            if is_pattern(rule.page_path):
                patterns.append(rule)
            self.exact[normalize_path(rule.page_path)] = rule
        self.patterns = sorted(patterns, key=lambda r: (r.wildcards, r.page_path))

    def match(self, path: str) -> Optional[PathRule]:
        rule = self.exact.get(normalize_path(path))
        if rule is not None:
            return rule
        for candidate in self.patterns:
            if pattern_matches(candidate.page_path, path):
                return candidate
        return None

    def __bool__(self):
        return bool(self.exact)


@dataclass
class RoleMatrix:
    """Every permission row of one role, loaded once and queried in memory."""
    role_name: str
    is_admin: bool = False
    pages: PathIndex = field(default_factory=lambda: PathIndex([]))
    actions: Dict[str, PathIndex] = field(default_factory=dict)

    def allows(self, path: str, action: Optional[str] = None) -> bool:
        if self.is_admin:
            return True

        page_allowed = False
        rule = self.pages.match(path)
        if rule is not None:
            page_allowed = rule.allowed

        if action is None:
            return page_allowed

        action_index = self.actions.get(action.strip().lower())
        if action_index:
            action_rule = action_index.match(path)
            if action_rule is not None:
                return action_rule.allowed
        return page_allowed


class PermissionResolver:
    def __init__(self, db: Session):
        self.db = db

    def _guarded(self, table_name: str, query: Callable[[], T], fallback: T) -> T:
        return guarded_query(self.db, table_name, query, fallback)

    # ----- reads ---------------------------------------------------------

    def get_role(self, role_name: str) -> Optional[Role]:
        key = normalize_role(role_name)
        return self._guarded(
            Role.__tablename__,
            lambda: self.db.query(Role).filter(func.lower(Role.name) == key).first(),
            None,
        )

    def load(self, role_name: str) -> RoleMatrix:
        key = normalize_role(role_name)
        if is_admin_role(key):
            return RoleMatrix(role_name=key, is_admin=True)

        role = self.get_role(key)
        if role is None:
            logger.debug(f"[permission_resolver] Unknown role '{key}', denying everything")
            return RoleMatrix(role_name=key)

        page_rows = self._guarded(
            RolePagePermission.__tablename__,
            lambda: (
                self.db.query(RolePagePermission.is_allowed, Page.page_id, Page.page_path)
                .join(Page, Page.page_id == RolePagePermission.page_id)
                .filter(RolePagePermission.role_id == role.role_id)
                .all()
            ),
            [],
        )
        action_rows = self._guarded(
            PageActionPermission.__tablename__,
            lambda: (
                self.db.query(
                    PageActionPermission.action_name,
                    PageActionPermission.is_allowed,
                    Page.page_id,
                    Page.page_path,
                )
                .join(Page, Page.page_id == PageActionPermission.page_id)
                .filter(PageActionPermission.role_id == role.role_id)
                .all()
            ),
            [],
        )

        grouped: Dict[str, List[PathRule]] = {}
        for action_name, allowed, page_id, page_path in action_rows:
            grouped.setdefault(action_name.lower(), []).append(PathRule(page_id, page_path, bool(allowed)))

        return RoleMatrix(
            role_name=key,
            pages=PathIndex([PathRule(page_id, path, bool(allowed)) for allowed, page_id, path in page_rows]),
            actions={name: PathIndex(rules) for name, rules in grouped.items()},
        )

    def resolve(self, role_name: str, page_path: str, action: Optional[str] = None) -> bool:
        allowed = self.load(role_name).allows(page_path, action)
        logger.debug(
            f"[permission_resolver] role={normalize_role(role_name)} path={page_path} "
            f"action={action} -> {allowed}"
        )
        return allowed

    def matrix(self) -> List[dict]:
        """Every role x page cell, default-deny cells included."""
        roles = self.db.query(Role).order_by(Role.name).all()
        pages = self.db.query(Page).order_by(Page.page_name).all()
        rows = self._guarded(
            RolePagePermission.__tablename__,
            lambda: self.db.query(RolePagePermission).all(),
            [],
        )
        explicit = {(row.role_id, row.page_id): row.is_allowed for row in rows}

        result = []
        for role in roles:
            admin = is_admin_role(role.name)
            cells = []
            for page in pages:
                stored = explicit.get((role.role_id, page.page_id))
                cells.append({
                    "pageId": page.page_id,
                    "pageName": page.page_name,
                    "pagePath": page.page_path,
                    "canAccess": True if admin else bool(stored),
                    "explicit": stored is not None,
                })
            result.append({"roleId": role.role_id, "roleName": role.name, "permissions": cells})
        return result

    # ----- writes --------------------------------------------------------

    def _require_role(self, role_name: str) -> Role:
        role = self.get_role(role_name)
        if role is None:
            raise NotFound(f"Role '{role_name}' not found", details={"role": role_name})
        return role

    def _require_page(self, page_id: int) -> Page:
        page = self.db.query(Page).filter(Page.page_id == page_id).first()
        if page is None:
            raise NotFound(f"Page {page_id} not found", details={"pageId": page_id})
        return page

    def _upsert_page(self, role: Role, page: Page, allowed: bool) -> Tuple[Optional[bool], bool]:
        row = (
            self.db.query(RolePagePermission)
            .filter(RolePagePermission.role_id == role.role_id, RolePagePermission.page_id == page.page_id)
            .first()
        )
        if row is None:
            self.db.add(RolePagePermission(role_id=role.role_id, page_id=page.page_id, is_allowed=allowed))
            return None, True
        previous = row.is_allowed
        if previous == allowed:
            return previous, False
        row.is_allowed = allowed
        return previous, True

    def set_page_permission(self, role_name: str, page_id: int, allowed: bool) -> dict:
        """
        Upsert one (role, page) cell.

        Returns a change record; ``changed`` is False when the stored value
        already equals ``allowed`` so retries do not produce audit noise.
        """
        role = self._require_role(role_name)
        page = self._require_page(page_id)
        with transaction(self.db):
            previous, changed = self._upsert_page(role, page, allowed)

        if changed:
            logger.info(
                f"[permission_resolver] {role.name} -> {page.page_path}: {previous} -> {allowed}"
            )
        return {
            "role": role, "page": page, "previous": previous, "allowed": allowed, "changed": changed,
        }

    def set_page_permissions_bulk(self, role_name: str, changes: List[Tuple[int, bool]]) -> List[dict]:
        """Apply several cells for one role atomically; unknown page aborts all."""
        role = self._require_role(role_name)
        results = []
        with transaction(self.db):
            for page_id, allowed in changes:
                page = self._require_page(page_id)
                previous, changed = self._upsert_page(role, page, allowed)
                # Later entries for the same page must see this one
                self.db.flush()
                results.append({
                    "role": role, "page": page, "previous": previous, "allowed": allowed, "changed": changed,
                })
        logger.info(
            f"[permission_resolver] Bulk update for {role.name}: "
            f"{sum(1 for r in results if r['changed'])}/{len(results)} cells changed"
        )
        return results

    def set_action_permission(self, role_name: str, page_id: int, action_name: str, allowed: bool) -> dict:
        action_key = (action_name or "").strip().lower()
        if action_key not in {a.value for a in PageActionEnum}:
            raise ValidationError(
                f"Invalid action '{action_name}'",
                details={"allowed": [a.value for a in PageActionEnum]},
            )
        role = self._require_role(role_name)
        page = self._require_page(page_id)

        with transaction(self.db):
            row = (
                self.db.query(PageActionPermission)
                .filter(
                    PageActionPermission.role_id == role.role_id,
                    PageActionPermission.page_id == page.page_id,
                    PageActionPermission.action_name == action_key,
                )
                .first()
            )
            previous = None
            if row is None:
                self.db.add(PageActionPermission(
                    role_id=role.role_id, page_id=page.page_id, action_name=action_key, is_allowed=allowed
                ))
                changed = True
            else:
                previous = row.is_allowed
                changed = previous != allowed
                row.is_allowed = allowed

        return {
            "role": role, "page": page, "action": action_key,
            "previous": previous, "allowed": allowed, "changed": changed,
        }
