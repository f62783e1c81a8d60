from app.models import Page, Role, RolePagePermission, User
from app.seed.seed_data import DEFAULT_PAGES, DEFAULT_ROLES, seed_all
from app.services.permission_resolver import PermissionResolver
from app.services.session_store import SessionStore


def test_seed_is_idempotent(test_db):
    seed_all(test_db)
    seed_all(test_db)

    assert test_db.query(Role).count() == len(DEFAULT_ROLES)
    assert test_db.query(Page).count() == len(DEFAULT_PAGES)
    assert test_db.query(User).count() == 1


def test_seeded_roles_open_the_dashboard_only(test_db):
    seed_all(test_db)
    resolver = PermissionResolver(test_db)

    assert resolver.resolve("teacher", "/dashboard") is True
    assert resolver.resolve("teacher", "/settings/page-permissions") is False
    assert resolver.resolve("admin", "/settings/page-permissions") is True
    assert test_db.query(RolePagePermission).count() == 7


def test_seeded_admin_can_log_in(test_db):
    seed_all(test_db)

    user = SessionStore(test_db).login("admin", "admin123")

    assert user.session_token
    assert user.role.name == "admin"
