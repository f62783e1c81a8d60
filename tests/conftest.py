"""
Pytest configuration and fixtures for testing.
"""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models as models  # noqa: F401  registers every table on Base.metadata
from app.database.session import Base, get_db
from app.models.hierarchy import District, Province, School, SchoolClass, Zone
from app.models.iam import Page, PageActionPermission, Role, RolePagePermission
from app.models.user import User
from app.services.session_store import utc_now
from common_utils.auth.utils import hash_password
from main import app


# Test database URL - using in-memory SQLite for tests
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

DEFAULT_PASSWORD = "Secret123!"


@pytest.fixture(scope="function")
def test_db():
    """
    Create a fresh test database for each test function.
    """
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(test_db):
    """
    Test client sharing the test session with every route dependency.
    Authentication is real: tests present session tokens.
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Roles and pages
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def roles(test_db):
    """admin, teacher, coordinator, director"""
    created = {}
    for role_id, name in enumerate(["admin", "teacher", "coordinator", "director"], start=1):
        role = Role(role_id=role_id, name=name, description=f"{name.capitalize()} role")
        test_db.add(role)
        created[name] = role
    test_db.commit()
    return created


PAGES = [
    # (page_id, name, path, category)
    (1, "Dashboard", "/dashboard", None),
    (2, "Schools", "/schools", None),
    (3, "Reports", "/reports", None),
    (4, "Page Permissions", "/settings/page-permissions", "Settings"),
    (5, "Training", "/training", None),
    (6, "Hierarchy Assignment", "/data/hierarchy/assign", "Settings"),
    (7, "User Activities", "/users/{id}/activities", None),
    (8, "Students", "/students", "Data"),
]


@pytest.fixture(scope="function")
def pages(test_db):
    created = {}
    for page_id, name, path, category in PAGES:
        page = Page(page_id=page_id, page_name=name, page_path=path, menu_category=category)
        test_db.add(page)
        created[path] = page
    test_db.commit()
    return created


def grant(db, role, page, allowed=True):
    db.add(RolePagePermission(role_id=role.role_id, page_id=page.page_id, is_allowed=allowed))
    db.commit()


def grant_action(db, role, page, action, allowed=True):
    db.add(PageActionPermission(
        role_id=role.role_id, page_id=page.page_id, action_name=action, is_allowed=allowed
    ))
    db.commit()


@pytest.fixture(scope="function")
def teacher_permissions(test_db, roles, pages):
    """Teacher sees dashboard, schools, training and students"""
    for path in ["/dashboard", "/schools", "/training", "/students"]:
        grant(test_db, roles["teacher"], pages[path])
    grant(test_db, roles["teacher"], pages["/reports"], allowed=False)


# ---------------------------------------------------------------------------
# Users and sessions
# ---------------------------------------------------------------------------

def make_user(db, username, role, *, user_id=None, active=True, with_session=True, expires_in_hours=1):
    user = User(
        user_id=user_id,
        username=username,
        email=f"{username}@plp.test",
        full_name=username.replace("_", " ").title(),
        password=hash_password(DEFAULT_PASSWORD),
        role_id=role.role_id,
        is_active=active,
    )
    if with_session:
        user.session_token = f"token-{username}"
        user.session_expires = utc_now() + timedelta(hours=expires_in_hours)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {user.session_token}"}


@pytest.fixture(scope="function")
def admin_user(test_db, roles):
    return make_user(test_db, "admin_user", roles["admin"], user_id=1)


@pytest.fixture(scope="function")
def teacher_user(test_db, roles):
    return make_user(test_db, "teacher_user", roles["teacher"], user_id=2)


@pytest.fixture(scope="function")
def coordinator_user(test_db, roles):
    return make_user(test_db, "coordinator_user", roles["coordinator"], user_id=10)


@pytest.fixture(scope="function")
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture(scope="function")
def teacher_headers(teacher_user):
    return auth_headers(teacher_user)


@pytest.fixture(scope="function")
def coordinator_headers(coordinator_user):
    return auth_headers(coordinator_user)


# ---------------------------------------------------------------------------
# Hierarchy
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def hierarchy(test_db):
    """
    zone 1
      province 1: district 7 (schools 100, 101), district 8 (school 102)
      province 2: district 9 (school 103)
    classes: 1000, 1001 in school 100; 1020 in school 102; 1030 in school 103
    """
    test_db.add(Zone(zone_id=1, zone_name="Central"))
    test_db.add_all([
        Province(province_id=1, zone_id=1, province_name="Phnom Penh"),
        Province(province_id=2, zone_id=1, province_name="Kandal"),
    ])
    test_db.add_all([
        District(district_id=7, province_id=1, district_name="Chamkar Mon"),
        District(district_id=8, province_id=1, district_name="Daun Penh"),
        District(district_id=9, province_id=2, district_name="Ta Khmau"),
    ])
    test_db.add_all([
        School(school_id=100, district_id=7, school_name="Bak Touk", school_code="S100"),
        School(school_id=101, district_id=7, school_name="Chea Sim", school_code="S101"),
        School(school_id=102, district_id=8, school_name="Wat Phnom", school_code="S102"),
        School(school_id=103, district_id=9, school_name="Ta Khmau High", school_code="S103"),
    ])
    test_db.add_all([
        SchoolClass(class_id=1000, school_id=100, class_name="Grade 7A", grade_level=7),
        SchoolClass(class_id=1001, school_id=100, class_name="Grade 8A", grade_level=8),
        SchoolClass(class_id=1020, school_id=102, class_name="Grade 9B", grade_level=9),
        SchoolClass(class_id=1030, school_id=103, class_name="Grade 10C", grade_level=10),
    ])
    test_db.commit()


@pytest.fixture(scope="function")
def user_factory(test_db):
    """make_user bound to the test session"""
    def factory(username, role, **kwargs):
        return make_user(test_db, username, role, **kwargs)
    return factory


@pytest.fixture(scope="function")
def grant_page(test_db):
    def _grant(role, page, allowed=True):
        grant(test_db, role, page, allowed)
    return _grant


@pytest.fixture(scope="function")
def grant_page_action(test_db):
    def _grant(role, page, action, allowed=True):
        grant_action(test_db, role, page, action, allowed)
    return _grant


@pytest.fixture(scope="function")
def headers_for():
    return auth_headers
