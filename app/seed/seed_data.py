import logging
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.models import Page, Role, RolePagePermission, User
from common_utils.auth.utils import hash_password

logger = logging.getLogger(__name__)

DEFAULT_ROLES = [
    ("admin", "Full access to every page"),
    ("director", "Programme director"),
    ("coordinator", "Zone / province coordinator"),
    ("teacher", "School teacher"),
    ("partner", "Partner organisation"),
    ("collector", "Data collector"),
    ("intern", "Intern"),
    ("training organizer", "Training organiser"),
]

# (path, name, icon, category)
DEFAULT_PAGES = [
    ("/dashboard", "Dashboard", "LayoutDashboard", None),
    ("/schools", "Schools", "School", None),
    ("/users", "Users", "Users", "Administration"),
    ("/users/{id}/activities", "User Activities", "Activity", "Administration"),
    ("/reports", "Reports", "BarChart", None),
    ("/training", "Training", "GraduationCap", "Training"),
    ("/training/sessions", "Training Sessions", "Calendar", "Training"),
    ("/training/programs", "Training Programs", "BookOpen", "Training"),
    ("/training/participants", "Participants", "UserCheck", "Training"),
    ("/training/feedback", "Feedback", "MessageSquare", "Training"),
    ("/data/hierarchy/assign", "Hierarchy Assignment", "Network", "Settings"),
    ("/settings/page-permissions", "Page Management", "Shield", "Settings"),
]

# Non-admin roles that may open the dashboard out of the box
DASHBOARD_ROLES = ["director", "coordinator", "teacher", "partner", "collector", "intern", "training organizer"]


def seed_roles(db: Session):
    """
    Seed default roles (idempotent, case-insensitive).
    """
    for name, description in DEFAULT_ROLES:
        if db.query(Role).filter(func.lower(Role.name) == name).first():
            logger.info(f"Role '{name}' already exists, skipping.")
            continue
        db.add(Role(name=name, description=description))
        logger.info(f"Role '{name}' created.")
    db.commit()


def seed_pages(db: Session):
    """
    Seed default pages (idempotent on page_path).
    """
    for path, name, icon, category in DEFAULT_PAGES:
        if db.query(Page).filter(Page.page_path == path).first():
            continue
        db.add(Page(page_path=path, page_name=name, icon_name=icon, menu_category=category))
        logger.info(f"Page '{path}' created.")
    db.commit()


def seed_dashboard_permissions(db: Session):
    dashboard = db.query(Page).filter(Page.page_path == "/dashboard").first()
    if not dashboard:
        logger.warning("No /dashboard page found, skipping permission seeding.")
        return
    for role in db.query(Role).filter(func.lower(Role.name).in_(DASHBOARD_ROLES)).all():
        exists = db.query(RolePagePermission).filter_by(role_id=role.role_id, page_id=dashboard.page_id).first()
        if not exists:
            db.add(RolePagePermission(role_id=role.role_id, page_id=dashboard.page_id, is_allowed=True))
    db.commit()
    logger.info("Dashboard permissions seeded.")


def seed_admin_user(db: Session, username: str = "admin", password: str = "admin123"):
    """
    Seed one admin account (idempotent).
    """
    if db.query(User).filter(User.username == username).first():
        logger.info(f"User '{username}' already exists, skipping.")
        return
    role = db.query(Role).filter(func.lower(Role.name) == "admin").first()
    if not role:
        logger.warning("No admin role found for admin seeding, skipping.")
        return
    db.add(User(
        username=username,
        full_name="System Administrator",
        password=hash_password(password),
        role_id=role.role_id,
        is_active=True,
    ))
    db.commit()
    logger.info(f"Admin user '{username}' created.")


def seed_all(db: Session):
    seed_roles(db)
    seed_pages(db)
    seed_dashboard_permissions(db)
    seed_admin_user(db)
    logger.info("Seeding completed successfully.")
