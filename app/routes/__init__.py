# ── Auth ──────────────────────────────────────────────────────
from app.routes.auth_router import router as auth_router

# ── Access control ────────────────────────────────────────────
from app.routes.iam.permission_router import router as permission_router
from app.routes.iam.role_router import router as role_router
from app.routes.page_router import router as page_router
from app.routes.menu_router import router as menu_router
from app.routes.audit_log_router import router as audit_log_router

# ── Organisation hierarchy ────────────────────────────────────
from app.routes.hierarchy_router import router as hierarchy_router

__all__ = [
    "auth_router",
    "permission_router",
    "role_router",
    "page_router",
    "menu_router",
    "audit_log_router",
    "hierarchy_router",
]
