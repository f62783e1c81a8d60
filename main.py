from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from sqlalchemy.sql import text
from sqlalchemy.orm import Session

from app.config import settings
from app.core.logging_config import setup_logging, get_logger
from app.database.session import get_db
from app.middleware import RequestTrackingMiddleware
from app.routes import (
    auth_router,
    permission_router,
    role_router,
    page_router,
    menu_router,
    audit_log_router,
    hierarchy_router,
)
from app.utils.response_utils import ResponseWrapper

# Setup logging as early as possible
setup_logging(log_level=settings.LOG_LEVEL)

logger = get_logger(__name__)

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Access control, hierarchy scoping and permission audit for the PLP back office",
    version=settings.APP_VERSION,
)

# Set up CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestTrackingMiddleware)

# Include routers
app.include_router(auth_router, prefix=settings.API_PREFIX)
app.include_router(permission_router, prefix=settings.API_PREFIX)
app.include_router(audit_log_router, prefix=settings.API_PREFIX)
app.include_router(role_router, prefix=settings.API_PREFIX)
app.include_router(page_router, prefix=settings.API_PREFIX)
app.include_router(menu_router, prefix=settings.API_PREFIX)
app.include_router(hierarchy_router, prefix=settings.API_PREFIX)


@app.get(f"{settings.API_PREFIX}/health")
def health_check(db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=ResponseWrapper.error(message="Database unavailable", error_code="STORAGE_UNAVAILABLE"),
        )
    return ResponseWrapper.success(data={"status": "healthy", "database": "connected"}, message="I Am Alive!!")


@app.on_event("startup")
async def startup_event():
    logger.info(f"{settings.APP_NAME} starting up (env={settings.ENV})")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"{settings.APP_NAME} shutting down")


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
