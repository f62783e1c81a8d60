import os
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    ENV: str = os.getenv("ENV", "development")  # development, dev-server, production
    DEBUG: bool = ENV in ["development", "dev-server"]

    # Database settings
    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "plpadmin")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "plppass")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "plp_admin")
    POSTGRES_PORT: int = int(os.getenv("POSTGRES_PORT", "5432"))
    DATABASE_URL: str = os.getenv("DATABASE_URL", f"postgresql://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}")

    # Database connection pool settings
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "20"))
    DB_POOL_TIMEOUT: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    DB_POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "3600"))

    # Session settings
    SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "session-token")
    SESSION_HEADER_NAME: str = os.getenv("SESSION_HEADER_NAME", "X-Session-Token")
    SESSION_EXPIRY_HOURS: int = int(os.getenv("SESSION_EXPIRY_HOURS", "24"))
    SESSION_COOKIE_SECURE: bool = ENV == "production"
    PARTICIPANT_HEADER_NAME: str = os.getenv("PARTICIPANT_HEADER_NAME", "X-Participant-Id")

    # Login lockout policy
    MAX_FAILED_ATTEMPTS: int = int(os.getenv("MAX_FAILED_ATTEMPTS", "5"))
    LOCK_DURATION_MINUTES: int = int(os.getenv("LOCK_DURATION_MINUTES", "30"))

    # Access control
    ADMIN_ROLE_NAME: str = os.getenv("ADMIN_ROLE_NAME", "admin")
    PARTICIPANT_ROLE_NAME: str = "participant"
    PERMISSION_ADMIN_PAGE: str = "/settings/page-permissions"
    HIERARCHY_ASSIGN_PAGE: str = "/data/hierarchy/assign"

    # Audit log
    AUDIT_PAGE_SIZE: int = int(os.getenv("AUDIT_PAGE_SIZE", "50"))
    AUDIT_MAX_PAGE_SIZE: int = 200

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    SLOW_REQUEST_SECONDS: float = float(os.getenv("SLOW_REQUEST_SECONDS", "1.0"))

    # Timestamps in response envelopes
    APP_TIMEZONE: str = os.getenv("APP_TIMEZONE", "Asia/Phnom_Penh")

    # API specific settings
    API_PREFIX: str = "/api/v1"
    APP_NAME: str = "PLP Admin"
    APP_VERSION: str = "1.0.0"

    class Config:
        case_sensitive = True
        env_file = None

settings = Settings()
