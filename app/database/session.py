from contextlib import contextmanager
from typing import Callable, TypeVar

from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import OperationalError, ProgrammingError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.orm import declarative_base

from app.config import settings
from app.core.exceptions import StorageUnavailable
from app.core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL


def _engine_options(url: str) -> dict:
    # SQLite (local runs) uses a SingletonThreadPool and rejects sizing options
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
    }


# SQLAlchemy setup
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    echo=False,
    **_engine_options(SQLALCHEMY_DATABASE_URL)
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """
    Run a multi-statement mutation atomically.

    Commits on success; on any error rolls the session back to the prior
    consistent state and re-raises.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def table_missing(db: Session, table_name: str) -> bool:
    try:
        return not inspect(db.get_bind()).has_table(table_name)
    except SQLAlchemyError as e:
        logger.error(f"[database] Schema inspection failed: {e}")
        raise StorageUnavailable() from e


def guarded_query(db: Session, table_name: str, query: Callable[[], T], fallback: T) -> T:
    """
    Run ``query``; a missing table yields ``fallback`` with a warning,
    anything else is reported as StorageUnavailable.
    """
    try:
        return query()
    except (OperationalError, ProgrammingError) as e:
        db.rollback()
        if table_missing(db, table_name):
            logger.warning(f"[database] Table '{table_name}' is missing, using safe default")
            return fallback
        logger.exception(f"[database] Query on '{table_name}' failed")
        raise StorageUnavailable() from e
