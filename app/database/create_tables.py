#!/usr/bin/env python3
"""
Create every table known to the models, optionally seeding defaults.

    python -m app.database.create_tables [--seed]
"""
import argparse

from app.core.logging_config import get_logger, setup_logging
from app.database.session import Base, SessionLocal, engine
import app.models  # noqa: F401  registers every table on Base.metadata
from app.seed.seed_data import seed_all

logger = get_logger(__name__)


def create_tables(bind=None):
    """Initialize the database and create all tables."""
    bind = bind or engine
    try:
        Base.metadata.create_all(bind=bind)
        logger.info("Database initialization completed")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


def main():
    parser = argparse.ArgumentParser(description="Create tables for the PLP Admin API")
    parser.add_argument("--seed", action="store_true", help="Insert default roles, pages and an admin user")
    args = parser.parse_args()

    setup_logging(force_configure=True)
    create_tables()
    if args.seed:
        db = SessionLocal()
        try:
            seed_all(db)
        finally:
            db.close()


if __name__ == "__main__":
    main()
