"""
Application startup validation and initialization.

Runs once before the API starts serving requests: configures logging,
checks the database is reachable and, outside production, creates any
missing tables.
"""

import logging
import sys
from typing import List, Tuple

from sqlalchemy import text

from core.config import DEFAULT_JWT_SECRET, settings
from core.database import engine, init_db

logger = logging.getLogger(__name__)


def configure_logging():
    """Configure root logging once for the whole process."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


class StartupValidator:
    """Validates application startup requirements"""

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def check_database_connection(self) -> bool:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
            logger.info("Database connection successful")
            return True
        except Exception as e:
            self.errors.append(f"Database connection failed: {str(e)}")
            return False

    def check_environment_config(self) -> bool:
        if settings.jwt_secret_key == DEFAULT_JWT_SECRET:
            self.warnings.append("JWT_SECRET_KEY is the development default")
        if not settings.cron_secret:
            self.warnings.append(
                "CRON_SECRET not set - daily report can only be triggered by an admin"
            )
        return True

    def validate_all(self) -> Tuple[bool, List[str], List[str]]:
        results = [
            self.check_database_connection(),
            self.check_environment_config(),
        ]
        return all(results), self.errors, self.warnings


def run_startup_checks() -> Tuple[bool, List[str]]:
    """Run all startup validation checks"""
    logger.info(f"Starting canteen backend ({settings.environment})")

    validator = StartupValidator()
    passed, errors, warnings = validator.validate_all()

    for warning in warnings:
        logger.warning(f"Startup warning: {warning}")
    for error in errors:
        logger.error(f"Startup error: {error}")

    if not passed and settings.is_production:
        logger.error("Cannot start in production with errors!")
        sys.exit(1)
    elif not passed:
        logger.warning("Starting in development mode despite errors")

    if passed and settings.auto_create_tables and not settings.is_production:
        init_db()
        logger.info("Database tables ensured")

    return passed, warnings
