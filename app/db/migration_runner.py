"""Automatic migration runner"""
import logging
from typing import Optional
from alembic import command
from alembic.config import Config
import os

logger = logging.getLogger(__name__)

ALEMBIC_INI_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "alembic.ini"
)


def run_migrations(database_url: Optional[str] = None) -> None:
    """
    Run Alembic migrations automatically on startup.

    This function runs 'alembic upgrade head' programmatically.

    Args:
        database_url: Overrides sqlalchemy.url from alembic.ini
    """
    try:
        if not os.path.exists(ALEMBIC_INI_PATH):
            raise FileNotFoundError(f"alembic.ini not found at {ALEMBIC_INI_PATH}")

        # Create Alembic config
        alembic_cfg = Config(ALEMBIC_INI_PATH)
        alembic_cfg.set_main_option(
            "script_location",
            os.path.join(os.path.dirname(__file__), "migrations")
        )
        if database_url:
            alembic_cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))

        # Run migrations
        logger.info("Running database migrations...")
        command.upgrade(alembic_cfg, "head")
        logger.info("Database migrations completed successfully")

    except Exception as e:
        logger.error(f"Failed to run database migrations: {e}")
        raise
