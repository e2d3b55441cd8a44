#!/usr/bin/env python3
"""
Apply Alembic migrations up to head.
"""
import logging
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config

from teamdesk.core.config import settings

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def run_migrations(revision: str = "head") -> int:
    try:
        logger.info(f"Upgrading database to {revision}...")
        logger.info(f"Database URL: {settings.DATABASE_URL[:20]}...")  # never log credentials

        alembic_cfg = Config(str(Path(__file__).parent / "alembic.ini"))
        alembic_cfg.set_main_option("script_location", str(Path(__file__).parent / "alembic"))
        command.upgrade(alembic_cfg, revision)

        logger.info("Migrations completed successfully")
        return 0
    except Exception as e:
        logger.error(f"Migration failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(run_migrations(*sys.argv[1:2]))
