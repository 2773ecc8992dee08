#!/usr/bin/env python
"""
Bring the shop database up to date.

Usage:
    python run_migrations.py             # upgrade to head
    python run_migrations.py <revision>  # upgrade to a specific revision
"""
import logging
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.util import CommandError
from dotenv import load_dotenv

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("run_migrations")

ROOT = Path(__file__).resolve().parent


def run_migrations(revision: str = "head") -> int:
    # alembic/env.py takes DATABASE_URL from the shop settings
    load_dotenv(ROOT / ".env")

    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))

    try:
        command.upgrade(config, revision)
    except CommandError as e:
        logger.error(f"Upgrade to {revision} failed: {e}")
        return 1

    logger.info(f"Shop database upgraded to {revision}")
    return 0


if __name__ == "__main__":
    sys.exit(run_migrations(sys.argv[1] if len(sys.argv) > 1 else "head"))
