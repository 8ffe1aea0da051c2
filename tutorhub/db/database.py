"""SQLite access layer (aiosqlite).

The schema lives in ``schema.sql`` and is applied through the Alembic
baseline migration at startup. Routes receive a connection per request via
the ``get_db`` dependency.
"""

import logging
from collections.abc import AsyncGenerator
from pathlib import Path

import aiosqlite
from alembic import command
from alembic.config import Config

from tutorhub.config import settings

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


async def connect(database_path: str | None = None) -> aiosqlite.Connection:
    db = await aiosqlite.connect(database_path or settings.database_path)
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA foreign_keys = ON")
    return db


async def get_db() -> AsyncGenerator:
    """FastAPI dependency that yields a database connection and closes it after the request."""
    db = await connect()
    try:
        yield db
    finally:
        await db.close()


def _run_alembic_upgrade():
    """Run Alembic migrations to head (synchronous, called once at startup)."""
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{settings.database_path}")
    command.upgrade(alembic_cfg, "head")


async def init_db():
    # Ensure parent directory exists (for Docker volume mounts)
    db_path = Path(settings.database_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Using SQLite database: %s", settings.database_path)

    _run_alembic_upgrade()
