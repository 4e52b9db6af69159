"""Alembic integration: brings the schema to head when the app starts."""

import asyncio
from pathlib import Path

import structlog
from alembic import command
from alembic.config import Config
from sqlalchemy import inspect, text

from casefeed.core.database import Base, engine

logger = structlog.get_logger()

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

# Any of the source tables marks the schema as created outside Alembic.
_SENTINEL_TABLE = "clients"


def _alembic_cfg() -> Config:
    """Alembic config with absolute paths so the working directory does not matter."""
    cfg = Config(str(_PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(_PROJECT_ROOT / "alembic"))
    return cfg


def _inspect_schema(connection) -> tuple[bool, bool, str | None]:
    """Return (tracked_by_alembic, has_tables, current_revision). Runs under run_sync."""
    tables = set(inspect(connection).get_table_names())
    tracked = "alembic_version" in tables

    revision = None
    if tracked:
        row = connection.execute(text("SELECT version_num FROM alembic_version")).first()
        revision = row[0] if row else None

    return tracked, _SENTINEL_TABLE in tables, revision


async def ensure_db_migrated() -> None:
    """Create, stamp or upgrade the schema depending on what is already there.

    - empty database: create_all, then stamp head
    - tables without alembic_version: stamp head
    - alembic-tracked database: upgrade head
    """
    async with engine.begin() as conn:
        tracked, has_tables, revision = await conn.run_sync(_inspect_schema)

    cfg = _alembic_cfg()
    if not tracked and not has_tables:
        logger.info("migrations_fresh_db", action="create_all_and_stamp")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await asyncio.to_thread(command.stamp, cfg, "head")
    elif not tracked:
        logger.info("migrations_untracked_db", action="stamp_head")
        await asyncio.to_thread(command.stamp, cfg, "head")
    else:
        logger.info("migrations_tracked_db", current_rev=revision, action="upgrade_head")
        await asyncio.to_thread(command.upgrade, cfg, "head")
