from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

from estatehub.core.config import get_settings


logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _make_alembic_config(database_url: str | None = None) -> Config:
    """Return Alembic configuration pointed at the bundled migration scripts."""
    alembic_ini = _PROJECT_ROOT / "alembic.ini"
    if not alembic_ini.exists():
        raise RuntimeError(f"Alembic configuration not found at {alembic_ini}")

    url = database_url or get_settings().database_url
    if not url:
        raise RuntimeError("DATABASE_URL must be configured to run migrations.")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(_PROJECT_ROOT / "alembic"))
    # ConfigParser treats '%' as interpolation; URL-encoded passwords contain it.
    config.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    return config


async def migrate_database(revision: str = "head") -> None:
    """Upgrade the schema to ``revision`` without blocking the event loop."""
    config = _make_alembic_config()
    logger.info("Applying database migrations up to %s", revision)
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, command.upgrade, config, revision)
