from __future__ import annotations

import ssl
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from estatehub.core.config import get_settings
from estatehub.core.migrations import migrate_database


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _sslmode_to_asyncpg_ssl(sslmode: str) -> bool | ssl.SSLContext:
    """Translate a libpq ``sslmode`` value into the ``ssl`` argument asyncpg expects."""
    mode = sslmode.strip().lower()
    if mode in {"disable", "allow", "prefer"}:
        return False
    if mode == "verify-ca":
        context = ssl.create_default_context()
        context.check_hostname = False
        return context
    return True


def prepare_engine_arguments(database_url: str) -> tuple[str, dict[str, Any]]:
    """Strip libpq-only query options that asyncpg rejects and return connect args."""
    url = make_url(database_url)
    if url.drivername != "postgresql+asyncpg":
        return database_url, {}

    query = dict(url.query)
    sslmode = query.pop("sslmode", None)
    connect_args: dict[str, Any] = {}
    if isinstance(sslmode, tuple):
        sslmode = sslmode[-1] if sslmode else None
    if sslmode:
        connect_args["ssl"] = _sslmode_to_asyncpg_ssl(sslmode)

    sanitized = url.set(query=query)
    return sanitized.render_as_string(hide_password=False), connect_args


def _init_engine() -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    settings = get_settings()
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is not configured.")

    url, connect_args = prepare_engine_arguments(settings.database_url)
    engine = create_async_engine(url, future=True, connect_args=connect_args)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    return engine, session_factory


def get_engine() -> AsyncEngine:
    global _engine, _session_factory
    if _engine is None or _session_factory is None:
        _engine, _session_factory = _init_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _engine, _session_factory
    if _engine is None or _session_factory is None:
        _engine, _session_factory = _init_engine()
    return _session_factory


async def init_database() -> None:
    """Ensure the database schema is up to date via Alembic migrations."""
    get_engine()
    await migrate_database()
