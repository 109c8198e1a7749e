import os
import ssl
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

AsyncSessionFactory = async_sessionmaker[AsyncSession]

# Pool sizing for PostgreSQL; list endpoints run two to four short queries each
_POOL_OPTIONS: dict[str, Any] = {
    "pool_pre_ping": True,
    "pool_size": 5,
    "max_overflow": 10,
    "pool_recycle": 3600,
}


def _ssl_connect_args() -> dict[str, Any]:
    """asyncpg ``connect_args`` from DATABASE_SSL / DATABASE_SSL_CERT."""
    mode = os.environ.get("DATABASE_SSL", "").lower()
    if mode in ("", "disable"):
        return {}
    cert_path = os.environ.get("DATABASE_SSL_CERT", "")
    if cert_path and Path(cert_path).exists():
        return {"ssl": ssl.create_default_context(cafile=cert_path)}
    # Encrypted without certificate verification
    return {"ssl": "require"}


def get_async_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """Create the engine for ``database_url``.

    SQLite URLs (local runs and tests) get neither pool sizing nor SSL; any
    ``kwargs`` override the defaults.
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, **kwargs)
    connect_args = {**_ssl_connect_args(), **kwargs.pop("connect_args", {})}
    options = {**_POOL_OPTIONS, **kwargs}
    if connect_args:
        options["connect_args"] = connect_args
    return create_async_engine(database_url, **options)


def get_async_session_factory(
    database_url: str,
    *,
    expire_on_commit: bool = False,
    **engine_kwargs: Any,
) -> AsyncSessionFactory:
    return async_sessionmaker(
        get_async_engine(database_url, **engine_kwargs),
        class_=AsyncSession,
        expire_on_commit=expire_on_commit,
        autoflush=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create the tables registered on ``Base`` that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session(
    session_factory: AsyncSessionFactory,
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session committed on success and rolled back on error."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
