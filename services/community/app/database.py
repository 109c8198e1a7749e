from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shared.database.postgres import create_schema, get_async_session_factory, get_session

# Import all models so SQLAlchemy's Base.metadata is populated before create_all().
import app.models  # noqa: F401

_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_db(database_url: str) -> None:
    global _session_factory
    _session_factory = get_async_session_factory(database_url, expire_on_commit=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError("Database not initialized")
    return _session_factory


async def create_tables() -> None:
    """Create missing tables on the initialized engine (local development)."""
    await create_schema(get_session_factory().kw["bind"])


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session(get_session_factory()):
        yield session
