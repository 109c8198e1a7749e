import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.database import get_db
from app.dependencies import get_settings, get_snapshot_store
from app.main import app
from app.models import Comment, Trick
from shared.database.postgres import create_schema, get_async_session_factory, get_session

# One shared in-memory connection so every session sees the same tables
TEST_DATABASE_URL = "sqlite+aiosqlite://"


class InMemorySnapshotStore:
    """Dict-backed stand-in for the Redis count snapshot store."""

    def __init__(self) -> None:
        self.counts: dict[tuple[str, str], int] = {}

    async def get_count(self, session_id: str, scope: str) -> int | None:
        return self.counts.get((session_id, scope))

    async def set_count(self, session_id: str, scope: str, count: int) -> None:
        self.counts[(session_id, scope)] = count


class Seeder:
    """Inserts tricks and comments with strictly increasing creation dates."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self._sequence = 0

    def _tick(self) -> datetime:
        self._clock += timedelta(minutes=1)
        return self._clock

    async def tricks(self, count: int, *, published: bool = True) -> list[Trick]:
        tricks = []
        for _ in range(count):
            self._sequence += 1
            tricks.append(
                Trick(
                    trick_id=uuid.uuid4(),
                    name=f"Trick {self._sequence}",
                    slug=f"trick-{self._sequence}",
                    is_published=published,
                    created_at=self._tick(),
                )
            )
        async with self._session_factory() as session:
            session.add_all(tricks)
            await session.commit()
        return tricks

    async def comments(
        self,
        trick: Trick,
        count: int,
        *,
        parent: Comment | None = None,
    ) -> list[Comment]:
        comments = [
            Comment(
                comment_id=uuid.uuid4(),
                trick_id=trick.trick_id,
                parent_comment_id=parent.comment_id if parent else None,
                body=f"Comment {index}",
                created_at=self._tick(),
            )
            for index in range(count)
        ]
        async with self._session_factory() as session:
            session.add_all(comments)
            await session.commit()
        return comments

    async def delete(self, *entities) -> None:
        async with self._session_factory() as session:
            for entity in entities:
                await session.delete(await session.merge(entity))
            await session.commit()


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    factory = get_async_session_factory(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    engine = factory.kw["bind"]
    await create_schema(engine)
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed(session_factory: async_sessionmaker[AsyncSession]) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
def snapshot_store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        community_database_url=TEST_DATABASE_URL,
        trick_number_per_loading=3,
        trick_number_per_page=4,
        comment_number_per_loading=2,
    )


@pytest.fixture
def session_id() -> str:
    return str(uuid.uuid4())


@pytest_asyncio.fixture
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
    snapshot_store: InMemorySnapshotStore,
    settings: Settings,
    session_id: str,
) -> AsyncGenerator[AsyncClient, None]:
    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async for session in get_session(session_factory):
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_snapshot_store] = lambda: snapshot_store
    app.dependency_overrides[get_settings] = lambda: settings
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Cookie": f"{settings.session_cookie_name}={session_id}"},
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
