from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.api.deps import get_redis, get_workshop_catalog
from app.core.security import create_access_token
from app.database import Base, get_db
from app.main import app
from app.schemas.user import AuthUser, Role

SCHOOL_ID = "school-1"


class FakeWorkshopCatalog:
    """In-memory stand-in for the workshop/test lifecycle."""

    def __init__(self):
        # workshop_id -> {test_id: max_score}
        self.approved_tests: dict[str, dict[str, float]] = {}
        # (workshop_id, user_id) -> total submitted score
        self.submitted_scores: dict[tuple[str, str], float] = {}
        self.approved_workshops = 0

    def add_workshop(self, workshop_id: str, tests: dict[str, float]) -> None:
        self.approved_tests[workshop_id] = tests
        self.approved_workshops += 1

    async def list_approved_test_ids(self, workshop_id: str, school_id: str) -> set[str]:
        return set(self.approved_tests.get(workshop_id, {}))

    async def max_possible_score(self, workshop_id: str, school_id: str) -> float:
        return float(sum(self.approved_tests.get(workshop_id, {}).values()))

    async def total_submitted_score(self, workshop_id: str, school_id: str, user_id: str) -> float:
        return self.submitted_scores.get((workshop_id, user_id), 0.0)

    async def count_approved_workshops(self, school_id: str) -> int:
        return self.approved_workshops


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        self.store[key] = value


@pytest_asyncio.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def catalog() -> FakeWorkshopCatalog:
    return FakeWorkshopCatalog()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def client(session_factory, catalog, fake_redis) -> AsyncIterator[AsyncClient]:
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_workshop_catalog] = lambda: catalog

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def make_user(
    user_id: str = "student-1",
    role: Role = Role.student,
    school_id: str = SCHOOL_ID,
) -> AuthUser:
    return AuthUser(user_id=user_id, school_id=school_id, username=user_id, role=role)


def auth_headers(user: AuthUser) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}
