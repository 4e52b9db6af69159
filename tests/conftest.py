import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from casefeed.core.database import (
    Base,
    Client,
    CustomizationRequest,
    Equipment,
    Rental,
    Schedule,
    ServiceRecord,
)
from casefeed.services.jwt_service import JWTService


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """SQLite engine on a per-test file; providers open concurrent connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Async session bound to the in-memory engine."""
    async with session_factory() as session:
        yield session


def _d(value: str) -> datetime.date:
    return datetime.date.fromisoformat(value)


def _ts(value: str) -> datetime.datetime:
    return datetime.datetime.fromisoformat(value)


@pytest_asyncio.fixture
async def seeded(session_factory):
    """A small case load covering every activity source.

    c1 Park Jiwoo: consultations 2024-01-01 / 2024-01-10, wheelchair rental 2024-01-05
    s7 Kim Minsu:  customization fitting schedule 2024-02-01
    s8 Lee Sora:   rental of "Kim's wheelchair" 2024-02-02, assessment 2024-02-02,
                   customization request 2024-01-20
    Plus one schedule with no client, which never appears in any feed.
    """
    rows = [
        Client(id="c1", name="Park Jiwoo"),
        Client(id="s7", name="Kim Minsu"),
        Client(id="s8", name="Lee Sora"),
        Equipment(id="eq-1", name="Manual wheelchair"),
        Equipment(id="eq-2", name="Kim's wheelchair"),
        ServiceRecord(
            id="sr-1", client_id="c1", record_type="consultation", title="Initial intake",
            record_date=_d("2024-01-01"), content="First visit", created_by_user_id="user_a",
            created_at=_ts("2024-01-01T09:00:00"),
        ),
        ServiceRecord(
            id="sr-2", client_id="c1", record_type="consultation", title="Follow-up call",
            record_date=_d("2024-01-10"), content="Checked progress", created_by_user_id="user_b",
            created_at=_ts("2024-01-10T09:00:00"),
        ),
        ServiceRecord(
            id="sr-3", client_id="s8", record_type="assessment", title="Seating assessment",
            record_date=_d("2024-02-02"), content="Pressure mapping", created_by_user_id="user_a",
            created_at=_ts("2024-02-02T08:00:00"),
        ),
        Rental(
            id="rn-1", client_id="c1", equipment_id="eq-1", rental_date=_d("2024-01-05"),
            status="rented", quantity=1, created_by_user_id="user_a",
            created_at=_ts("2024-01-05T10:00:00"),
        ),
        Rental(
            id="rn-2", client_id="s8", equipment_id="eq-2", rental_date=_d("2024-02-02"),
            return_date=_d("2024-03-02"), status="returned", quantity=2, created_by_user_id="user_b",
            created_at=_ts("2024-02-02T12:00:00"),
        ),
        CustomizationRequest(
            id="cr-1", client_id="s8", title="Custom cushion", status="designing",
            requested_date=_d("2024-01-20"), description="Foam insert", created_by_user_id="user_b",
            created_at=_ts("2024-01-20T11:00:00"),
        ),
        Schedule(
            id="sc-1", client_id="s7", schedule_type="customization", title="Fitting",
            start_time=_ts("2024-02-01T15:30:00"), status="scheduled", created_by_user_id="user_a",
            created_at=_ts("2024-01-25T09:00:00"),
        ),
        Schedule(
            id="sc-orphan", client_id=None, schedule_type="other", title="Kim team meeting",
            start_time=_ts("2024-02-03T09:00:00"), status="scheduled",
            created_at=_ts("2024-01-25T09:00:00"),
        ),
    ]
    async with session_factory() as session:
        session.add_all(rows)
        await session.commit()
    return rows


@pytest_asyncio.fixture
async def app_with_db(db_engine, session_factory):
    """FastAPI app wired to the in-memory test database."""
    import casefeed.core.database as db_module

    original_engine = db_module.engine
    original_session = db_module.async_session
    db_module.engine = db_engine
    db_module.async_session = session_factory

    from casefeed.main import app

    yield app

    db_module.engine = original_engine
    db_module.async_session = original_session


def _client_for(app, token: str | None):
    transport = ASGITransport(app=app)
    client = AsyncClient(transport=transport, base_url="http://test")
    if token:
        client.headers["Authorization"] = f"Bearer {token}"
    return client


@pytest_asyncio.fixture
async def auth_client(app_with_db):
    """Client authenticated as a specialist."""
    token = JWTService().create_token(user_id="user_a", role="specialist", name="Staff A")
    async with _client_for(app_with_db, token) as client:
        yield client


@pytest_asyncio.fixture
async def guest_client(app_with_db):
    """Client authenticated with a role outside the allow-list."""
    token = JWTService().create_token(user_id="guest_1", role="guest", name="Guest")
    async with _client_for(app_with_db, token) as client:
        yield client


@pytest_asyncio.fixture
async def anon_client(app_with_db):
    """Unauthenticated async HTTP client."""
    async with _client_for(app_with_db, None) as client:
        yield client
