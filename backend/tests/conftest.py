"""
Pytest fixtures for test database, client, and admission services.

Each test gets its own file-backed SQLite database so that separate
AsyncSessions really are separate connections and concurrent RSVPs
genuinely contend for the session row.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./agenda_test.db")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from agenda.core.config import Settings
from agenda.db.base import Base
from agenda.db.session import get_db
from agenda.main import app
from agenda.schemas.rsvp import UserInfo
from agenda.schemas.session import SessionCreate
from agenda.services.admission_service import AdmissionController

EVENT_ID = "event-2026"


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        REDIS_ENABLED=False,
        RSVP_MAX_RETRY_ATTEMPTS=5,
        RSVP_RETRY_BACKOFF_SECONDS=0.002,
    )


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'agenda.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def controller(db_session: AsyncSession, test_settings: Settings) -> AdmissionController:
    return AdmissionController(db_session, settings=test_settings)


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get their own session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def session_payload(title: str = "Keynote", capacity=2, starts_in_hours: int = 24, **extra) -> dict:
    start = datetime.now(timezone.utc) + timedelta(hours=starts_in_hours)
    data = {
        "title": title,
        "start_time": start,
        "end_time": start + timedelta(hours=1),
        "capacity": capacity,
        **extra,
    }
    if capacity is None:
        data.pop("capacity")
    return data


def user_info(user_id: str) -> UserInfo:
    return UserInfo(name=f"User {user_id}", email=f"{user_id.lower()}@example.com")


@pytest.fixture
def make_session(controller: AdmissionController):
    """
    Factory: create a session through the controller and return its id.

    Only the id is handed out: a rejected operation rolls the shared
    AsyncSession back, which expires any EventSession the test still holds.
    """

    async def _make(capacity: int = 2, title: str = "Keynote", starts_in_hours: int = 24, event_id: str = EVENT_ID):
        session = await controller.create_session(
            event_id,
            SessionCreate(**session_payload(title, capacity, starts_in_hours)),
        )
        return session.id

    return _make
