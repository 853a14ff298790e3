"""
Shared pytest fixtures.

Database tests run against an in-memory SQLite database through aiosqlite;
the schema is created from the ORM metadata.
"""

import uuid

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import streamjet.models  # noqa: F401  registers the tables
from streamjet.database import Base, get_db
from streamjet.models.listener import Listener
from streamjet.services.clock import utcnow

from test_doubles import FakeClock, FakeConnectionManager, FakePresenceStore, FakeSessionStore


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def listener(session_maker) -> Listener:
    """A registered listener row."""
    async with session_maker() as session:
        now = utcnow()
        row = Listener(id=uuid.uuid4(), name="Ada", listener_metadata={}, first_seen_at=now, last_seen_at=now)
        session.add(row)
        await session.commit()
        return row


@pytest.fixture
async def client(session_maker):
    """HTTP client for the app with the database swapped for SQLite."""
    from streamjet.main import app

    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as http:
        yield http
    app.dependency_overrides.clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_store():
    return FakeSessionStore()


@pytest.fixture
def presence_store():
    return FakePresenceStore()


@pytest.fixture
def connection_manager():
    return FakeConnectionManager()
