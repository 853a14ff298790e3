from typing import AsyncGenerator

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from streamjet.config import settings

engine = create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)

async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a database session."""
    async with async_session_maker() as session:
        yield session


def upsert(session: AsyncSession, model):
    """Return an INSERT construct that supports ON CONFLICT for the session's dialect.

    PostgreSQL in production, SQLite in the test suite.
    """
    if session.bind.dialect.name == "sqlite":
        return sqlite.insert(model)
    return postgresql.insert(model)
