import uuid
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from streamjet.database import async_session_maker
from streamjet.models.listening import ListeningSession
from streamjet.services.clock import utcnow
from streamjet.services.errors import NotAuthenticatedError


class ListeningSessionService:
    """Open, close and read listening sessions."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def start(
        self,
        user_id: uuid.UUID | None,
        station_uuid: str,
        station_name: str,
        started_at: datetime | None = None,
    ) -> ListeningSession:
        if user_id is None:
            raise NotAuthenticatedError()

        row = ListeningSession(
            user_id=user_id,
            station_uuid=station_uuid,
            station_name=station_name,
            started_at=started_at or utcnow(),
            ended_at=None,
            duration_seconds=None,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def end(
        self,
        session_id: uuid.UUID,
        duration_seconds: int,
        ended_at: datetime | None = None,
    ) -> ListeningSession | None:
        """Stamp ``ended_at`` and ``duration_seconds`` on an open session."""
        await self.session.execute(
            update(ListeningSession)
            .where(ListeningSession.id == session_id)
            .values(ended_at=ended_at or utcnow(), duration_seconds=duration_seconds)
        )
        result = await self.session.execute(
            select(ListeningSession)
            .where(ListeningSession.id == session_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get(self, session_id: uuid.UUID) -> ListeningSession | None:
        result = await self.session.execute(
            select(ListeningSession).where(ListeningSession.id == session_id)
        )
        return result.scalar_one_or_none()

    async def history(
        self,
        user_id: uuid.UUID,
        days: int = 30,
        now: datetime | None = None,
    ) -> list[ListeningSession]:
        """Sessions started within the last ``days`` days, newest first."""
        since = (now or utcnow()) - timedelta(days=days)
        result = await self.session.execute(
            select(ListeningSession)
            .where(ListeningSession.user_id == user_id)
            .where(ListeningSession.started_at >= since)
            .order_by(ListeningSession.started_at.desc())
        )
        return list(result.scalars().all())


class ListeningSessionStore:
    """Commit-per-call access for long-lived trackers.

    A tracker outlives any single request, so each write gets its own
    short database session.
    """

    def __init__(self, session_maker: async_sessionmaker = async_session_maker):
        self.session_maker = session_maker

    async def start(
        self,
        user_id: uuid.UUID,
        station_uuid: str,
        station_name: str,
        started_at: datetime,
    ) -> ListeningSession:
        async with self.session_maker() as session:
            row = await ListeningSessionService(session).start(
                user_id, station_uuid, station_name, started_at
            )
            await session.commit()
            return row

    async def end(self, session_id: uuid.UUID, duration_seconds: int, ended_at: datetime) -> None:
        async with self.session_maker() as session:
            await ListeningSessionService(session).end(session_id, duration_seconds, ended_at)
            await session.commit()
