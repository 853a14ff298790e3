"""Live-listener presence: heartbeat rows, liveness checks and the heartbeat timer."""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Protocol

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from streamjet.config import settings
from streamjet.database import async_session_maker, upsert
from streamjet.models.listening import ActiveListener
from streamjet.schemas.station import StationRef
from streamjet.services.clock import ensure_utc, utcnow
from streamjet.services.errors import NotAuthenticatedError
from streamjet.services.realtime import RealtimeHub, listeners_topic

logger = logging.getLogger(__name__)


def presence_window() -> timedelta:
    return timedelta(seconds=settings.presence_window_seconds)


def is_live(
    last_heartbeat: datetime,
    now: datetime | None = None,
    window: timedelta | None = None,
) -> bool:
    """A heartbeat is live strictly inside the freshness window.

    Staleness is the only failure detector: a crashed tab simply stops beating.
    """
    now = now or utcnow()
    window = window or presence_window()
    return now - ensure_utc(last_heartbeat) < window


class PresenceService:
    """Heartbeat rows keyed by listener."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def beat(
        self,
        user_id: uuid.UUID | None,
        station: StationRef,
        now: datetime | None = None,
    ) -> None:
        """Upsert the listener's heartbeat; the last writer decides the station."""
        if user_id is None:
            raise NotAuthenticatedError()

        now = now or utcnow()
        stmt = upsert(self.session, ActiveListener).values(
            id=uuid.uuid4(),
            user_id=user_id,
            station_uuid=station.station_uuid,
            station_name=station.station_name,
            started_at=now,
            last_heartbeat=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ActiveListener.user_id],
            set_={
                "station_uuid": stmt.excluded.station_uuid,
                "station_name": stmt.excluded.station_name,
                "last_heartbeat": stmt.excluded.last_heartbeat,
            },
        )
        await self.session.execute(stmt)

    async def clear(self, user_id: uuid.UUID) -> str | None:
        """Delete the listener's heartbeat. Returns the station it was on, if any."""
        result = await self.session.execute(
            select(ActiveListener.station_uuid).where(ActiveListener.user_id == user_id)
        )
        station_uuid = result.scalar_one_or_none()
        await self.session.execute(delete(ActiveListener).where(ActiveListener.user_id == user_id))
        return station_uuid

    async def active_listeners(
        self,
        station_uuid: str,
        now: datetime | None = None,
    ) -> list[ActiveListener]:
        cutoff = (now or utcnow()) - presence_window()
        result = await self.session.execute(
            select(ActiveListener)
            .where(ActiveListener.station_uuid == station_uuid)
            .where(ActiveListener.last_heartbeat > cutoff)
        )
        return list(result.scalars().all())

    async def listener_count(self, now: datetime | None = None) -> int:
        cutoff = (now or utcnow()) - presence_window()
        result = await self.session.execute(
            select(func.count())
            .select_from(ActiveListener)
            .where(ActiveListener.last_heartbeat > cutoff)
        )
        return result.scalar_one()


class PresenceStore(Protocol):
    async def beat(self, user_id: uuid.UUID, station: StationRef, now: datetime) -> None: ...

    async def clear(self, user_id: uuid.UUID) -> None: ...


class DatabasePresenceStore:
    """Commit-per-call presence writes that also notify realtime subscribers."""

    def __init__(
        self,
        session_maker: async_sessionmaker = async_session_maker,
        hub: RealtimeHub | None = None,
    ):
        self.session_maker = session_maker
        self.hub = hub

    async def beat(self, user_id: uuid.UUID, station: StationRef, now: datetime) -> None:
        async with self.session_maker() as session:
            await PresenceService(session).beat(user_id, station, now)
            await session.commit()

        if self.hub:
            await publish_heartbeat(self.hub, user_id, station, now)

    async def clear(self, user_id: uuid.UUID) -> None:
        async with self.session_maker() as session:
            station_uuid = await PresenceService(session).clear(user_id)
            await session.commit()

        if self.hub and station_uuid:
            await publish_departure(self.hub, user_id, station_uuid)


async def publish_heartbeat(
    hub: RealtimeHub,
    user_id: uuid.UUID,
    station: StationRef,
    now: datetime,
) -> None:
    """Announce a heartbeat on the station topic and the global presence topic."""
    record = {
        "user_id": str(user_id),
        "station_uuid": station.station_uuid,
        "station_name": station.station_name,
        "last_heartbeat": now.isoformat(),
    }
    await hub.publish(listeners_topic(station.station_uuid), "UPSERT", record)
    await hub.publish(listeners_topic(), "UPSERT", record)


async def publish_departure(hub: RealtimeHub, user_id: uuid.UUID, station_uuid: str) -> None:
    record = {"user_id": str(user_id), "station_uuid": station_uuid}
    await hub.publish(listeners_topic(station_uuid), "DELETE", record)
    await hub.publish(listeners_topic(), "DELETE", record)


class PresenceHeartbeat:
    """Owns the single repeating heartbeat task for one listener.

    ``start()`` always cancels the previous timer before arming a new one, and
    ``stop()`` must run on every exit path. Use it as an async context manager
    so the timer can never outlive its owner.
    """

    def __init__(
        self,
        store: PresenceStore,
        user_id: uuid.UUID,
        interval: float | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.user_id = user_id
        self.interval = interval if interval is not None else settings.heartbeat_interval_seconds
        self.clock = clock
        self.station: StationRef | None = None
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def __aenter__(self) -> "PresenceHeartbeat":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def start(self, station: StationRef) -> None:
        await self._cancel_timer()
        self.station = station
        await self._beat()
        self._task = asyncio.create_task(self._run(station))

    async def stop(self) -> None:
        """Cancel the timer and delete the heartbeat row, best effort."""
        had_station = self.station is not None
        await self._cancel_timer()
        self.station = None
        if not had_station:
            return
        try:
            await self.store.clear(self.user_id)
        except Exception:
            logger.exception("[Presence] Failed to clear presence for %s", self.user_id)

    async def _run(self, station: StationRef) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self._beat(station)

    async def _beat(self, station: StationRef | None = None) -> None:
        station = station or self.station
        if station is None:
            return
        try:
            await self.store.beat(self.user_id, station, self.clock())
        except Exception:
            logger.exception("[Presence] Failed to update presence for %s", self.user_id)

    async def _cancel_timer(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
