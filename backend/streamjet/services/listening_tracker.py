"""Derives listening sessions and presence from playback state.

The playback engine only reports snapshots. ``PlayerSession`` listens to them,
together with the signed-in listener, and decides when a listening session
opens or closes and when the presence heartbeat runs.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Protocol

from streamjet.schemas.station import StationRef
from streamjet.services.clock import round_half_up, utcnow
from streamjet.services.playback import PlaybackEngine, PlaybackSnapshot, PlaybackState
from streamjet.services.presence import PresenceHeartbeat, PresenceStore

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    async def start(
        self,
        user_id: uuid.UUID,
        station_uuid: str,
        station_name: str,
        started_at: datetime,
    ): ...

    async def end(self, session_id: uuid.UUID, duration_seconds: int, ended_at: datetime) -> None: ...


@dataclass
class OpenSession:
    id: uuid.UUID
    user_id: uuid.UUID
    station_uuid: str
    started_at: datetime


class ListeningTracker:
    """Keeps at most one open listening session for this client."""

    def __init__(self, store: SessionStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock
        self.current: OpenSession | None = None

    @property
    def station_uuid(self) -> str | None:
        return self.current.station_uuid if self.current else None

    async def open(self, user_id: uuid.UUID, station: StationRef) -> None:
        """Open a session for a station, closing any other one first."""
        if self.current is not None:
            if (
                self.current.station_uuid == station.station_uuid
                and self.current.user_id == user_id
            ):
                return
            await self.close()

        started_at = self.clock()
        try:
            row = await self.store.start(
                user_id, station.station_uuid, station.station_name, started_at
            )
        except Exception:
            logger.exception("[Session] Failed to open session on %s", station.station_uuid)
            return

        self.current = OpenSession(
            id=row.id,
            user_id=user_id,
            station_uuid=station.station_uuid,
            started_at=started_at,
        )
        logger.debug("[Session] Opened %s on %s", row.id, station.station_uuid)

    async def close(self) -> int | None:
        """Close the open session. Returns the recorded duration in seconds."""
        session, self.current = self.current, None
        if session is None:
            return None

        ended_at = self.clock()
        duration = round_half_up((ended_at - session.started_at).total_seconds())
        try:
            await self.store.end(session.id, duration, ended_at)
        except Exception:
            # Best effort: a lost close leaves the row open in the store
            logger.exception("[Session] Failed to close session %s", session.id)
            return None

        logger.debug("[Session] Closed %s after %ss", session.id, duration)
        return duration


class PlayerSession:
    """Couples the signed-in listener and a playback engine to sessions and presence.

    Call :meth:`close` on every exit path (disconnect, logout, shutdown); it is
    idempotent.
    """

    def __init__(
        self,
        engine: PlaybackEngine,
        session_store: SessionStore,
        presence_store: PresenceStore,
        user_id: uuid.UUID | None = None,
        heartbeat_interval: float | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.engine = engine
        self.presence_store = presence_store
        self.heartbeat_interval = heartbeat_interval
        self.clock = clock
        self.tracker = ListeningTracker(session_store, clock=clock)
        self.user_id: uuid.UUID | None = None
        self.heartbeat: PresenceHeartbeat | None = None
        self.closed = False
        self._remove_listener = engine.add_listener(self._on_snapshot)
        self._pending_user = user_id

    async def __aenter__(self) -> "PlayerSession":
        if self._pending_user is not None:
            await self.set_user(self._pending_user)
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def set_user(self, user_id: uuid.UUID | None) -> None:
        """Sign a listener in or out (``None``)."""
        self._pending_user = None
        if user_id == self.user_id:
            return

        await self.tracker.close()
        if self.heartbeat is not None:
            await self.heartbeat.stop()
            self.heartbeat = None

        self.user_id = user_id
        if user_id is not None:
            self.heartbeat = PresenceHeartbeat(
                self.presence_store,
                user_id,
                interval=self.heartbeat_interval,
                clock=self.clock,
            )
        await self._sync(self.engine.snapshot())

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._remove_listener()
        await self.tracker.close()
        if self.heartbeat is not None:
            await self.heartbeat.stop()

    async def _on_snapshot(self, snapshot: PlaybackSnapshot) -> None:
        if not self.closed:
            await self._sync(snapshot)

    async def _sync(self, snapshot: PlaybackSnapshot) -> None:
        station = _station_ref(snapshot)

        # Sessions follow the selected station once it has played; pausing keeps them open
        if self.user_id is None or station is None:
            await self.tracker.close()
        elif snapshot.state == PlaybackState.PLAYING:
            await self.tracker.open(self.user_id, station)
        elif self.tracker.station_uuid not in (None, station.station_uuid):
            await self.tracker.close()

        # Presence only while actually playing
        if self.heartbeat is None:
            return
        if snapshot.is_playing and station is not None:
            if self.heartbeat.station != station or not self.heartbeat.running:
                await self.heartbeat.start(station)
        elif self.heartbeat.station is not None:
            await self.heartbeat.stop()


def _station_ref(snapshot: PlaybackSnapshot) -> StationRef | None:
    if snapshot.station is None:
        return None
    return StationRef(
        station_uuid=snapshot.station.stationuuid,
        station_name=snapshot.station.name,
    )
