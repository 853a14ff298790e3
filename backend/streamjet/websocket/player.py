"""Player WebSocket: the browser owns the audio element, the server mirrors its state.

Messages from client:
- {"type": "play", "station": {...radio-browser station...}}
- {"type": "pause"} / {"type": "resume"} / {"type": "stop"}
- {"type": "set_volume", "volume": 0.5}
- {"type": "media_event", "event": "playing" | "paused" | "error", "source_id": 3}
- {"type": "login", "listener_id": "<uuid>"} / {"type": "logout"}
- {"type": "spotify_authorize", "state": "...", "redirect_uri": "..."}
- {"type": "spotify_login", "code": "...", "redirect_uri": "..."}
- {"type": "spotify_refresh"} / {"type": "spotify_logout"}
- {"type": "ping"}

Messages from server:
- {"type": "load", "url": "...", "source_id": 3}
- {"type": "start", "source_id": 3} / {"type": "pause"} / {"type": "stop"}
- {"type": "volume", "volume": 0.5}
- {"type": "state", "state": "playing", "station": {...}, "volume": 0.7, "error": null}
- {"type": "spotify_authorize", "url": "https://accounts.spotify.com/authorize?..."}
- {"type": "spotify", "connected": true, "access_token": "...", "token_expiry": 1700000000.0}
- {"type": "error", "error": "..."}
- {"type": "pong"}
"""

import asyncio
import logging
import uuid
from typing import Any, Callable, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from streamjet.config import settings
from streamjet.models.listener import Listener
from streamjet.schemas.station import Station
from streamjet.services.errors import PlaybackError, SpotifyAuthError
from streamjet.services.listening_tracker import PlayerSession
from streamjet.services.playback import AudioOutput, PlaybackEngine, PlaybackSnapshot
from streamjet.services.spotify_connection import SpotifyConnection
from streamjet.websocket.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

SpotifyFactory = Callable[[uuid.UUID], SpotifyConnection]


class RemoteAudioOutput(AudioOutput):
    """Relays audio commands to the browser's audio element.

    Each ``load`` bumps ``source_id``; media events tagged with an older id
    belong to a torn-down source and are ignored.
    """

    def __init__(self, manager: ConnectionManager, connection_id: str):
        self.manager = manager
        self.connection_id = connection_id
        self.source_id = 0
        self._pending: set[asyncio.Task] = set()

    async def load(self, url: str) -> None:
        self.source_id += 1
        await self._send({"type": "load", "url": url, "source_id": self.source_id})

    async def start(self) -> None:
        sent = await self.manager.send_json(
            self.connection_id, {"type": "start", "source_id": self.source_id}
        )
        if not sent:
            raise PlaybackError("Player connection is gone")

    async def pause(self) -> None:
        await self._send({"type": "pause"})

    async def stop(self) -> None:
        self.source_id += 1
        await self._send({"type": "stop"})

    def set_volume(self, volume: float) -> None:
        task = asyncio.get_running_loop().create_task(
            self._send({"type": "volume", "volume": volume})
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def media_event(self, event: str, source_id: int | None) -> None:
        """Feed a media event reported by the browser into the engine."""
        if self.engine is None:
            return
        if source_id is not None and source_id != self.source_id:
            logger.debug("[Player] Ignoring stale %s for source %s", event, source_id)
            return

        if event == "playing":
            await self.engine.on_playing()
        elif event == "paused":
            await self.engine.on_paused()
        elif event == "error":
            await self.engine.on_error()

    async def _send(self, data: dict[str, Any]) -> None:
        await self.manager.send_json(self.connection_id, data)


class PlayerHandler:
    """Routes player messages to the playback engine and the listener's session."""

    def __init__(
        self,
        manager: ConnectionManager,
        connection_id: str,
        player_session: PlayerSession,
        output: RemoteAudioOutput,
        session_maker: async_sessionmaker,
        spotify_factory: Optional[SpotifyFactory] = None,
        spotify_client_id: Optional[str] = None,
    ):
        self.manager = manager
        self.connection_id = connection_id
        self.player_session = player_session
        self.engine: PlaybackEngine = player_session.engine
        self.output = output
        self.session_maker = session_maker
        self.spotify_factory = spotify_factory
        self.spotify_client_id = (
            settings.spotify_client_id if spotify_client_id is None else spotify_client_id
        )
        self.spotify: SpotifyConnection | None = None
        self.engine.add_listener(self._push_state)

    def close(self) -> None:
        """Stop the Spotify refresh timer; the stored tokens survive for the next connection."""
        if self.spotify is not None:
            self.spotify.close()
            self.spotify = None

    async def handle_message(self, message: dict[str, Any]) -> None:
        """Route incoming WebSocket messages to appropriate handlers."""
        msg_type = message.get("type")

        handlers = {
            "play": self._handle_play,
            "pause": self._handle_pause,
            "resume": self._handle_resume,
            "stop": self._handle_stop,
            "set_volume": self._handle_set_volume,
            "media_event": self._handle_media_event,
            "login": self._handle_login,
            "logout": self._handle_logout,
            "spotify_authorize": self._handle_spotify_authorize,
            "spotify_login": self._handle_spotify_login,
            "spotify_refresh": self._handle_spotify_refresh,
            "spotify_logout": self._handle_spotify_logout,
            "ping": self._handle_ping,
        }

        handler = handlers.get(msg_type)
        if handler:
            await handler(message)
        else:
            await self._send_error(f"Unknown message type: {msg_type}")

    async def _handle_play(self, message: dict[str, Any]) -> None:
        try:
            station = Station.model_validate(message.get("station") or {})
        except ValidationError:
            await self._send_error("Invalid station")
            return
        if not station.stream_url:
            await self._send_error("Station has no stream URL")
            return
        await self.engine.play(station)

    async def _handle_pause(self, message: dict[str, Any]) -> None:
        await self.engine.pause()

    async def _handle_resume(self, message: dict[str, Any]) -> None:
        await self.engine.resume()

    async def _handle_stop(self, message: dict[str, Any]) -> None:
        await self.engine.stop()

    async def _handle_set_volume(self, message: dict[str, Any]) -> None:
        try:
            volume = float(message.get("volume", self.engine.volume))
        except (TypeError, ValueError):
            await self._send_error("Invalid volume")
            return
        self.engine.set_volume(volume)

    async def _handle_media_event(self, message: dict[str, Any]) -> None:
        await self.output.media_event(message.get("event", ""), message.get("source_id"))

    async def _handle_login(self, message: dict[str, Any]) -> None:
        try:
            listener_id = uuid.UUID(str(message.get("listener_id")))
        except ValueError:
            await self._send_error("Invalid listener ID")
            return

        async with self.session_maker() as session:
            result = await session.execute(select(Listener.id).where(Listener.id == listener_id))
            if result.scalar_one_or_none() is None:
                await self._send_error("Listener not found")
                return

        self.manager.set_listener(self.connection_id, listener_id)
        await self.player_session.set_user(listener_id)

        self.close()
        if self.spotify_factory is not None:
            self.spotify = self.spotify_factory(listener_id)
            self.spotify.on_change = self._push_spotify
            self.spotify.restore()
            await self._push_spotify(self.spotify)

    async def _handle_logout(self, message: dict[str, Any]) -> None:
        self.close()
        self.manager.set_listener(self.connection_id, None)
        await self.player_session.set_user(None)

    async def _handle_spotify_authorize(self, message: dict[str, Any]) -> None:
        if not self.spotify_client_id:
            await self._send_error("Spotify credentials not configured")
            return
        url = SpotifyConnection.authorize_url(
            self.spotify_client_id,
            str(message.get("state", "")),
            str(message.get("redirect_uri", "")),
        )
        await self.manager.send_json(
            self.connection_id, {"type": "spotify_authorize", "url": url}
        )

    async def _handle_spotify_login(self, message: dict[str, Any]) -> None:
        if self.spotify is None:
            await self._send_error("Sign in before connecting Spotify")
            return
        code = message.get("code")
        redirect_uri = message.get("redirect_uri")
        if not code or not redirect_uri:
            await self._send_error("Missing code or redirect_uri")
            return
        try:
            await self.spotify.complete_login(code, redirect_uri)
        except SpotifyAuthError as e:
            logger.info("[Spotify] Login failed for %s: %s", self.spotify.user_id, e)
            await self._send_error(str(e))

    async def _handle_spotify_refresh(self, message: dict[str, Any]) -> None:
        if self.spotify is None or not self.spotify.is_connected:
            await self._send_error("Spotify is not connected")
            return
        await self.spotify.refresh()

    async def _handle_spotify_logout(self, message: dict[str, Any]) -> None:
        if self.spotify is None:
            return
        self.spotify.disconnect()
        await self._push_spotify(self.spotify)

    async def _push_spotify(self, connection: SpotifyConnection) -> None:
        await self.manager.send_json(
            self.connection_id,
            {
                "type": "spotify",
                "connected": connection.is_connected,
                "access_token": connection.access_token,
                "token_expiry": connection.token_expiry,
            },
        )

    async def _handle_ping(self, message: dict[str, Any]) -> None:
        await self.manager.send_json(self.connection_id, {"type": "pong"})

    async def _push_state(self, snapshot: PlaybackSnapshot) -> None:
        await self.manager.send_json(
            self.connection_id,
            {
                "type": "state",
                "state": snapshot.state.value,
                "station": snapshot.station.model_dump() if snapshot.station else None,
                "volume": snapshot.volume,
                "error": snapshot.error,
            },
        )

    async def _send_error(self, error: str) -> None:
        await self.manager.send_json(self.connection_id, {"type": "error", "error": error})
