"""Remote audio output and the player WebSocket handler."""

import asyncio
import uuid

import pytest

from streamjet.services.listening_tracker import PlayerSession
from streamjet.services.playback import LOAD_ERROR_MESSAGE, PlaybackEngine, PlaybackState
from streamjet.services.spotify_connection import SpotifyConnection, StoredConnection, TokenStore
from streamjet.websocket.player import PlayerHandler, RemoteAudioOutput

from test_doubles import FakeConnectionManager, FakeTokenProvider, make_station


@pytest.fixture
def output(connection_manager):
    return RemoteAudioOutput(connection_manager, "conn-1")


@pytest.fixture
async def engine(output):
    return PlaybackEngine(output)


@pytest.fixture
async def handler(connection_manager, output, engine, session_store, presence_store, clock, session_maker):
    player_session = PlayerSession(
        engine, session_store, presence_store, heartbeat_interval=3600, clock=clock
    )
    async with player_session:
        yield PlayerHandler(connection_manager, "conn-1", player_session, output, session_maker)


class TestRemoteAudioOutput:
    async def test_play_sends_load_and_start(self, engine, connection_manager):
        await engine.play(make_station())

        assert connection_manager.of_type("load") == [
            {"type": "load", "url": "http://streams.test/station-1/live", "source_id": 1}
        ]
        assert connection_manager.of_type("start") == [{"type": "start", "source_id": 1}]
        assert engine.state == PlaybackState.LOADING

    async def test_browser_events_drive_state(self, engine, output):
        await engine.play(make_station())

        await output.media_event("playing", 1)
        assert engine.state == PlaybackState.PLAYING

        await output.media_event("paused", 1)
        assert engine.state == PlaybackState.PAUSED

    async def test_events_from_replaced_source_are_ignored(self, engine, output):
        await engine.play(make_station("a", "A"))
        await engine.play(make_station("b", "B"))

        await output.media_event("error", 1)
        assert engine.state == PlaybackState.LOADING

        await output.media_event("error", 2)
        assert engine.state == PlaybackState.ERROR
        assert engine.error == LOAD_ERROR_MESSAGE

    async def test_closed_connection_fails_load(self):
        manager = FakeConnectionManager(connected=False)
        engine = PlaybackEngine(RemoteAudioOutput(manager, "conn-1"))

        await engine.play(make_station())

        assert engine.state == PlaybackState.ERROR

    async def test_volume_is_relayed(self, engine, connection_manager):
        engine.set_volume(0.25)
        await asyncio.sleep(0)

        assert {"type": "volume", "volume": 0.25} in connection_manager.sent


class TestPlayerHandler:
    async def test_play_message_and_state_push(self, handler, connection_manager, output):
        await handler.handle_message({"type": "play", "station": make_station().model_dump()})
        await handler.handle_message({"type": "media_event", "event": "playing", "source_id": output.source_id})

        states = [m["state"] for m in connection_manager.of_type("state")]
        assert states == ["loading", "playing"]
        assert connection_manager.of_type("state")[-1]["station"]["stationuuid"] == "station-1"

    async def test_invalid_station(self, handler, connection_manager):
        await handler.handle_message({"type": "play", "station": {"name": "No id"}})

        assert connection_manager.of_type("error") == [{"type": "error", "error": "Invalid station"}]

    async def test_station_without_stream(self, handler, connection_manager):
        await handler.handle_message({"type": "play", "station": {"stationuuid": "x", "name": "Silent"}})

        assert connection_manager.of_type("error")[0]["error"] == "Station has no stream URL"

    async def test_login_starts_tracking_when_playing(
        self, handler, listener, output, session_store, connection_manager
    ):
        await handler.handle_message({"type": "play", "station": make_station().model_dump()})
        await handler.handle_message({"type": "media_event", "event": "playing", "source_id": output.source_id})
        assert session_store.started == []

        await handler.handle_message({"type": "login", "listener_id": str(listener.id)})

        assert connection_manager.listeners["conn-1"] == listener.id
        assert session_store.started[0].user_id == listener.id

        await handler.handle_message({"type": "logout"})

        assert session_store.open_ids == set()

    async def test_unknown_listener_is_rejected(self, handler, connection_manager):
        await handler.handle_message({"type": "login", "listener_id": str(uuid.uuid4())})
        await handler.handle_message({"type": "login", "listener_id": "not-a-uuid"})

        errors = [m["error"] for m in connection_manager.of_type("error")]
        assert errors == ["Listener not found", "Invalid listener ID"]

    async def test_volume_and_ping(self, handler, engine, connection_manager):
        await handler.handle_message({"type": "set_volume", "volume": 2})
        await handler.handle_message({"type": "set_volume", "volume": "loud"})
        await handler.handle_message({"type": "ping"})

        assert engine.volume == 1.0
        assert connection_manager.of_type("error")[0]["error"] == "Invalid volume"
        assert connection_manager.of_type("pong") == [{"type": "pong"}]

    async def test_unknown_message(self, handler, connection_manager):
        await handler.handle_message({"type": "rewind"})

        assert connection_manager.of_type("error")[0]["error"] == "Unknown message type: rewind"


class TestPlayerHandlerSpotify:
    @pytest.fixture
    def provider(self):
        return FakeTokenProvider()

    @pytest.fixture
    def token_dir(self, tmp_path):
        return tmp_path / "spotify"

    @pytest.fixture
    async def handler(
        self, connection_manager, output, engine, session_store, presence_store, clock,
        session_maker, provider, token_dir,
    ):
        def spotify_factory(user_id):
            return SpotifyConnection(
                str(user_id), provider, TokenStore(token_dir / f"{user_id}.json"), clock=lambda: 1000.0
            )

        player_session = PlayerSession(
            engine, session_store, presence_store, heartbeat_interval=3600, clock=clock
        )
        async with player_session:
            handler = PlayerHandler(
                connection_manager,
                "conn-1",
                player_session,
                output,
                session_maker,
                spotify_factory=spotify_factory,
                spotify_client_id="client-id",
            )
            yield handler
            handler.close()

    async def test_login_reports_disconnected_spotify(self, handler, listener, connection_manager):
        await handler.handle_message({"type": "login", "listener_id": str(listener.id)})

        assert connection_manager.of_type("spotify") == [
            {"type": "spotify", "connected": False, "access_token": None, "token_expiry": None}
        ]

    async def test_connect_and_disconnect_spotify(
        self, handler, listener, connection_manager, provider, token_dir
    ):
        await handler.handle_message({"type": "login", "listener_id": str(listener.id)})

        await handler.handle_message(
            {"type": "spotify_login", "code": "auth-code", "redirect_uri": "http://localhost/cb"}
        )

        assert provider.exchanged == [("auth-code", "http://localhost/cb")]
        assert connection_manager.of_type("spotify")[-1] == {
            "type": "spotify",
            "connected": True,
            "access_token": "access-1",
            "token_expiry": 4600.0,
        }
        assert (token_dir / f"{listener.id}.json").exists()

        await handler.handle_message({"type": "spotify_logout"})

        assert connection_manager.of_type("spotify")[-1]["connected"] is False
        assert not (token_dir / f"{listener.id}.json").exists()

    async def test_stored_tokens_are_restored_on_login(self, handler, listener, connection_manager, token_dir):
        TokenStore(token_dir / f"{listener.id}.json").save(
            StoredConnection(str(listener.id), "saved-access", "saved-refresh", 99999.0)
        )

        await handler.handle_message({"type": "login", "listener_id": str(listener.id)})

        assert connection_manager.of_type("spotify")[-1]["access_token"] == "saved-access"

    async def test_refresh_pushes_new_token(self, handler, listener, connection_manager, provider):
        await handler.handle_message({"type": "login", "listener_id": str(listener.id)})
        await handler.handle_message(
            {"type": "spotify_login", "code": "auth-code", "redirect_uri": "http://localhost/cb"}
        )

        await handler.handle_message({"type": "spotify_refresh"})

        assert provider.refreshed == ["refresh-1"]
        assert connection_manager.of_type("spotify")[-1]["access_token"] == "access-2"

    async def test_spotify_needs_signed_in_listener(self, handler, connection_manager):
        await handler.handle_message(
            {"type": "spotify_login", "code": "auth-code", "redirect_uri": "http://localhost/cb"}
        )
        await handler.handle_message({"type": "spotify_refresh"})

        errors = [m["error"] for m in connection_manager.of_type("error")]
        assert errors == ["Sign in before connecting Spotify", "Spotify is not connected"]

    async def test_authorize_url(self, handler, connection_manager):
        await handler.handle_message(
            {"type": "spotify_authorize", "state": "state-1", "redirect_uri": "http://localhost/cb"}
        )

        url = connection_manager.of_type("spotify_authorize")[0]["url"]
        assert url.startswith("https://accounts.spotify.com/authorize?")
        assert "client_id=client-id" in url

    async def test_close_stops_refresh_timer_and_keeps_tokens(self, handler, listener, token_dir):
        await handler.handle_message({"type": "login", "listener_id": str(listener.id)})
        await handler.handle_message(
            {"type": "spotify_login", "code": "auth-code", "redirect_uri": "http://localhost/cb"}
        )
        task = handler.spotify._refresh_task

        handler.close()
        await asyncio.sleep(0.01)

        assert task.cancelled()
        assert handler.spotify is None
        assert (token_dir / f"{listener.id}.json").exists()
