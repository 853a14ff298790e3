import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from streamjet.api.v1.router import api_router
from streamjet.config import settings
from streamjet.database import async_session_maker, engine
from streamjet.services.listening_sessions import ListeningSessionStore
from streamjet.services.listening_tracker import PlayerSession
from streamjet.services.playback import PlaybackEngine
from streamjet.services.presence import DatabasePresenceStore
from streamjet.services.realtime import hub
from streamjet.services.spotify_auth import SpotifyAuthProxy
from streamjet.services.spotify_connection import SpotifyConnection
from streamjet.websocket import PlayerHandler, RealtimeHandler, RemoteAudioOutput, manager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger.info("[App] StreamJet API starting")
    yield
    # Shutdown
    await engine.dispose()


app = FastAPI(
    title="StreamJet API",
    description="Internet radio listening, presence and reactions API",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api/v1")


# WebSocket endpoint mirroring one browser player
@app.websocket("/ws/player")
async def websocket_player(
    websocket: WebSocket,
    listener_id: Optional[str] = Query(None),
):
    """
    WebSocket endpoint for one radio player.

    The browser plays the stream; this connection keeps the authoritative
    playback state and drives listening sessions and presence from it.
    See ``streamjet.websocket.player`` for the message protocol.

    Query params:
    - listener_id: Optional listener UUID to sign in immediately
    """
    connection_id = str(uuid.uuid4())

    try:
        listener_uuid = uuid.UUID(listener_id) if listener_id else None
    except ValueError:
        await websocket.close(code=4000, reason="Invalid listener ID")
        return

    await manager.connect(websocket, connection_id, "player")

    output = RemoteAudioOutput(manager, connection_id)
    player_session = PlayerSession(
        PlaybackEngine(output),
        ListeningSessionStore(async_session_maker),
        DatabasePresenceStore(async_session_maker, hub=hub),
    )
    spotify_proxy = SpotifyAuthProxy()
    handler = PlayerHandler(
        manager,
        connection_id,
        player_session,
        output,
        async_session_maker,
        spotify_factory=lambda user_id: SpotifyConnection(str(user_id), spotify_proxy),
    )

    try:
        await manager.send_json(
            connection_id,
            {"type": "connected", "connection_id": connection_id},
        )
        if listener_uuid:
            await handler.handle_message({"type": "login", "listener_id": str(listener_uuid)})

        while True:
            data = await websocket.receive_json()
            await handler.handle_message(data)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.exception("[WS] Player connection %s failed", connection_id)
        await manager.send_json(
            connection_id,
            {"type": "error", "error": f"{type(e).__name__}: {e}"},
        )
    finally:
        # Closes the open listening session and removes presence
        await player_session.close()
        handler.close()
        await spotify_proxy.aclose()
        manager.disconnect(connection_id)


# WebSocket endpoint for realtime change feeds
@app.websocket("/ws/realtime")
async def websocket_realtime(
    websocket: WebSocket,
    topics: Optional[str] = Query(None),
):
    """
    WebSocket endpoint relaying change events.

    Query params:
    - topics: Comma-separated topics, e.g. "reactions:<station>,listeners"

    Messages from client:
    - {"type": "subscribe", "topics": ["listeners:<station>"]}
    - {"type": "unsubscribe", "topics": ["listeners:<station>"]}
    - {"type": "ping"}

    Messages from server:
    - {"type": "subscribed", "topics": [...]}
    - {"type": "change", "topic": "...", "event": "INSERT", "record": {...}}
    - {"type": "error", "error": "..."}
    - {"type": "pong"}
    """
    connection_id = str(uuid.uuid4())
    initial_topics = [t.strip() for t in (topics or "").split(",") if t.strip()]

    await manager.connect(websocket, connection_id, "realtime")
    handler = RealtimeHandler(hub, manager, connection_id)

    try:
        handler.subscribe(initial_topics)
        await manager.send_json(
            connection_id,
            {"type": "subscribed", "topics": sorted(handler.subscriptions)},
        )

        while True:
            data = await websocket.receive_json()
            await handler.handle_message(data)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.exception("[WS] Realtime connection %s failed", connection_id)
        await manager.send_json(
            connection_id,
            {"type": "error", "error": f"{type(e).__name__}: {e}"},
        )
    finally:
        handler.close()
        manager.disconnect(connection_id)
