import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class ConnectionState:
    """State for a WebSocket connection."""

    websocket: WebSocket
    kind: str
    # "player" or "realtime"
    listener_id: uuid.UUID | None = None
    created_at: float = field(default_factory=lambda: asyncio.get_running_loop().time())


@dataclass
class ConnectionCounts:
    players: int
    signed_in_players: int
    realtime: int


class ConnectionManager:
    """Manages WebSocket connections for players and realtime subscribers."""

    def __init__(self):
        self.active_connections: dict[str, ConnectionState] = {}

    async def connect(
        self,
        websocket: WebSocket,
        connection_id: str,
        kind: str,
        listener_id: uuid.UUID | None = None,
    ) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        self.active_connections[connection_id] = ConnectionState(
            websocket=websocket,
            kind=kind,
            listener_id=listener_id,
        )

    def disconnect(self, connection_id: str) -> None:
        """Remove a WebSocket connection."""
        if connection_id in self.active_connections:
            del self.active_connections[connection_id]

    def set_listener(self, connection_id: str, listener_id: uuid.UUID | None) -> None:
        """Update the signed-in listener for a connection."""
        if connection_id in self.active_connections:
            self.active_connections[connection_id].listener_id = listener_id

    def counts(self) -> ConnectionCounts:
        """Open sockets by kind, and players with a signed-in listener."""
        players = [c for c in self.active_connections.values() if c.kind == "player"]
        return ConnectionCounts(
            players=len(players),
            signed_in_players=sum(1 for c in players if c.listener_id is not None),
            realtime=sum(1 for c in self.active_connections.values() if c.kind == "realtime"),
        )

    async def send_json(self, connection_id: str, data: dict[str, Any]) -> bool:
        """Send JSON data to a specific connection."""
        conn = self.active_connections.get(connection_id)
        if conn:
            try:
                await conn.websocket.send_json(data)
                return True
            except Exception as e:
                logger.info("[WS] Failed to send JSON to %s: %s", connection_id, e)
                self.disconnect(connection_id)
                return False
        return False


# Global connection manager instance
manager = ConnectionManager()
