from streamjet.websocket.connection_manager import ConnectionManager, ConnectionState, manager
from streamjet.websocket.player import PlayerHandler, RemoteAudioOutput
from streamjet.websocket.realtime import RealtimeHandler

__all__ = [
    "ConnectionManager",
    "ConnectionState",
    "manager",
    "PlayerHandler",
    "RemoteAudioOutput",
    "RealtimeHandler",
]
