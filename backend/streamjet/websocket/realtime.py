"""Realtime WebSocket: forwards change events for the requested topics.

Each connection holds one hub subscription per topic; all connections on the
same topic share the hub's single channel for it.
"""

from typing import Any

from streamjet.services.realtime import RealtimeHub, Subscription
from streamjet.websocket.connection_manager import ConnectionManager


class RealtimeHandler:
    """Subscribes a connection to hub topics and relays their events."""

    def __init__(self, hub: RealtimeHub, manager: ConnectionManager, connection_id: str):
        self.hub = hub
        self.manager = manager
        self.connection_id = connection_id
        self.subscriptions: dict[str, Subscription] = {}

    def subscribe(self, topics: list[str]) -> None:
        for topic in topics:
            if topic and topic not in self.subscriptions:
                self.subscriptions[topic] = self.hub.subscribe(topic, self._forward)

    def unsubscribe(self, topics: list[str]) -> None:
        for topic in topics:
            subscription = self.subscriptions.pop(topic, None)
            if subscription:
                subscription.close()

    def close(self) -> None:
        self.unsubscribe(list(self.subscriptions))

    async def handle_message(self, message: dict[str, Any]) -> None:
        msg_type = message.get("type")
        topics = message.get("topics") or []

        if msg_type == "subscribe":
            self.subscribe(topics)
        elif msg_type == "unsubscribe":
            self.unsubscribe(topics)
        elif msg_type == "ping":
            await self.manager.send_json(self.connection_id, {"type": "pong"})
            return
        else:
            await self.manager.send_json(
                self.connection_id,
                {"type": "error", "error": f"Unknown message type: {msg_type}"},
            )
            return

        await self.manager.send_json(
            self.connection_id,
            {"type": "subscribed", "topics": sorted(self.subscriptions)},
        )

    async def _forward(self, change: dict[str, Any]) -> None:
        await self.manager.send_json(self.connection_id, {"type": "change", **change})
