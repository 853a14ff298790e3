"""In-process change feed with one shared channel per topic.

Every component watching the same topic (for example ``reactions:<station>``)
shares a single channel. The channel is opened by the first subscriber and torn
down when the last one detaches, so UI fan-out never multiplies channels.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[dict[str, Any]], Awaitable[None] | None]


def reactions_topic(station_uuid: str) -> str:
    return f"reactions:{station_uuid}"


def listeners_topic(station_uuid: str | None = None) -> str:
    """Presence topic for one station, or the global one when no station is given."""
    return f"listeners:{station_uuid}" if station_uuid else "listeners"


@dataclass
class TopicChannel:
    """A shared channel for one topic key."""

    topic: str
    handlers: dict[int, ChangeHandler] = field(default_factory=dict)

    @property
    def ref_count(self) -> int:
        return len(self.handlers)


class Subscription:
    """Handle returned by :meth:`RealtimeHub.subscribe`; ``close()`` detaches it."""

    def __init__(self, hub: "RealtimeHub", topic: str, key: int):
        self._hub = hub
        self.topic = topic
        self._key = key
        self.closed = False

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._hub._detach(self.topic, self._key)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class RealtimeHub:
    """Reference-counted topic channels with fan-out publish."""

    def __init__(self):
        self.channels: dict[str, TopicChannel] = {}
        self._next_key = 0

    def subscribe(self, topic: str, handler: ChangeHandler) -> Subscription:
        channel = self.channels.get(topic)
        if channel is None:
            channel = TopicChannel(topic=topic)
            self.channels[topic] = channel
            logger.debug("[Realtime] Opened channel %s", topic)

        self._next_key += 1
        channel.handlers[self._next_key] = handler
        return Subscription(self, topic, self._next_key)

    def ref_count(self, topic: str) -> int:
        channel = self.channels.get(topic)
        return channel.ref_count if channel else 0

    async def publish(
        self,
        topic: str,
        event: str,
        record: dict[str, Any] | None = None,
    ) -> int:
        """Deliver a change event to every subscriber of the topic.

        Returns the number of handlers the event reached. A failing handler is
        logged and does not stop delivery to the others.
        """
        channel = self.channels.get(topic)
        if channel is None:
            return 0

        payload = {"topic": topic, "event": event, "record": record or {}}
        delivered = 0
        for handler in list(channel.handlers.values()):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("[Realtime] Handler failed for %s", topic)
        return delivered

    def _detach(self, topic: str, key: int) -> None:
        channel = self.channels.get(topic)
        if channel is None:
            return
        channel.handlers.pop(key, None)
        if channel.ref_count == 0:
            del self.channels[topic]
            logger.debug("[Realtime] Closed channel %s", topic)


# Global hub instance
hub = RealtimeHub()
