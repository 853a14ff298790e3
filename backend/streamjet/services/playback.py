"""Playback engine: one audio output behind a small state machine.

    IDLE -> LOADING -> PLAYING <-> PAUSED
               \\-> ERROR
    any state -> IDLE via stop()

The engine only reports state changes to its observers. It knows nothing about
sessions, presence or the database.
"""

import enum
import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable

from streamjet.schemas.station import Station
from streamjet.services.errors import PlaybackError

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load station. The stream may be unavailable."
RESUME_ERROR_MESSAGE = "Failed to resume playback"
DEFAULT_VOLUME = 0.7


class PlaybackState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    ERROR = "error"


@dataclass(frozen=True)
class PlaybackSnapshot:
    """Immutable view of the engine handed to observers."""

    state: PlaybackState
    station: Station | None
    volume: float
    error: str | None

    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAYING

    @property
    def is_loading(self) -> bool:
        return self.state == PlaybackState.LOADING


PlaybackListener = Callable[[PlaybackSnapshot], Awaitable[None] | None]


class AudioOutput(ABC):
    """A native streaming-audio output.

    Outputs report asynchronous media events back through the engine's
    ``on_playing``/``on_paused``/``on_error`` methods once bound.
    """

    engine: "PlaybackEngine | None" = None

    def bind(self, engine: "PlaybackEngine") -> None:
        self.engine = engine

    @abstractmethod
    async def load(self, url: str) -> None:
        """Replace the current source. Never queues behind the previous one."""
        pass

    @abstractmethod
    async def start(self) -> None:
        """Request playback of the current source.

        Raises:
            PlaybackError: If the output refuses to start.
        """
        pass

    @abstractmethod
    async def pause(self) -> None:
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Halt playback and clear the source."""
        pass

    @abstractmethod
    def set_volume(self, volume: float) -> None:
        pass


class PlaybackEngine:
    """Wraps exactly one :class:`AudioOutput` for the lifetime of the engine."""

    def __init__(self, output: AudioOutput, volume: float = DEFAULT_VOLUME):
        self.output = output
        self.state = PlaybackState.IDLE
        self.current_station: Station | None = None
        self.volume = _clamp(volume)
        self.error: str | None = None
        self._listeners: list[PlaybackListener] = []

        output.bind(self)
        output.set_volume(self.volume)

    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAYING

    @property
    def is_loading(self) -> bool:
        return self.state == PlaybackState.LOADING

    def snapshot(self) -> PlaybackSnapshot:
        return PlaybackSnapshot(
            state=self.state,
            station=self.current_station,
            volume=self.volume,
            error=self.error,
        )

    def add_listener(self, listener: PlaybackListener) -> Callable[[], None]:
        """Observe state transitions. Returns a callable that removes the observer."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def play(self, station: Station) -> None:
        """Switch to a station. The old source is torn down, never queued."""
        self.current_station = station
        self.error = None
        await self._transition(PlaybackState.LOADING)

        await self.output.load(station.stream_url)
        try:
            await self.output.start()
        except PlaybackError as e:
            logger.info("[Player] %s failed to start: %s", station.name, e)
            await self._fail(LOAD_ERROR_MESSAGE)

    async def pause(self) -> None:
        await self.output.pause()
        if self.state == PlaybackState.PLAYING:
            await self._transition(PlaybackState.PAUSED)

    async def resume(self) -> None:
        """Resume the current station; failure keeps the station selected."""
        if self.current_station is None:
            return
        try:
            await self.output.start()
        except PlaybackError as e:
            logger.info("[Player] Resume failed: %s", e)
            await self._fail(RESUME_ERROR_MESSAGE)

    async def stop(self) -> None:
        await self.output.stop()
        self.current_station = None
        self.error = None
        await self._transition(PlaybackState.IDLE)

    def set_volume(self, volume: float) -> None:
        self.volume = _clamp(volume)
        self.output.set_volume(self.volume)

    # Output events

    async def on_playing(self) -> None:
        if self.current_station is None:
            return
        self.error = None
        await self._transition(PlaybackState.PLAYING)

    async def on_paused(self) -> None:
        if self.state == PlaybackState.PLAYING:
            await self._transition(PlaybackState.PAUSED)

    async def on_error(self) -> None:
        if self.current_station is None:
            return
        await self._fail(LOAD_ERROR_MESSAGE)

    async def _fail(self, message: str) -> None:
        self.error = message
        await self._transition(PlaybackState.ERROR)

    async def _transition(self, state: PlaybackState) -> None:
        self.state = state
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                result = listener(snapshot)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("[Player] Listener failed on %s", state.value)


def _clamp(volume: float) -> float:
    return max(0.0, min(1.0, volume))
