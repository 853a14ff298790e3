"""A listener's Spotify connection: stored tokens plus scheduled refresh.

One local record ``{user_id, access_token, refresh_token, token_expiry}`` is
kept per listener. The access token is refreshed five minutes before it
expires; a failed refresh disconnects instead of retrying.
"""

import asyncio
import json
import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Protocol
from urllib.parse import urlencode

from streamjet.config import settings
from streamjet.services.errors import SpotifyAuthError

logger = logging.getLogger(__name__)

REFRESH_BUFFER_SECONDS = 5 * 60
AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_SCOPES = " ".join(
    [
        "streaming",
        "user-read-email",
        "user-read-private",
        "user-read-playback-state",
        "user-modify-playback-state",
        "user-read-currently-playing",
    ]
)


class TokenProvider(Protocol):
    async def exchange_code(self, code: str, redirect_uri: str) -> dict[str, Any]: ...

    async def refresh_token(self, refresh_token: str) -> dict[str, Any]: ...


@dataclass
class StoredConnection:
    user_id: str
    access_token: str
    refresh_token: str | None
    token_expiry: float
    # Epoch seconds


class TokenStore:
    """JSON file holding at most one connection record."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    @classmethod
    def for_user(cls, user_id: str) -> "TokenStore":
        return cls(Path(settings.spotify_token_dir) / f"{user_id}.json")

    def load(self, user_id: str) -> StoredConnection | None:
        """Return the record for ``user_id``; a record for anyone else is discarded."""
        if not self.path.exists():
            return None
        try:
            record = StoredConnection(**json.loads(self.path.read_text()))
        except (ValueError, TypeError):
            logger.warning("[Spotify] Discarding unreadable token record")
            self.clear()
            return None

        if record.user_id != user_id:
            self.clear()
            return None
        return record

    def save(self, record: StoredConnection) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(asdict(record)))

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class SpotifyConnection:
    """Spotify identity for one signed-in listener.

    ``on_change`` is awaited after every login, refresh and forced disconnect
    so the owner can push the new token state to the browser.
    """

    def __init__(
        self,
        user_id: str,
        provider: TokenProvider,
        store: TokenStore | None = None,
        clock: Callable[[], float] = time.time,
        on_change: Optional[Callable[["SpotifyConnection"], Awaitable[None]]] = None,
    ):
        self.user_id = user_id
        self.provider = provider
        self.store = store or TokenStore.for_user(user_id)
        self.clock = clock
        self.on_change = on_change
        self.access_token: str | None = None
        self.refresh_token_value: str | None = None
        self.token_expiry: float | None = None
        self._refresh_task: asyncio.Task | None = None

    @property
    def is_connected(self) -> bool:
        return self.access_token is not None

    @staticmethod
    def authorize_url(client_id: str, state: str, redirect_uri: str) -> str:
        query = urlencode(
            {
                "client_id": client_id,
                "response_type": "code",
                "redirect_uri": redirect_uri,
                "scope": SPOTIFY_SCOPES,
                "state": state,
            }
        )
        return f"{AUTHORIZE_URL}?{query}"

    def restore(self) -> bool:
        """Load the stored record for this listener and arm the refresh timer."""
        record = self.store.load(self.user_id)
        if record is None:
            return False
        self._apply(record.access_token, record.refresh_token, record.token_expiry)
        return True

    async def complete_login(self, code: str, redirect_uri: str) -> None:
        """Exchange the OAuth callback code for tokens.

        Raises:
            SpotifyAuthError: the provider refused the code or answered garbage
        """
        data = await self.provider.exchange_code(code, redirect_uri)
        self._accept(data, data.get("refresh_token"))
        await self._notify()

    async def refresh(self) -> str | None:
        """Refresh the access token. Any failure disconnects and returns ``None``."""
        if not self.refresh_token_value:
            return None
        try:
            data = await self.provider.refresh_token(self.refresh_token_value)
            self._accept(data, data.get("refresh_token") or self.refresh_token_value)
        except Exception:
            logger.exception("[Spotify] Failed to refresh token for %s", self.user_id)
            self.disconnect()
            await self._notify()
            return None

        await self._notify()
        return self.access_token

    def disconnect(self) -> None:
        """Forget the tokens and delete the stored record."""
        self.close()
        self.access_token = None
        self.refresh_token_value = None
        self.token_expiry = None
        self.store.clear()

    def close(self) -> None:
        """Stop the refresh timer; the stored record is kept for the next restore."""
        task, self._refresh_task = self._refresh_task, None
        # The timer may be the caller, refreshing itself
        if task is not None and task is not _current_task():
            task.cancel()

    def _accept(self, data: dict[str, Any], refresh_token: str | None) -> None:
        access_token = data.get("access_token")
        expires_in = data.get("expires_in")
        if not isinstance(access_token, str) or not isinstance(expires_in, (int, float)):
            raise SpotifyAuthError("Malformed token response")

        expiry = self.clock() + expires_in
        self._apply(access_token, refresh_token, expiry)
        self.store.save(
            StoredConnection(
                user_id=self.user_id,
                access_token=access_token,
                refresh_token=refresh_token,
                token_expiry=expiry,
            )
        )

    def _apply(self, access_token: str, refresh_token: str | None, expiry: float) -> None:
        self.access_token = access_token
        self.refresh_token_value = refresh_token
        self.token_expiry = expiry
        self._schedule_refresh()

    def _schedule_refresh(self) -> None:
        self.close()
        delay = max(0.0, self.token_expiry - self.clock() - REFRESH_BUFFER_SECONDS)
        self._refresh_task = asyncio.get_running_loop().create_task(self._refresh_later(delay))

    async def _refresh_later(self, delay: float) -> None:
        await asyncio.sleep(delay)
        await self.refresh()

    async def _notify(self) -> None:
        if self.on_change is None:
            return
        try:
            await self.on_change(self)
        except Exception:
            logger.exception("[Spotify] Connection change handler failed")


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
