"""TheAudioDB metadata lookups used for the music identity editor and artist pages."""

import logging
from typing import Any

import httpx

from streamjet.config import settings
from streamjet.services.errors import MetadataError

logger = logging.getLogger(__name__)


class AudioDBClient:
    """Artist, album and track lookup against TheAudioDB's free JSON API."""

    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ):
        self.base_url = (base_url or settings.audiodb_url).rstrip("/")
        self.http = http or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self._owns_http = http is None

    async def __aenter__(self) -> "AudioDBClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def search_artists(self, query: str) -> list[dict]:
        if len(query) < 2:
            return []
        data = await self._get("/search.php", {"s": query}, "Failed to search artists")
        return data.get("artists") or []

    async def artist(self, artist_id: str) -> dict | None:
        data = await self._get("/artist.php", {"i": artist_id}, "Failed to fetch artist")
        artists = data.get("artists") or []
        return artists[0] if artists else None

    async def discography(self, artist_id: str) -> list[dict]:
        data = await self._get("/album.php", {"i": artist_id}, "Failed to fetch discography")
        return data.get("album") or []

    async def album_tracks(self, album_id: str) -> list[dict]:
        data = await self._get("/track.php", {"m": album_id}, "Failed to fetch tracks")
        return data.get("track") or []

    async def search_track(self, artist_name: str, track_name: str) -> dict | None:
        if not artist_name or not track_name:
            return None
        data = await self._get(
            "/searchtrack.php",
            {"s": artist_name, "t": track_name},
            "Failed to search track",
        )
        tracks = data.get("track") or []
        return tracks[0] if tracks else None

    async def _get(self, path: str, params: dict[str, str], failure: str) -> dict[str, Any]:
        try:
            response = await self.http.get(f"{self.base_url}{path}", params=params)
        except httpx.HTTPError as e:
            logger.warning("[AudioDB] %s: %s", path, e)
            raise MetadataError(failure) from e

        if response.status_code >= 400:
            logger.warning("[AudioDB] %s returned %s", path, response.status_code)
            raise MetadataError(failure)

        try:
            data = response.json()
        except ValueError as e:
            logger.warning("[AudioDB] %s returned a non-JSON body", path)
            raise MetadataError(failure) from e

        # AudioDB answers "null" bodies for unknown ids
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning("[AudioDB] %s returned %s", path, type(data).__name__)
            raise MetadataError(failure)
        return data
