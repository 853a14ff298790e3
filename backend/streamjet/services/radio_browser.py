"""Read-only client for the public radio-browser station directory."""

import logging
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from streamjet.config import settings
from streamjet.schemas.station import Country, Station, Tag
from streamjet.services.errors import DirectoryError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Most-clicked first, broken streams hidden
ORDERED_PARAMS = {"hidebroken": "true", "order": "clickcount", "reverse": "true"}


class RadioBrowserClient:
    """Station search and listing against radio-browser.

    Results are memoized per instance, so create one client per request.
    """

    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ):
        self.base_url = (base_url or settings.radio_browser_url).rstrip("/")
        self.http = http or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self._owns_http = http is None
        self._memo: dict[tuple, Any] = {}

    async def __aenter__(self) -> "RadioBrowserClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def search(self, name: str, limit: int = 50) -> list[Station]:
        """Search stations by name."""
        if len(name) < 2:
            return []
        return await self._stations(
            f"/stations/byname/{quote(name, safe='')}",
            {"limit": str(limit), **ORDERED_PARAMS},
        )

    async def top(self, limit: int = 50) -> list[Station]:
        """Most-clicked stations."""
        return await self._stations(
            "/stations/topclick",
            {"limit": str(limit), "hidebroken": "true"},
        )

    async def by_country(self, country_code: str, limit: int = 50) -> list[Station]:
        """Stations whose country code matches exactly."""
        if not country_code:
            return []
        return await self._stations(
            f"/stations/bycountrycodeexact/{quote(country_code, safe='')}",
            {"limit": str(limit), **ORDERED_PARAMS},
        )

    async def by_tag(self, tag: str, limit: int = 50) -> list[Station]:
        """Stations carrying a tag."""
        if not tag:
            return []
        return await self._stations(
            f"/stations/bytag/{quote(tag, safe='')}",
            {"limit": str(limit), **ORDERED_PARAMS},
        )

    async def countries(self) -> list[Country]:
        return await self._get(Country, "/countries", {}, "Failed to fetch countries")

    async def tags(self, limit: int = 100) -> list[Tag]:
        return await self._get(
            Tag,
            "/tags",
            {"limit": str(limit), "order": "stationcount", "reverse": "true"},
            "Failed to fetch tags",
        )

    async def _stations(self, path: str, params: dict[str, str]) -> list[Station]:
        return await self._get(Station, path, params, "Failed to fetch stations")

    async def _get(
        self, model: type[ModelT], path: str, params: dict[str, str], failure: str
    ) -> list[ModelT]:
        key = (path, tuple(sorted(params.items())))
        if key in self._memo:
            return self._memo[key]

        try:
            response = await self.http.get(f"{self.base_url}{path}", params=params)
        except httpx.HTTPError as e:
            logger.warning("[Directory] %s %s: %s", path, params, e)
            raise DirectoryError(failure) from e

        if response.status_code >= 400:
            logger.warning("[Directory] %s returned %s", path, response.status_code)
            raise DirectoryError(failure)

        try:
            items = _list_adapter(model).validate_json(response.content)
        except ValidationError as e:
            logger.warning("[Directory] %s returned an unreadable body: %s", path, e)
            raise DirectoryError(failure) from e

        self._memo[key] = items
        return items


def _list_adapter(model: type[ModelT]) -> TypeAdapter[list[ModelT]]:
    return TypeAdapter(list[model])
