"""Stateless Spotify identity proxy.

Keeps the client secret on the server: the browser asks this proxy to exchange
or refresh OAuth tokens and to run catalogue searches.
"""

import logging
from typing import Any

import httpx

from streamjet.config import settings
from streamjet.services.errors import SpotifyAuthError

logger = logging.getLogger(__name__)


class SpotifyAuthProxy:
    """Forwards token and search requests to Spotify. Every call is independent."""

    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
    ):
        self.client_id = settings.spotify_client_id if client_id is None else client_id
        self.client_secret = (
            settings.spotify_client_secret if client_secret is None else client_secret
        )
        self.token_url = f"{settings.spotify_accounts_url.rstrip('/')}/api/token"
        self.api_url = settings.spotify_api_url.rstrip("/")
        self.http = http or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self._owns_http = http is None

    async def __aenter__(self) -> "SpotifyAuthProxy":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    def _require_credentials(self) -> None:
        if not self.client_id or not self.client_secret:
            raise SpotifyAuthError("Spotify credentials not configured")

    def get_client_id(self) -> dict[str, str]:
        """Only the public client id, for building the authorize URL."""
        self._require_credentials()
        return {"client_id": self.client_id}

    async def exchange_code(self, code: str, redirect_uri: str) -> dict[str, Any]:
        self._require_credentials()
        logger.info("[Spotify] Exchanging code for tokens")
        failure = "Failed to exchange code"
        data = await self._token_request(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            failure,
        )
        return _token_response(data, data.get("refresh_token"), failure)

    async def refresh_token(self, refresh_token: str) -> dict[str, Any]:
        """Refresh an access token, keeping the old refresh token if Spotify omits one."""
        self._require_credentials()
        logger.info("[Spotify] Refreshing token")
        failure = "Failed to refresh token"
        data = await self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            failure,
        )
        return _token_response(data, data.get("refresh_token") or refresh_token, failure)

    async def search(
        self,
        query: str,
        type: str = "artist",
        access_token: str | None = None,
        limit: int = 20,
    ) -> dict[str, Any]:
        """Catalogue search; falls back to a client-credentials token."""
        self._require_credentials()
        token = access_token or await self._client_credentials_token()

        try:
            response = await self.http.get(
                f"{self.api_url}/search",
                params={"q": query, "type": type, "limit": str(limit)},
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as e:
            raise SpotifyAuthError("Search failed") from e

        data = _json_or_empty(response)
        if response.status_code >= 400:
            error = data.get("error")
            message = error.get("message") if isinstance(error, dict) else None
            raise SpotifyAuthError(message or "Search failed")
        if not data:
            raise SpotifyAuthError("Search failed")
        return data

    async def _client_credentials_token(self) -> str:
        logger.info("[Spotify] Getting client credentials token for search")
        try:
            response = await self.http.post(
                self.token_url,
                data={"grant_type": "client_credentials"},
                auth=(self.client_id, self.client_secret),
            )
        except httpx.HTTPError as e:
            raise SpotifyAuthError("Failed to get search token") from e

        token = _json_or_empty(response).get("access_token")
        if response.status_code >= 400 or not isinstance(token, str):
            raise SpotifyAuthError("Failed to get search token")
        return token

    async def _token_request(self, form: dict[str, str], failure: str) -> dict[str, Any]:
        try:
            response = await self.http.post(self.token_url, data=form)
        except httpx.HTTPError as e:
            logger.warning("[Spotify] %s: %s", failure, e)
            raise SpotifyAuthError(failure) from e

        data = _json_or_empty(response)
        if response.status_code >= 400:
            logger.warning("[Spotify] %s: %s", failure, data)
            raise SpotifyAuthError(data.get("error_description") or failure)
        return data


def _token_response(
    data: dict[str, Any], refresh_token: str | None, failure: str
) -> dict[str, Any]:
    access_token = data.get("access_token")
    expires_in = data.get("expires_in")
    if not isinstance(access_token, str) or not isinstance(expires_in, (int, float)):
        logger.warning("[Spotify] %s: malformed token response", failure)
        raise SpotifyAuthError(failure)
    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "expires_in": expires_in,
        "token_type": data.get("token_type", "Bearer"),
    }


def _json_or_empty(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
