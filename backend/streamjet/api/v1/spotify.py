import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter, ValidationError

from streamjet.api.v1.deps import get_spotify_proxy
from streamjet.schemas.spotify import (
    ExchangeCodeRequest,
    GetClientIdRequest,
    RefreshTokenRequest,
    SearchRequest,
    SpotifyAuthRequest,
)
from streamjet.services.errors import SpotifyAuthError
from streamjet.services.spotify_auth import SpotifyAuthProxy

logger = logging.getLogger(__name__)

router = APIRouter(tags=["spotify"])

auth_request_adapter = TypeAdapter(SpotifyAuthRequest)


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


@router.post("/spotify-auth")
async def spotify_auth(
    body: dict[str, Any] = Body(...),
    proxy: SpotifyAuthProxy = Depends(get_spotify_proxy),
) -> Any:
    """Identity proxy: one action per request, errors as ``{"error": message}``."""
    try:
        request = auth_request_adapter.validate_python(body)
    except ValidationError:
        return _error("Invalid action")

    try:
        if isinstance(request, GetClientIdRequest):
            return proxy.get_client_id()
        if isinstance(request, ExchangeCodeRequest):
            return await proxy.exchange_code(request.code, request.redirect_uri)
        if isinstance(request, RefreshTokenRequest):
            return await proxy.refresh_token(request.refresh_token)
        if isinstance(request, SearchRequest):
            return await proxy.search(
                request.query, request.type, request.access_token, request.limit
            )
    except SpotifyAuthError as e:
        logger.info("[Spotify] %s failed: %s", request.action, e)
        return _error(str(e))
    return _error("Invalid action")
