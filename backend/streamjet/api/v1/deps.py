import uuid
from typing import AsyncGenerator

from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streamjet.database import get_db
from streamjet.models.listener import Listener
from streamjet.services.audiodb import AudioDBClient
from streamjet.services.radio_browser import RadioBrowserClient
from streamjet.services.spotify_auth import SpotifyAuthProxy


async def get_listener_id(
    x_listener_id: str | None = Header(None),
) -> uuid.UUID | None:
    """The signed-in listener from the ``X-Listener-Id`` header, if any."""
    if not x_listener_id:
        return None
    try:
        return uuid.UUID(x_listener_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid listener ID")


async def require_listener(
    listener_id: uuid.UUID | None = Depends(get_listener_id),
    db: AsyncSession = Depends(get_db),
) -> uuid.UUID:
    """Reject the request unless a registered listener is signed in."""
    if listener_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    result = await db.execute(select(Listener.id).where(Listener.id == listener_id))
    if result.scalar_one_or_none() is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return listener_id


async def get_directory() -> AsyncGenerator[RadioBrowserClient, None]:
    async with RadioBrowserClient() as client:
        yield client


async def get_metadata() -> AsyncGenerator[AudioDBClient, None]:
    async with AudioDBClient() as client:
        yield client


async def get_spotify_proxy() -> AsyncGenerator[SpotifyAuthProxy, None]:
    async with SpotifyAuthProxy() as proxy:
        yield proxy
