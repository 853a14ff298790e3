import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from streamjet.database import get_db
from streamjet.services.presence import PresenceService
from streamjet.services.realtime import hub
from streamjet.websocket import manager

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    # "ok", or "degraded" while the database is unreachable
    database: str
    version: str
    players: int
    signed_in_players: int
    realtime_connections: int
    realtime_channels: int
    live_listeners: int | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Database reachability plus the live socket, channel and listener counts."""
    live_listeners = None
    try:
        await db.execute(text("SELECT 1"))
        live_listeners = await PresenceService(db).listener_count()
    except Exception as e:
        logger.warning("[Health] Database check failed: %s", e)

    counts = manager.counts()
    return HealthResponse(
        status="ok" if live_listeners is not None else "degraded",
        database="healthy" if live_listeners is not None else "unhealthy",
        version="0.1.0",
        players=counts.players,
        signed_in_players=counts.signed_in_players,
        realtime_connections=counts.realtime,
        realtime_channels=len(hub.channels),
        live_listeners=live_listeners,
    )
