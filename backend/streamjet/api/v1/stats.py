"""Personal listening history and the analytics derived from it."""

import uuid
from dataclasses import asdict
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from streamjet.api.v1.listeners import get_listener_or_404
from streamjet.config import settings
from streamjet.database import get_db
from streamjet.models.listening import ListeningSession
from streamjet.schemas.listening import (
    BadgeResponse,
    ListeningSessionResponse,
    StationAffinityResponse,
    TemporalStatsResponse,
)
from streamjet.services.analytics import listening_badges, station_affinity, temporal_stats
from streamjet.services.listening_sessions import ListeningSessionService

router = APIRouter(prefix="/listeners", tags=["stats"])


def _zone(tz: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(tz or settings.default_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(status_code=400, detail=f"Unknown timezone: {tz}")


async def _history(listener_id: uuid.UUID, days: int, db: AsyncSession) -> list[ListeningSession]:
    await get_listener_or_404(listener_id, db)
    return await ListeningSessionService(db).history(listener_id, days=days)


@router.get("/{listener_id}/sessions", response_model=list[ListeningSessionResponse])
async def list_sessions(
    listener_id: uuid.UUID,
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
) -> list[ListeningSession]:
    """Sessions started in the last ``days`` days, newest first."""
    return await _history(listener_id, days, db)


@router.get("/{listener_id}/stats/temporal", response_model=TemporalStatsResponse)
async def get_temporal_stats(
    listener_id: uuid.UUID,
    tz: str | None = Query(None),
    days: int = Query(settings.history_days, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
) -> TemporalStatsResponse:
    zone = _zone(tz)
    sessions = await _history(listener_id, days, db)
    return TemporalStatsResponse(**asdict(temporal_stats(sessions, zone)))


@router.get("/{listener_id}/stats/affinity", response_model=list[StationAffinityResponse])
async def get_station_affinity(
    listener_id: uuid.UUID,
    limit: int = Query(5, ge=1, le=100),
    days: int = Query(settings.history_days, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
) -> list[StationAffinityResponse]:
    sessions = await _history(listener_id, days, db)
    return [StationAffinityResponse(**asdict(a)) for a in station_affinity(sessions)[:limit]]


@router.get("/{listener_id}/stats/badges", response_model=list[BadgeResponse])
async def get_badges(
    listener_id: uuid.UUID,
    tz: str | None = Query(None),
    days: int = Query(settings.history_days, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
) -> list[BadgeResponse]:
    zone = _zone(tz)
    sessions = await _history(listener_id, days, db)
    badges = listening_badges(temporal_stats(sessions, zone), station_affinity(sessions))
    return [BadgeResponse(**asdict(badge)) for badge in badges]
