import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from streamjet.api.v1.listeners import get_listener_or_404
from streamjet.database import get_db
from streamjet.models.reaction import UserStationStats
from streamjet.schemas.reaction import ReactionPersonality, UserStationStatsResponse
from streamjet.services.station_stats import (
    StationStatsService,
    reaction_personality,
    top_stations,
)

router = APIRouter(prefix="/listeners", tags=["station-stats"])


async def _stats(listener_id: uuid.UUID, db: AsyncSession) -> list[UserStationStats]:
    await get_listener_or_404(listener_id, db)
    return await StationStatsService(db).for_user(listener_id)


@router.get("/{listener_id}/station-stats", response_model=list[UserStationStatsResponse])
async def list_station_stats(
    listener_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> list[UserStationStats]:
    """Reaction counters per station, most recently updated first."""
    return await _stats(listener_id, db)


@router.get("/{listener_id}/station-stats/personality", response_model=ReactionPersonality)
async def get_personality(
    listener_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> ReactionPersonality:
    reaction_type, label, emoji = reaction_personality(await _stats(listener_id, db))
    return ReactionPersonality(type=reaction_type, label=label, emoji=emoji)


@router.get("/{listener_id}/station-stats/top", response_model=list[UserStationStatsResponse])
async def get_top_stations(
    listener_id: uuid.UUID,
    limit: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
) -> list[UserStationStats]:
    return top_stations(await _stats(listener_id, db), limit)
