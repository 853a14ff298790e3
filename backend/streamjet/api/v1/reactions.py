import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from streamjet.api.v1.deps import require_listener
from streamjet.database import get_db
from streamjet.models.reaction import StationReaction
from streamjet.schemas.reaction import (
    ReactionCounts,
    ReactionCreate,
    ReactionResponse,
    StationReactionsResponse,
    TrendingStation,
)
from streamjet.services.clock import utcnow
from streamjet.services.reactions import ReactionService, calculate_energy, reaction_counts
from streamjet.services.realtime import hub, reactions_topic

router = APIRouter(tags=["reactions"])


@router.post(
    "/stations/{station_uuid}/reactions",
    response_model=ReactionResponse,
    status_code=201,
)
async def add_reaction(
    station_uuid: str,
    data: ReactionCreate,
    listener_id: uuid.UUID = Depends(require_listener),
    db: AsyncSession = Depends(get_db),
) -> StationReaction:
    """Replace the listener's reaction on a station."""
    reaction = await ReactionService(db).add_reaction(
        listener_id, station_uuid, data.station_name, data.reaction_type
    )
    await db.commit()

    await hub.publish(
        reactions_topic(station_uuid),
        "INSERT",
        ReactionResponse.model_validate(reaction).model_dump(mode="json"),
    )
    return reaction


@router.get("/stations/{station_uuid}/reactions", response_model=StationReactionsResponse)
async def station_reactions(
    station_uuid: str,
    db: AsyncSession = Depends(get_db),
) -> StationReactionsResponse:
    """Live reactions on a station with their counts and the station's energy."""
    now = utcnow()
    reactions = await ReactionService(db).station_reactions(station_uuid, now)
    return StationReactionsResponse(
        reactions=[ReactionResponse.model_validate(r) for r in reactions],
        counts=ReactionCounts(**reaction_counts(reactions)),
        energy=calculate_energy(reactions, now),
    )


@router.get("/stations/{station_uuid}/reactions/me", response_model=ReactionResponse | None)
async def my_reaction(
    station_uuid: str,
    listener_id: uuid.UUID = Depends(require_listener),
    db: AsyncSession = Depends(get_db),
) -> StationReaction | None:
    return await ReactionService(db).user_reaction(listener_id, station_uuid)


@router.get("/reactions/trending", response_model=list[TrendingStation])
async def trending_stations(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> list[TrendingStation]:
    """Stations with the most live reactions."""
    entries = await ReactionService(db).trending(limit)
    return [TrendingStation(uuid=e.uuid, name=e.name, count=e.count) for e in entries]
