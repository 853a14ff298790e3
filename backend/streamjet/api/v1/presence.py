import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from streamjet.api.v1.deps import require_listener
from streamjet.database import get_db
from streamjet.models.listening import ActiveListener
from streamjet.schemas.listening import (
    ActiveListenerResponse,
    HeartbeatRequest,
    ListenerCountResponse,
)
from streamjet.schemas.station import StationRef
from streamjet.services.clock import utcnow
from streamjet.services.presence import PresenceService, publish_departure, publish_heartbeat
from streamjet.services.realtime import hub

router = APIRouter(tags=["presence"])


@router.put("/presence", status_code=204)
async def heartbeat(
    data: HeartbeatRequest,
    listener_id: uuid.UUID = Depends(require_listener),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Record that the signed-in listener is playing a station right now."""
    now = utcnow()
    station = StationRef(station_uuid=data.station_uuid, station_name=data.station_name)
    await PresenceService(db).beat(listener_id, station, now)
    await db.commit()
    await publish_heartbeat(hub, listener_id, station, now)


@router.delete("/presence", status_code=204)
async def clear_presence(
    listener_id: uuid.UUID = Depends(require_listener),
    db: AsyncSession = Depends(get_db),
) -> None:
    station_uuid = await PresenceService(db).clear(listener_id)
    await db.commit()
    if station_uuid:
        await publish_departure(hub, listener_id, station_uuid)


@router.get("/stations/{station_uuid}/listeners", response_model=list[ActiveListenerResponse])
async def station_listeners(
    station_uuid: str,
    db: AsyncSession = Depends(get_db),
) -> list[ActiveListener]:
    """Listeners whose heartbeat on this station is still fresh."""
    return await PresenceService(db).active_listeners(station_uuid)


@router.get("/presence/count", response_model=ListenerCountResponse)
async def listener_count(db: AsyncSession = Depends(get_db)) -> ListenerCountResponse:
    return ListenerCountResponse(count=await PresenceService(db).listener_count())
