import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from streamjet.api.v1.deps import require_listener
from streamjet.database import get_db
from streamjet.models.listening import ListeningSession
from streamjet.schemas.listening import ListeningSessionResponse, SessionEnd, SessionStart
from streamjet.services.listening_sessions import ListeningSessionService

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=ListeningSessionResponse, status_code=201)
async def start_session(
    data: SessionStart,
    listener_id: uuid.UUID = Depends(require_listener),
    db: AsyncSession = Depends(get_db),
) -> ListeningSession:
    """Open a listening session for the signed-in listener."""
    service = ListeningSessionService(db)
    row = await service.start(listener_id, data.station_uuid, data.station_name)
    await db.commit()
    return row


@router.post("/{session_id}/end", response_model=ListeningSessionResponse)
async def end_session(
    session_id: uuid.UUID,
    data: SessionEnd,
    listener_id: uuid.UUID = Depends(require_listener),
    db: AsyncSession = Depends(get_db),
) -> ListeningSession:
    """Close one of the listener's open sessions with its measured duration."""
    service = ListeningSessionService(db)
    row = await service.get(session_id)
    if not row or row.user_id != listener_id:
        raise HTTPException(status_code=404, detail="Session not found")
    if row.ended_at is not None:
        raise HTTPException(status_code=409, detail="Session already ended")

    row = await service.end(session_id, data.duration_seconds)
    await db.commit()
    return row
