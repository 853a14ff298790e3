import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streamjet.database import get_db
from streamjet.models.listener import Listener
from streamjet.schemas.listener import ListenerCreate, ListenerResponse, ListenerUpdate
from streamjet.services.clock import utcnow

router = APIRouter(prefix="/listeners", tags=["listeners"])


async def get_listener_or_404(listener_id: uuid.UUID, db: AsyncSession) -> Listener:
    result = await db.execute(select(Listener).where(Listener.id == listener_id))
    listener = result.scalar_one_or_none()
    if not listener:
        raise HTTPException(status_code=404, detail="Listener not found")
    return listener


@router.post("/register", response_model=ListenerResponse, status_code=201)
async def register_listener(
    data: ListenerCreate,
    db: AsyncSession = Depends(get_db),
) -> Listener:
    """Register a new listener (simple auth - just a name)."""
    now = utcnow()
    listener = Listener(name=data.name, listener_metadata={}, first_seen_at=now, last_seen_at=now)
    db.add(listener)
    await db.commit()
    await db.refresh(listener)
    return listener


@router.get("/{listener_id}", response_model=ListenerResponse)
async def get_listener(
    listener_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Listener:
    """Get a listener by ID."""
    return await get_listener_or_404(listener_id, db)


@router.patch("/{listener_id}", response_model=ListenerResponse)
async def update_listener(
    listener_id: uuid.UUID,
    data: ListenerUpdate,
    db: AsyncSession = Depends(get_db),
) -> Listener:
    """Touch the listener's last-seen time, optionally renaming or updating their music identity."""
    listener = await get_listener_or_404(listener_id, db)

    if data.name:
        listener.name = data.name
    if data.listener_metadata is not None:
        listener.listener_metadata = {**listener.listener_metadata, **data.listener_metadata}
    listener.last_seen_at = utcnow()

    await db.commit()
    await db.refresh(listener)
    return listener
