import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from streamjet.database import Base


class ListeningSession(Base):
    """One playback episode of a station by a signed-in listener."""

    __tablename__ = "listening_sessions"
    __table_args__ = (Index("ix_listening_sessions_user_id_started_at", "user_id", "started_at"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("listeners.id", ondelete="CASCADE")
    )
    station_uuid: Mapped[str] = mapped_column(String(64), nullable=False)
    station_name: Mapped[str] = mapped_column(String(255), nullable=False)

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    # Set once, when the session closes
    duration_seconds: Mapped[int | None] = mapped_column(Integer)


class ActiveListener(Base):
    """Presence heartbeat: at most one row per listener."""

    __tablename__ = "active_listeners"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("listeners.id", ondelete="CASCADE"),
        unique=True,
    )
    station_uuid: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    station_name: Mapped[str] = mapped_column(String(255), nullable=False)

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    last_heartbeat: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    # Readers treat the row as live only inside the freshness window
