import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from streamjet.database import Base


class ReactionType(str, enum.Enum):
    FIRE = "fire"
    WAVE = "wave"
    CRYING = "crying"
    SLEEP = "sleep"


class StationReaction(Base):
    """A short-lived reaction of a listener toward a station."""

    __tablename__ = "station_reactions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("listeners.id", ondelete="CASCADE"), index=True
    )
    station_uuid: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    station_name: Mapped[str] = mapped_column(String(255), nullable=False)
    reaction_type: Mapped[ReactionType] = mapped_column(
        Enum(ReactionType, name="reaction_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Assigned by the server from the reaction TTL


class UserStationStats(Base):
    """Per-listener, per-station reaction counters."""

    __tablename__ = "user_station_stats"
    __table_args__ = (UniqueConstraint("user_id", "station_uuid", name="uq_user_station_stats"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("listeners.id", ondelete="CASCADE")
    )
    station_uuid: Mapped[str] = mapped_column(String(64), nullable=False)
    station_name: Mapped[str] = mapped_column(String(255), nullable=False)

    fire_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    wave_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    crying_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sleep_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_listen_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_listened_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
