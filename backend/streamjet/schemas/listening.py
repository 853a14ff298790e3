import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# Listening session schemas
class SessionStart(BaseModel):
    station_uuid: str
    station_name: str


class SessionEnd(BaseModel):
    duration_seconds: int = Field(ge=0)


class ListeningSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    station_uuid: str
    station_name: str
    started_at: datetime
    ended_at: datetime | None
    duration_seconds: int | None


# Presence schemas
class HeartbeatRequest(BaseModel):
    station_uuid: str
    station_name: str


class ActiveListenerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    station_uuid: str
    station_name: str
    started_at: datetime
    last_heartbeat: datetime


class ListenerCountResponse(BaseModel):
    count: int


# Analytics schemas
class HourBucket(BaseModel):
    hour: int
    minutes: int


class DayBucket(BaseModel):
    day: str
    minutes: int


class TemporalStatsResponse(BaseModel):
    by_hour: list[HourBucket]
    by_day: list[DayBucket]
    night_owl_index: int
    weekend_warrior: bool
    peak_hour: int | None


class StationAffinityResponse(BaseModel):
    station_uuid: str
    station_name: str
    total_minutes: int
    session_count: int
    last_listened: datetime


class BadgeResponse(BaseModel):
    key: str
    label: str
    emoji: str
