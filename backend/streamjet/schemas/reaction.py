import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from streamjet.models.reaction import ReactionType


class ReactionCreate(BaseModel):
    station_name: str
    reaction_type: ReactionType


class ReactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    station_uuid: str
    station_name: str
    reaction_type: ReactionType
    created_at: datetime
    expires_at: datetime


class ReactionCounts(BaseModel):
    fire: int = 0
    wave: int = 0
    crying: int = 0
    sleep: int = 0
    total: int = 0


class StationReactionsResponse(BaseModel):
    reactions: list[ReactionResponse]
    counts: ReactionCounts
    energy: int


class TrendingStation(BaseModel):
    uuid: str
    name: str
    count: int


class UserStationStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    station_uuid: str
    station_name: str
    fire_count: int
    wave_count: int
    crying_count: int
    sleep_count: int
    total_listen_time: int
    last_listened_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ReactionPersonality(BaseModel):
    type: ReactionType | None
    label: str
    emoji: str
