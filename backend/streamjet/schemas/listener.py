import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ListenerCreate(BaseModel):
    name: str


class ListenerUpdate(BaseModel):
    name: str | None = None
    listener_metadata: dict | None = None


class ListenerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    listener_metadata: dict
    first_seen_at: datetime
    last_seen_at: datetime
