from streamjet.schemas.listener import ListenerCreate, ListenerResponse, ListenerUpdate
from streamjet.schemas.listening import (
    ActiveListenerResponse,
    HeartbeatRequest,
    ListeningSessionResponse,
    SessionEnd,
    SessionStart,
    StationAffinityResponse,
    TemporalStatsResponse,
)
from streamjet.schemas.reaction import (
    ReactionCounts,
    ReactionCreate,
    ReactionResponse,
    StationReactionsResponse,
    TrendingStation,
    UserStationStatsResponse,
)
from streamjet.schemas.station import Country, Station, StationRef, Tag

__all__ = [
    "ListenerCreate",
    "ListenerUpdate",
    "ListenerResponse",
    "SessionStart",
    "SessionEnd",
    "ListeningSessionResponse",
    "HeartbeatRequest",
    "ActiveListenerResponse",
    "TemporalStatsResponse",
    "StationAffinityResponse",
    "ReactionCreate",
    "ReactionResponse",
    "ReactionCounts",
    "StationReactionsResponse",
    "TrendingStation",
    "UserStationStatsResponse",
    "Station",
    "StationRef",
    "Country",
    "Tag",
]
