from fastapi import APIRouter

from streamjet.api.v1 import (
    health,
    listeners,
    metadata,
    presence,
    reactions,
    sessions,
    spotify,
    station_stats,
    stations,
    stats,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(listeners.router)
api_router.include_router(stats.router)
api_router.include_router(station_stats.router)
api_router.include_router(stations.router)
api_router.include_router(presence.router)
api_router.include_router(reactions.router)
api_router.include_router(metadata.router)
api_router.include_router(sessions.router)
api_router.include_router(spotify.router)
