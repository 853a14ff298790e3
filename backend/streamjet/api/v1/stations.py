from fastapi import APIRouter, Depends, HTTPException, Query

from streamjet.api.v1.deps import get_directory
from streamjet.schemas.station import Country, Station, Tag
from streamjet.services.errors import DirectoryError
from streamjet.services.radio_browser import RadioBrowserClient

router = APIRouter(prefix="/stations", tags=["stations"])


@router.get("/search", response_model=list[Station])
async def search_stations(
    q: str = Query(""),
    limit: int = Query(50, ge=1, le=500),
    directory: RadioBrowserClient = Depends(get_directory),
) -> list[Station]:
    """Search stations by name. Queries shorter than two characters return nothing."""
    try:
        return await directory.search(q, limit)
    except DirectoryError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/top", response_model=list[Station])
async def top_stations(
    limit: int = Query(50, ge=1, le=500),
    directory: RadioBrowserClient = Depends(get_directory),
) -> list[Station]:
    try:
        return await directory.top(limit)
    except DirectoryError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/country/{country_code}", response_model=list[Station])
async def stations_by_country(
    country_code: str,
    limit: int = Query(50, ge=1, le=500),
    directory: RadioBrowserClient = Depends(get_directory),
) -> list[Station]:
    try:
        return await directory.by_country(country_code, limit)
    except DirectoryError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/tag/{tag}", response_model=list[Station])
async def stations_by_tag(
    tag: str,
    limit: int = Query(50, ge=1, le=500),
    directory: RadioBrowserClient = Depends(get_directory),
) -> list[Station]:
    try:
        return await directory.by_tag(tag, limit)
    except DirectoryError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/countries", response_model=list[Country])
async def list_countries(
    directory: RadioBrowserClient = Depends(get_directory),
) -> list[Country]:
    try:
        return await directory.countries()
    except DirectoryError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/tags", response_model=list[Tag])
async def list_tags(
    limit: int = Query(100, ge=1, le=1000),
    directory: RadioBrowserClient = Depends(get_directory),
) -> list[Tag]:
    try:
        return await directory.tags(limit)
    except DirectoryError as e:
        raise HTTPException(status_code=502, detail=str(e))
