from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from streamjet.api.v1.deps import get_metadata
from streamjet.services.audiodb import AudioDBClient
from streamjet.services.errors import MetadataError

router = APIRouter(prefix="/metadata", tags=["metadata"])


@router.get("/artists")
async def search_artists(
    q: str = Query(""),
    audiodb: AudioDBClient = Depends(get_metadata),
) -> list[dict[str, Any]]:
    try:
        return await audiodb.search_artists(q)
    except MetadataError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/artists/{artist_id}")
async def get_artist(
    artist_id: str,
    audiodb: AudioDBClient = Depends(get_metadata),
) -> dict[str, Any]:
    try:
        artist = await audiodb.artist(artist_id)
    except MetadataError as e:
        raise HTTPException(status_code=502, detail=str(e))
    if artist is None:
        raise HTTPException(status_code=404, detail="Artist not found")
    return artist


@router.get("/artists/{artist_id}/albums")
async def get_discography(
    artist_id: str,
    audiodb: AudioDBClient = Depends(get_metadata),
) -> list[dict[str, Any]]:
    try:
        return await audiodb.discography(artist_id)
    except MetadataError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/albums/{album_id}/tracks")
async def get_album_tracks(
    album_id: str,
    audiodb: AudioDBClient = Depends(get_metadata),
) -> list[dict[str, Any]]:
    try:
        return await audiodb.album_tracks(album_id)
    except MetadataError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.get("/tracks")
async def search_track(
    artist: str = Query(...),
    track: str = Query(...),
    audiodb: AudioDBClient = Depends(get_metadata),
) -> dict[str, Any]:
    try:
        result = await audiodb.search_track(artist, track)
    except MetadataError as e:
        raise HTTPException(status_code=502, detail=str(e))
    if result is None:
        raise HTTPException(status_code=404, detail="Track not found")
    return result
