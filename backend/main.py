from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import ticketmaster_client
from favorites_store import FavoriteEvent, FavoriteNotFound, FavoritesRepository, connect_favorites
from search_query import upstream_search_params
from spotify_client import SpotifyAuthError, spotify_artist_albums, spotify_search_artist
from spotify_state import SpotifyTokenCache
from ticketmaster_client import TicketmasterConfigError
from upstream import UpstreamError


def _load_env_file(path: str) -> None:
    """
    Minimal dotenv loader (no extra dependency).
    Loads KEY=VALUE lines into os.environ without overriding already-set vars.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            for raw_line in f:
                line = raw_line.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                if key:
                    os.environ.setdefault(key, value.strip().strip("'").strip('"'))
    except FileNotFoundError:
        return


# Auto-load backend/.env if present (useful for local dev).
_load_env_file(os.path.join(os.path.dirname(__file__), ".env"))

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(title="Event Finder API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:4200",
        "http://127.0.0.1:4200",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Process-wide services, created once and handed to routes through dependencies.
app.state.spotify_tokens = SpotifyTokenCache()
app.state.favorites = connect_favorites()


def get_spotify_tokens(request: Request) -> SpotifyTokenCache:
    return request.app.state.spotify_tokens


def get_favorites(request: Request) -> Optional[FavoritesRepository]:
    return request.app.state.favorites


@app.exception_handler(StarletteHTTPException)
async def _error_body(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    if exc.status_code == 404 and detail == "Not Found":
        detail = "API endpoint not found"
    return JSONResponse(status_code=exc.status_code, content={"error": str(detail)})


@app.exception_handler(RequestValidationError)
async def _validation_error_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = (exc.errors() or [{}])[0]
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{where}: {first.get('msg', 'invalid request')}" if where else "Invalid request"
    return JSONResponse(status_code=422, content={"error": message})


def _upstream_failure(what: str, e: Exception) -> HTTPException:
    logger.error("%s: %s", what, e)
    return HTTPException(status_code=500, detail=what)


@app.get("/api/health")
def health(favorites: Optional[FavoritesRepository] = Depends(get_favorites)) -> Dict[str, Any]:
    return {
        "status": "ok",
        "database": favorites is not None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# Ticketmaster


@app.get("/api/suggest")
def suggest(keyword: str = "") -> Dict[str, Any]:
    try:
        return ticketmaster_client.suggest(keyword)
    except TicketmasterConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except UpstreamError as e:
        raise _upstream_failure("Failed to fetch suggestions", e)


@app.get("/api/events/search")
def search_events(
    keyword: Optional[str] = None,
    segment_id: Optional[str] = Query(default=None, alias="segmentId"),
    radius: Optional[str] = None,
    unit: Optional[str] = None,
    geo_point: Optional[str] = Query(default=None, alias="geoPoint"),
) -> Dict[str, Any]:
    """
    Proxy to Ticketmaster event search. Unset, empty and "all" (segment) params are not forwarded.
    """
    params = upstream_search_params(
        keyword=keyword,
        segment_id=segment_id,
        radius=radius,
        unit=unit,
        geo_point=geo_point,
    )
    try:
        return ticketmaster_client.search_events(params)
    except TicketmasterConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except UpstreamError as e:
        raise _upstream_failure("Failed to search events", e)


@app.get("/api/events/{event_id}")
def event_details(event_id: str) -> Dict[str, Any]:
    try:
        return ticketmaster_client.event_details(event_id)
    except TicketmasterConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except UpstreamError as e:
        if e.status == 404:
            raise HTTPException(status_code=404, detail="Event not found")
        raise _upstream_failure("Failed to fetch event details", e)


# Spotify


def _spotify_access_token(tokens: SpotifyTokenCache) -> str:
    try:
        return tokens.get_token()
    except SpotifyAuthError as e:
        logger.error("Spotify token error: %s", e)
        raise HTTPException(status_code=500, detail="Failed to get Spotify token")


@app.get("/api/spotify/artist")
def spotify_artist(name: str = "", tokens: SpotifyTokenCache = Depends(get_spotify_tokens)) -> Dict[str, Any]:
    access_token = _spotify_access_token(tokens)
    try:
        return spotify_search_artist(access_token=access_token, name=name)
    except UpstreamError as e:
        raise _upstream_failure("Failed to fetch artist data", e)


@app.get("/api/spotify/artist/{artist_id}/albums")
def spotify_albums(artist_id: str, tokens: SpotifyTokenCache = Depends(get_spotify_tokens)) -> Dict[str, Any]:
    access_token = _spotify_access_token(tokens)
    try:
        return spotify_artist_albums(access_token=access_token, artist_id=artist_id)
    except UpstreamError as e:
        raise _upstream_failure("Failed to fetch albums", e)


# Favorites. Without a reachable store these degrade to empty / "not connected" replies.


@app.get("/api/favorites")
def list_favorites(favorites: Optional[FavoritesRepository] = Depends(get_favorites)) -> list[Dict[str, Any]]:
    if favorites is None:
        return []
    try:
        return [f.to_api() for f in favorites.list_all()]
    except (BotoCoreError, ClientError) as e:
        logger.warning("Get favorites error: %s", e)
        return []


@app.get("/api/favorites/{event_id}")
def check_favorite(event_id: str, favorites: Optional[FavoritesRepository] = Depends(get_favorites)) -> Dict[str, bool]:
    if favorites is None:
        return {"isFavorite": False}
    try:
        return {"isFavorite": favorites.get(event_id) is not None}
    except (BotoCoreError, ClientError) as e:
        logger.warning("Check favorite error: %s", e)
        return {"isFavorite": False}


@app.post("/api/favorites")
def add_favorite(
    event: FavoriteEvent,
    favorites: Optional[FavoritesRepository] = Depends(get_favorites),
) -> Dict[str, Any]:
    if favorites is None:
        return {"message": "Database not connected", "data": event.to_api()}
    try:
        record, created = favorites.add(event)
    except (BotoCoreError, ClientError) as e:
        logger.warning("Add favorite error: %s", e)
        return {"message": "Event added (DB unavailable)", "data": event.to_api()}
    message = "Event added to favorites" if created else "Event already in favorites"
    return {"message": message, "data": record.to_api()}


@app.delete("/api/favorites/{event_id}")
def remove_favorite(event_id: str, favorites: Optional[FavoritesRepository] = Depends(get_favorites)) -> Dict[str, str]:
    if favorites is None:
        return {"message": "Database not connected"}
    try:
        favorites.remove(event_id)
    except FavoriteNotFound:
        raise HTTPException(status_code=404, detail="Favorite not found")
    except (BotoCoreError, ClientError) as e:
        logger.warning("Remove favorite error: %s", e)
        return {"message": "Removed (DB unavailable)"}
    return {"message": "Event removed from favorites"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8080")))
