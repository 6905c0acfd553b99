from __future__ import annotations

import base64
import os
import urllib.parse
import urllib.request
from typing import Any, Optional

from upstream import UpstreamError, build_url, http_json


SPOTIFY_ACCOUNTS_BASE = "https://accounts.spotify.com"
SPOTIFY_API_BASE = "https://api.spotify.com/v1"


class SpotifyAuthError(RuntimeError):
    pass


def _b64_basic(user: str, password: str) -> str:
    token = f"{user}:{password}".encode("utf-8")
    return base64.b64encode(token).decode("ascii")


def _form_body(data: dict[str, Any]) -> bytes:
    return urllib.parse.urlencode({k: v for k, v in data.items() if v is not None}).encode("utf-8")


def spotify_client_credentials() -> dict[str, Any]:
    """
    Client-credentials exchange: app-level token, no user involved.
    Returns the raw token payload (`access_token`, `expires_in`, ...).
    """
    client_id = (os.getenv("SPOTIFY_CLIENT_ID") or "").strip()
    client_secret = (os.getenv("SPOTIFY_CLIENT_SECRET") or "").strip()
    if not client_id or not client_secret:
        raise SpotifyAuthError("Missing SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET on backend.")

    req = urllib.request.Request(
        f"{SPOTIFY_ACCOUNTS_BASE}/api/token",
        method="POST",
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
            "Authorization": f"Basic {_b64_basic(client_id, client_secret)}",
        },
        data=_form_body({"grant_type": "client_credentials"}),
    )
    try:
        out = http_json(req, timeout=15)
    except UpstreamError as e:
        raise SpotifyAuthError(f"Spotify token request failed: {e}") from e
    if not isinstance(out, dict) or "access_token" not in out:
        raise SpotifyAuthError(f"Spotify token exchange failed: {out}")
    return out


def spotify_api_get(*, access_token: str, path: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    req = urllib.request.Request(
        build_url(f"{SPOTIFY_API_BASE}{path}", params),
        method="GET",
        headers={"Accept": "application/json", "Authorization": f"Bearer {access_token}"},
    )
    return http_json(req, timeout=15)


def spotify_search_artist(*, access_token: str, name: str) -> dict[str, Any]:
    return spotify_api_get(
        access_token=access_token,
        path="/search",
        params={"q": name, "type": "artist", "limit": 1},
    )


def spotify_artist_albums(*, access_token: str, artist_id: str) -> dict[str, Any]:
    return spotify_api_get(
        access_token=access_token,
        path=f"/artists/{urllib.parse.quote(artist_id, safe='')}/albums",
        params={"include_groups": "album", "limit": 3},
    )


def first_artist(search_payload: dict[str, Any] | None) -> Optional[dict[str, Any]]:
    items = ((search_payload or {}).get("artists") or {}).get("items") or []
    return items[0] if items and isinstance(items[0], dict) else None


def summarize_artist(artist: dict[str, Any], albums_payload: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Flatten a Spotify artist object (plus its albums reply) into what the artist panel shows.
    """
    images = artist.get("images") or []
    albums = []
    for album in (albums_payload or {}).get("items") or []:
        album_images = album.get("images") or []
        albums.append(
            {
                "name": str(album.get("name") or ""),
                "image": str((album_images[0] or {}).get("url") or "") if album_images else "",
                "releaseDate": str(album.get("release_date") or ""),
            }
        )
    return {
        "id": str(artist.get("id") or ""),
        "name": str(artist.get("name") or ""),
        "followers": int((artist.get("followers") or {}).get("total") or 0),
        "popularity": int(artist.get("popularity") or 0),
        "genres": [str(g) for g in (artist.get("genres") or []) if str(g).strip()],
        "spotifyUrl": str((artist.get("external_urls") or {}).get("spotify") or ""),
        "image": str((images[0] or {}).get("url") or "") if images else "",
        "albums": albums,
    }
