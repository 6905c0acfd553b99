from __future__ import annotations

import json
import os
import urllib.parse
import urllib.request
from typing import Any, Optional

from favorites_store import FavoriteEvent
from upstream import UpstreamError, build_url, http_json

"""
Client for this backend's /api surface, used by the terminal front end.
"""

DEFAULT_API_BASE = "http://localhost:8080"


class ApiError(RuntimeError):
    def __init__(self, message: str, *, status: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status = status
        self.payload = payload


class ApiClient:
    def __init__(self, base_url: Optional[str] = None, *, timeout: int = 15):
        self.base_url = (base_url or os.getenv("EVENT_FINDER_API") or DEFAULT_API_BASE).rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, *, params: Optional[dict[str, Any]] = None, body: Any = None) -> Any:
        headers = {"Accept": "application/json"}
        data = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(body).encode("utf-8")
        req = urllib.request.Request(
            build_url(f"{self.base_url}/api{path}", params),
            method=method,
            headers=headers,
            data=data,
        )
        try:
            return http_json(req, timeout=self.timeout)
        except UpstreamError as e:
            message = str((e.payload or {}).get("error") or e) if isinstance(e.payload, dict) else str(e)
            raise ApiError(message, status=e.status, payload=e.payload) from e

    @staticmethod
    def _segment(value: str) -> str:
        return urllib.parse.quote(value, safe="")

    def suggest(self, keyword: str) -> dict[str, Any]:
        return self._request("GET", "/suggest", params={"keyword": keyword})

    def search_events(self, params: dict[str, Any]) -> dict[str, Any]:
        return self._request("GET", "/events/search", params={k: v for k, v in params.items() if v})

    def event_details(self, event_id: str) -> dict[str, Any]:
        return self._request("GET", f"/events/{self._segment(event_id)}")

    def spotify_artist(self, name: str) -> dict[str, Any]:
        return self._request("GET", "/spotify/artist", params={"name": name})

    def artist_albums(self, artist_id: str) -> dict[str, Any]:
        return self._request("GET", f"/spotify/artist/{self._segment(artist_id)}/albums")

    def list_favorites(self) -> list[FavoriteEvent]:
        data = self._request("GET", "/favorites")
        return [FavoriteEvent.model_validate(item) for item in (data or [])]

    def is_favorite(self, event_id: str) -> bool:
        data = self._request("GET", f"/favorites/{self._segment(event_id)}")
        return bool((data or {}).get("isFavorite"))

    def add_favorite(self, event: FavoriteEvent) -> dict[str, Any]:
        return self._request("POST", "/favorites", body=event.to_api())

    def remove_favorite(self, event_id: str) -> dict[str, Any]:
        return self._request("DELETE", f"/favorites/{self._segment(event_id)}")

    def health(self) -> dict[str, Any]:
        return self._request("GET", "/health")
