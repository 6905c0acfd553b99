from __future__ import annotations

import logging
import os
import urllib.parse
from typing import Any, Optional

from upstream import get_json

"""
Thin pass-through to the Ticketmaster Discovery API v2.
Auth is the `apikey` query param:
https://developer.ticketmaster.com/products-and-docs/apis/discovery-api/v2/
"""

logger = logging.getLogger(__name__)

TICKETMASTER_BASE = "https://app.ticketmaster.com/discovery/v2"
SEARCH_PAGE_SIZE = 20


class TicketmasterConfigError(RuntimeError):
    pass


def _api_key() -> str:
    api_key = os.getenv("TICKETMASTER_API_KEY", "").strip()
    if not api_key:
        raise TicketmasterConfigError("Missing TICKETMASTER_API_KEY on backend.")
    return api_key


def _tm_get(path: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    return get_json(f"{TICKETMASTER_BASE}{path}", params={"apikey": _api_key(), **(params or {})}, timeout=10)


def suggest(keyword: str) -> dict[str, Any]:
    return _tm_get("/suggest", {"keyword": keyword})


def search_events(params: dict[str, Any]) -> dict[str, Any]:
    """
    `params` is the already-filtered query (see search_query.upstream_search_params).
    """
    logger.info("Ticketmaster search: %s", params)
    data = _tm_get("/events.json", {**params, "size": SEARCH_PAGE_SIZE})
    count = len(((data.get("_embedded") or {}).get("events")) or []) if isinstance(data, dict) else 0
    logger.info("Ticketmaster returned %d events", count)
    return data


def event_details(event_id: str) -> dict[str, Any]:
    return _tm_get(f"/events/{urllib.parse.quote(event_id, safe='')}")
