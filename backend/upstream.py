from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Optional

"""
JSON-over-HTTP helper shared by every upstream adapter (Ticketmaster, Spotify,
Google Geocoding, ipinfo) and by the CLI's client of our own API.
"""

logger = logging.getLogger(__name__)


class UpstreamError(RuntimeError):
    def __init__(self, message: str, *, status: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status = status
        self.payload = payload


def build_url(base: str, params: Optional[dict[str, Any]] = None) -> str:
    if not params:
        return base
    query = urllib.parse.urlencode({k: v for k, v in params.items() if v is not None})
    return f"{base}?{query}" if query else base


def _decode(raw: bytes) -> Any:
    text = raw.decode("utf-8")
    return json.loads(text) if text.strip() else {}


def http_json(req: urllib.request.Request, *, timeout: int = 10) -> Any:
    """
    Send `req` and parse the JSON reply.
    Raises UpstreamError for transport failures, non-2xx statuses and bodies that are not JSON.
    The error carries the upstream status and the decoded error body when there is one.
    """
    url = getattr(req, "full_url", None) or req.get_full_url()
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            raw = resp.read()
    except urllib.error.HTTPError as e:
        try:
            payload = _decode(e.read() or b"")
        except ValueError:
            payload = None
        raise UpstreamError(f"{url.split('?')[0]} returned HTTP {e.code}", status=e.code, payload=payload) from e
    except (urllib.error.URLError, OSError) as e:
        raise UpstreamError(f"{url.split('?')[0]} unreachable: {e}") from e

    try:
        return _decode(raw)
    except ValueError as e:
        raise UpstreamError(f"Failed to parse JSON from {url.split('?')[0]}: {e}. Raw={raw[:200]!r}") from e


def get_json(
    url: str,
    *,
    params: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
    timeout: int = 10,
) -> Any:
    req = urllib.request.Request(
        build_url(url, params),
        method="GET",
        headers={"Accept": "application/json", **(headers or {})},
    )
    return http_json(req, timeout=timeout)
