from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from upstream import UpstreamError, get_json

"""
Forward geocoding (free-text location -> lat/lng) and IP-based location detection.

- Geocoding uses the Google Geocoding API. One lookup per call, no retry, no cache.
- The result carries a precision class derived from the Google result types, which the
  query builder uses to widen the search radius for broad areas (states, countries).
- IP detection uses ipinfo.io and returns the `loc` coordinates plus a display name.
"""

logger = logging.getLogger(__name__)

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
IPINFO_URL = "https://ipinfo.io/json"


class PrecisionClass(str, Enum):
    POINT = "point"
    CITY = "city"
    COUNTY = "county"
    STATE = "state"
    COUNTRY = "country"


# Checked in order; the first matching Google type wins.
_TYPE_PRECISION: list[tuple[str, PrecisionClass]] = [
    ("administrative_area_level_1", PrecisionClass.STATE),
    ("country", PrecisionClass.COUNTRY),
    ("administrative_area_level_2", PrecisionClass.COUNTY),
    ("locality", PrecisionClass.CITY),
    ("postal_town", PrecisionClass.CITY),
    ("sublocality", PrecisionClass.CITY),
    ("postal_code", PrecisionClass.CITY),
]


class GeocodeNotFound(LookupError):
    pass


class GeocodeUpstreamError(RuntimeError):
    pass


class GeocodeResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    precision_class: PrecisionClass = PrecisionClass.POINT
    formatted_address: str = ""


class DetectedLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    display_name: str = ""


def precision_from_types(types: list[str] | None) -> PrecisionClass:
    found = set(types or [])
    for google_type, precision in _TYPE_PRECISION:
        if google_type in found:
            return precision
    return PrecisionClass.POINT


def geocode_address(address: str, *, api_key: Optional[str] = None, timeout: int = 5) -> GeocodeResult:
    """
    Resolve a free-text address to coordinates.
    Raises GeocodeNotFound when Google reports no match, GeocodeUpstreamError for anything else.
    """
    key = (api_key if api_key is not None else os.getenv("GOOGLE_MAPS_API_KEY", "")).strip()
    if not key:
        raise GeocodeUpstreamError("Missing GOOGLE_MAPS_API_KEY.")

    try:
        data = get_json(GOOGLE_GEOCODE_URL, params={"address": address, "key": key}, timeout=timeout)
    except UpstreamError as e:
        raise GeocodeUpstreamError(f"Geocoding request failed: {e}") from e

    if not isinstance(data, dict):
        raise GeocodeUpstreamError("Malformed geocoding response.")

    status = str(data.get("status") or "")
    results = data.get("results") or []
    if status == "ZERO_RESULTS" or (status in ("", "OK") and not results):
        raise GeocodeNotFound(f"No location found for {address!r}.")
    if status not in ("", "OK"):
        raise GeocodeUpstreamError(f"Geocoding failed with status {status}: {data.get('error_message') or ''}".strip())

    hit = results[0] if isinstance(results[0], dict) else {}
    location = (hit.get("geometry") or {}).get("location") or {}
    try:
        lat = float(location["lat"])
        lng = float(location["lng"])
    except (KeyError, TypeError, ValueError) as e:
        raise GeocodeUpstreamError(f"Geocoding result has no usable coordinates: {e}") from e

    result = GeocodeResult(
        latitude=lat,
        longitude=lng,
        precision_class=precision_from_types(hit.get("types")),
        formatted_address=str(hit.get("formatted_address") or ""),
    )
    logger.info("Geocoded %r -> (%s, %s) precision=%s", address, lat, lng, result.precision_class.value)
    return result


def _display_name(data: dict[str, Any]) -> str:
    parts = [str(data.get(k) or "").strip() for k in ("city", "region", "country")]
    return ", ".join(p for p in parts if p)


def detect_location(*, token: Optional[str] = None, timeout: int = 5) -> DetectedLocation:
    """
    Best-guess location of this machine from its public IP.
    Raises GeocodeUpstreamError if ipinfo fails or returns no coordinates.
    """
    tok = (token if token is not None else os.getenv("IPINFO_TOKEN", "")).strip()
    try:
        data = get_json(IPINFO_URL, params={"token": tok or None}, timeout=timeout)
    except UpstreamError as e:
        raise GeocodeUpstreamError(f"IP location lookup failed: {e}") from e

    loc = str((data or {}).get("loc") or "") if isinstance(data, dict) else ""
    try:
        lat_s, lng_s = loc.split(",", 1)
        lat, lng = float(lat_s), float(lng_s)
    except ValueError as e:
        raise GeocodeUpstreamError(f"IP location lookup returned no coordinates: {loc!r}") from e

    return DetectedLocation(latitude=lat, longitude=lng, display_name=_display_name(data))
