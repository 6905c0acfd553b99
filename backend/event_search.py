from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, model_validator

from api_client import ApiError
from event_normalizer import EventResults
from geo_lookup import DetectedLocation, GeocodeResult, PrecisionClass, detect_location, geocode_address
from search_query import SearchFilter, build_search_params, effective_radius
from ticketmaster_geo import DEFAULT_PRECISION, geohash_encode

"""
One search submission: resolve the origin, build the query, fetch, normalize.

Geocoding always finishes before the search request goes out, since the geoPoint
depends on it. `cancel()` (form cleared, view left) invalidates submissions that are
still running; their results are discarded instead of replacing newer state.
"""

logger = logging.getLogger(__name__)


class SearchForm(BaseModel):
    model_config = ConfigDict(frozen=True)

    keyword: str = Field(min_length=1)
    category: str = "all"
    distance: float = Field(default=10, ge=1)
    location: str = ""
    auto_detect: bool = False

    @model_validator(mode="after")
    def _location_required(self) -> "SearchForm":
        if not self.auto_detect and not self.location.strip():
            raise ValueError("location is required unless auto-detect is on")
        return self


class ResolvedOrigin(BaseModel):
    model_config = ConfigDict(frozen=True)

    geo_point: str
    radius: float
    precision: Optional[PrecisionClass] = None
    display_name: str = ""


class SearchBackend(Protocol):
    def search_events(self, params: dict[str, Any]) -> dict[str, Any]: ...


class EventSearch:
    def __init__(
        self,
        backend: SearchBackend,
        *,
        geocode: Callable[[str], GeocodeResult] = geocode_address,
        detect: Callable[[], DetectedLocation] = detect_location,
    ):
        self._backend = backend
        self._geocode = geocode
        self._detect = detect
        self._lock = threading.Lock()
        self._generation = 0
        self.detected: Optional[DetectedLocation] = None
        self.results = EventResults()

    def detect_location(self) -> DetectedLocation:
        """IP lookup for the auto-detect checkbox. GeocodeUpstreamError propagates."""
        self.detected = self._detect()
        return self.detected

    def resolve_origin(self, form: SearchForm) -> ResolvedOrigin:
        """
        Auto-detected origins keep the user's radius.
        Geocoded ones are widened by precision class (state, county, country).
        GeocodeNotFound / GeocodeUpstreamError propagate to the caller.
        """
        if form.auto_detect:
            detected = self.detected or self.detect_location()
            return ResolvedOrigin(
                geo_point=geohash_encode(detected.latitude, detected.longitude, precision=DEFAULT_PRECISION),
                radius=effective_radius(form.distance, None),
                display_name=detected.display_name,
            )

        result = self._geocode(form.location)
        radius = effective_radius(form.distance, result.precision_class)
        origin = ResolvedOrigin(
            geo_point=geohash_encode(result.latitude, result.longitude, precision=DEFAULT_PRECISION),
            radius=radius,
            precision=result.precision_class,
            display_name=result.formatted_address or form.location,
        )
        logger.info(
            "Geocoded location precision=%s using radius=%s geoPoint=%s",
            result.precision_class.value,
            radius,
            origin.geo_point,
        )
        return origin

    @staticmethod
    def build_filter(form: SearchForm, origin: ResolvedOrigin) -> SearchFilter:
        return SearchFilter(
            keyword=form.keyword,
            category_id=form.category,
            radius=origin.radius,
            unit="miles",
            origin_point=origin.geo_point,
        )

    def _begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def cancel(self) -> None:
        """Invalidate in-flight submissions and drop the current results."""
        with self._lock:
            self._generation += 1
            self.results = EventResults()

    def run(self, form: SearchForm) -> Optional[EventResults]:
        """
        Returns the new results, or None if the submission was cancelled while running.
        A failed search yields empty results with `error` set, so the caller can show
        the same "no results" state as a search that matched nothing.
        """
        generation = self._begin()
        origin = self.resolve_origin(form)
        if not self._is_current(generation):
            return None

        params = build_search_params(self.build_filter(form, origin))
        try:
            payload = self._backend.search_events(params)
        except ApiError as e:
            logger.error("Search error: %s", e)
            results = EventResults.failed(str(e))
        else:
            results = EventResults.from_search_payload(payload)

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding results of a cancelled search")
                return None
            self.results = results
        return results
