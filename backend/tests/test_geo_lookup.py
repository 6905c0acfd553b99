from __future__ import annotations

import json
import sys
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path
from typing import Any

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from geo_lookup import (
    GeocodeNotFound,
    GeocodeUpstreamError,
    PrecisionClass,
    detect_location,
    geocode_address,
    precision_from_types,
)


class _DummyResp:
    def __init__(self, payload: Any):
        self._raw = json.dumps(payload).encode("utf-8")

    def read(self) -> bytes:
        return self._raw

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def _geocode_reply(types: list[str], lat: float = 36.77, lng: float = -119.41) -> dict[str, Any]:
    return {
        "status": "OK",
        "results": [
            {
                "types": types,
                "formatted_address": "California, USA",
                "geometry": {"location": {"lat": lat, "lng": lng}},
            }
        ],
    }


def _serve(monkeypatch: pytest.MonkeyPatch, payload: Any, calls: list[str] | None = None):
    def fake_urlopen(req: urllib.request.Request, timeout: int = 5):
        if calls is not None:
            calls.append(req.get_full_url())
        return _DummyResp(payload)

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)


@pytest.mark.parametrize(
    "types,expected",
    [
        (["administrative_area_level_1", "political"], PrecisionClass.STATE),
        (["country", "political"], PrecisionClass.COUNTRY),
        (["administrative_area_level_2", "political"], PrecisionClass.COUNTY),
        (["locality", "political"], PrecisionClass.CITY),
        (["street_address"], PrecisionClass.POINT),
        ([], PrecisionClass.POINT),
    ],
)
def test_precision_from_types(types, expected):
    assert precision_from_types(types) is expected


def test_geocode_single_lookup(monkeypatch: pytest.MonkeyPatch):
    calls: list[str] = []
    _serve(monkeypatch, _geocode_reply(["administrative_area_level_1", "political"]), calls)

    result = geocode_address("California", api_key="g_key")
    assert result.latitude == pytest.approx(36.77)
    assert result.longitude == pytest.approx(-119.41)
    assert result.precision_class is PrecisionClass.STATE
    assert len(calls) == 1
    query = dict(urllib.parse.parse_qsl(urllib.parse.urlsplit(calls[0]).query))
    assert query == {"address": "California", "key": "g_key"}


def test_geocode_zero_results_is_not_found(monkeypatch: pytest.MonkeyPatch):
    _serve(monkeypatch, {"status": "ZERO_RESULTS", "results": []})
    with pytest.raises(GeocodeNotFound):
        geocode_address("zzzz nowhere", api_key="g_key")


def test_geocode_denied_is_upstream_error(monkeypatch: pytest.MonkeyPatch):
    _serve(monkeypatch, {"status": "REQUEST_DENIED", "error_message": "bad key", "results": []})
    with pytest.raises(GeocodeUpstreamError):
        geocode_address("Paris", api_key="g_key")


def test_geocode_transport_failure(monkeypatch: pytest.MonkeyPatch):
    def fake_urlopen(req: urllib.request.Request, timeout: int = 5):
        raise urllib.error.URLError("timed out")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    with pytest.raises(GeocodeUpstreamError):
        geocode_address("Paris", api_key="g_key")


def test_geocode_malformed_result(monkeypatch: pytest.MonkeyPatch):
    _serve(monkeypatch, {"status": "OK", "results": [{"types": ["locality"], "geometry": {}}]})
    with pytest.raises(GeocodeUpstreamError):
        geocode_address("Paris", api_key="g_key")


def test_geocode_requires_key(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)
    with pytest.raises(GeocodeUpstreamError):
        geocode_address("Paris")


def test_detect_location(monkeypatch: pytest.MonkeyPatch):
    _serve(monkeypatch, {"loc": "34.0522,-118.2437", "city": "Los Angeles", "region": "California", "country": "US"})
    detected = detect_location(token="ip_token")
    assert detected.latitude == pytest.approx(34.0522)
    assert detected.longitude == pytest.approx(-118.2437)
    assert detected.display_name == "Los Angeles, California, US"


def test_detect_location_without_coordinates(monkeypatch: pytest.MonkeyPatch):
    _serve(monkeypatch, {"bogon": True})
    with pytest.raises(GeocodeUpstreamError):
        detect_location(token="ip_token")
