from __future__ import annotations

import io
import json
import sys
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import main


class _DummyResp:
    def __init__(self, payload: Any):
        self._raw = json.dumps(payload).encode("utf-8")

    def read(self) -> bytes:
        return self._raw

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def _query(url: str) -> dict[str, str]:
    return dict(urllib.parse.parse_qsl(urllib.parse.urlsplit(url).query))


@pytest.fixture(autouse=True)
def _tm_key(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("TICKETMASTER_API_KEY", "tm_key")


def test_search_forwards_only_set_params(monkeypatch: pytest.MonkeyPatch):
    seen: list[str] = []

    def fake_urlopen(req: urllib.request.Request, timeout: int = 10):
        url = getattr(req, "full_url", None) or req.get_full_url()
        seen.append(url)
        assert "discovery/v2/events.json" in url
        return _DummyResp(
            {
                "_embedded": {
                    "events": [
                        {
                            "id": "E1",
                            "name": "Test Concert",
                            "dates": {"start": {"localDate": "2025-12-31", "localTime": "20:00:00"}},
                        }
                    ]
                },
                "page": {"size": 1, "totalElements": 1, "totalPages": 1, "number": 0},
            }
        )

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)

    client = TestClient(main.app)
    res = client.get("/api/events/search?keyword=jazz&segmentId=all&radius=10&unit=miles&geoPoint=")
    assert res.status_code == 200
    assert res.json()["_embedded"]["events"][0]["id"] == "E1"

    params = _query(seen[0])
    assert params == {"apikey": "tm_key", "keyword": "jazz", "radius": "10", "unit": "miles", "size": "20"}


def test_search_passes_segment_and_geopoint(monkeypatch: pytest.MonkeyPatch):
    seen: list[str] = []

    def fake_urlopen(req: urllib.request.Request, timeout: int = 10):
        seen.append(req.get_full_url())
        return _DummyResp({"page": {"totalElements": 0}})

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)

    client = TestClient(main.app)
    res = client.get("/api/events/search?keyword=rock&segmentId=KZFzniwnSyZfZ7v7nJ&radius=200&unit=miles&geoPoint=9q8yyk8")
    assert res.status_code == 200
    params = _query(seen[0])
    assert params["segmentId"] == "KZFzniwnSyZfZ7v7nJ"
    assert params["geoPoint"] == "9q8yyk8"
    assert params["radius"] == "200"


def test_search_upstream_failure_is_500_with_error_body(monkeypatch: pytest.MonkeyPatch):
    def fake_urlopen(req: urllib.request.Request, timeout: int = 10):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)

    client = TestClient(main.app)
    res = client.get("/api/events/search?keyword=jazz")
    assert res.status_code == 500
    assert res.json() == {"error": "Failed to search events"}


def test_missing_api_key_is_reported(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("TICKETMASTER_API_KEY", raising=False)

    client = TestClient(main.app)
    res = client.get("/api/events/search?keyword=jazz")
    assert res.status_code == 500
    assert "TICKETMASTER_API_KEY" in res.json()["error"]


def test_suggest_forwards_keyword(monkeypatch: pytest.MonkeyPatch):
    def fake_urlopen(req: urllib.request.Request, timeout: int = 10):
        url = req.get_full_url()
        assert "/discovery/v2/suggest" in url
        assert _query(url)["keyword"] == "tay"
        return _DummyResp({"_embedded": {"attractions": [{"name": "Taylor Swift"}]}})

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)

    client = TestClient(main.app)
    res = client.get("/api/suggest?keyword=tay")
    assert res.status_code == 200
    assert res.json()["_embedded"]["attractions"][0]["name"] == "Taylor Swift"


def test_event_details_passthrough(monkeypatch: pytest.MonkeyPatch):
    def fake_urlopen(req: urllib.request.Request, timeout: int = 10):
        assert urllib.parse.urlsplit(req.get_full_url()).path.endswith("/events/G5v0Z9")
        return _DummyResp({"id": "G5v0Z9", "name": "Detail Show"})

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)

    client = TestClient(main.app)
    res = client.get("/api/events/G5v0Z9")
    assert res.status_code == 200
    assert res.json()["name"] == "Detail Show"


def test_event_details_upstream_404(monkeypatch: pytest.MonkeyPatch):
    def fake_urlopen(req: urllib.request.Request, timeout: int = 10):
        body = io.BytesIO(json.dumps({"errors": [{"code": "DIS1004"}]}).encode("utf-8"))
        raise urllib.error.HTTPError(req.get_full_url(), 404, "Not Found", {}, body)

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)

    client = TestClient(main.app)
    res = client.get("/api/events/nope")
    assert res.status_code == 404
    assert res.json() == {"error": "Event not found"}


def test_unknown_api_route():
    client = TestClient(main.app)
    res = client.get("/api/does-not-exist")
    assert res.status_code == 404
    assert res.json() == {"error": "API endpoint not found"}


def test_health_reports_store_state(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(main.app.state, "favorites", None)
    client = TestClient(main.app)
    data = client.get("/api/health").json()
    assert data["status"] == "ok"
    assert data["database"] is False
    assert data["timestamp"]
