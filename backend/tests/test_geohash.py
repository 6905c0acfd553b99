from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from ticketmaster_geo import InvalidCoordinate, geohash_bounds, geohash_decode, geohash_encode


def test_reference_point():
    assert geohash_encode(37.7749, -122.4194) == "9q8yyk8"
    assert geohash_encode(37.7749, -122.4194, precision=9).startswith("9q8yyk8")


def test_decode_then_encode_is_stable():
    h = geohash_encode(37.7749, -122.4194, precision=7)
    lat, lng = geohash_decode(h)
    assert geohash_encode(lat, lng, precision=7) == h


def test_cell_contains_point():
    lat_min, lat_max, lon_min, lon_max = geohash_bounds(geohash_encode(40.7128, -74.0060))
    assert lat_min <= 40.7128 <= lat_max
    assert lon_min <= -74.0060 <= lon_max


@pytest.mark.parametrize("lat,lng", [(90.5, 0.0), (-91.0, 10.0), (10.0, 180.01), (0.0, -200.0)])
def test_out_of_range_rejected(lat: float, lng: float):
    with pytest.raises(InvalidCoordinate):
        geohash_encode(lat, lng)


def test_edges_are_valid():
    assert len(geohash_encode(90.0, 180.0)) == 7
    assert geohash_encode(-90.0, -180.0) == "0000000"


def test_decode_rejects_bad_characters():
    with pytest.raises(ValueError):
        geohash_decode("9q8a")
