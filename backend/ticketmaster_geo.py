from __future__ import annotations

"""
Ticketmaster Discovery API takes geo searches via `geoPoint` (a geohash).
Standard base32 geohash: longitude and latitude bits interleaved (longitude first), 5 bits per character.
"""

_BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
_DECODE_MAP = {c: i for i, c in enumerate(_BASE32)}

DEFAULT_PRECISION = 7


class InvalidCoordinate(ValueError):
    pass


def geohash_encode(lat: float, lon: float, *, precision: int = DEFAULT_PRECISION) -> str:
    """
    Encode lat/lon into a geohash string.
    Precision 7 ~ a 150m cell, which is what the search form sends to Ticketmaster.
    """
    lat = float(lat)
    lon = float(lon)
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
        raise InvalidCoordinate(f"Coordinate out of range: lat={lat}, lng={lon}")
    if precision < 1:
        raise ValueError("precision must be at least 1")

    lat_min, lat_max = -90.0, 90.0
    lon_min, lon_max = -180.0, 180.0

    bits = []
    even = True
    while len(bits) < precision * 5:
        if even:
            mid = (lon_min + lon_max) / 2.0
            if lon >= mid:
                bits.append(1)
                lon_min = mid
            else:
                bits.append(0)
                lon_max = mid
        else:
            mid = (lat_min + lat_max) / 2.0
            if lat >= mid:
                bits.append(1)
                lat_min = mid
            else:
                bits.append(0)
                lat_max = mid
        even = not even

    out = []
    for i in range(0, len(bits), 5):
        val = 0
        for b in bits[i : i + 5]:
            val = (val << 1) | b
        out.append(_BASE32[val])
    return "".join(out)


def geohash_bounds(geohash: str) -> tuple[float, float, float, float]:
    """Return (lat_min, lat_max, lon_min, lon_max) of the cell named by `geohash`."""
    lat_min, lat_max = -90.0, 90.0
    lon_min, lon_max = -180.0, 180.0
    even = True
    for ch in geohash.lower():
        if ch not in _DECODE_MAP:
            raise ValueError(f"Invalid geohash character: {ch!r}")
        val = _DECODE_MAP[ch]
        for shift in range(4, -1, -1):
            bit = (val >> shift) & 1
            if even:
                mid = (lon_min + lon_max) / 2.0
                if bit:
                    lon_min = mid
                else:
                    lon_max = mid
            else:
                mid = (lat_min + lat_max) / 2.0
                if bit:
                    lat_min = mid
                else:
                    lat_max = mid
            even = not even
    return lat_min, lat_max, lon_min, lon_max


def geohash_decode(geohash: str) -> tuple[float, float]:
    """Center (lat, lon) of the geohash cell."""
    if not geohash:
        raise ValueError("Empty geohash")
    lat_min, lat_max, lon_min, lon_max = geohash_bounds(geohash)
    return (lat_min + lat_max) / 2.0, (lon_min + lon_max) / 2.0
