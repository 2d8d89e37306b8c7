"""
Geohash encode/decode (standard base32 alphabet, longitude bit first).
Pure functions, no I/O.
"""
from __future__ import annotations

from historybox.core.errors import InvalidInput

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
_BASE32_INDEX = {ch: i for i, ch in enumerate(BASE32)}

MAX_PRECISION = 12


def validate_coordinates(latitude: float, longitude: float) -> None:
    try:
        lat = float(latitude)
        lon = float(longitude)
    except (TypeError, ValueError):
        raise InvalidInput("latitude/longitude must be numbers")
    # NaN fails both comparisons
    if not (-90.0 <= lat <= 90.0):
        raise InvalidInput("latitude must be within [-90, 90]", {"latitude": latitude})
    if not (-180.0 <= lon <= 180.0):
        raise InvalidInput("longitude must be within [-180, 180]", {"longitude": longitude})


def encode(latitude: float, longitude: float, precision: int = 5) -> str:
    """
    Encode a coordinate into a geohash of `precision` characters.

    Deterministic: the same (lat, lon, precision) always yields the same string,
    and every point inside one cell yields the same prefix.
    """
    validate_coordinates(latitude, longitude)
    if not 1 <= precision <= MAX_PRECISION:
        raise InvalidInput(f"precision must be within [1, {MAX_PRECISION}]")
    latitude = float(latitude)
    longitude = float(longitude)

    lat_lo, lat_hi = -90.0, 90.0
    lon_lo, lon_hi = -180.0, 180.0
    chars: list[str] = []
    bits = 0
    bit_count = 0
    even = True  # even bits refine longitude

    while len(chars) < precision:
        if even:
            mid = (lon_lo + lon_hi) / 2
            if longitude >= mid:
                bits = (bits << 1) | 1
                lon_lo = mid
            else:
                bits <<= 1
                lon_hi = mid
        else:
            mid = (lat_lo + lat_hi) / 2
            if latitude >= mid:
                bits = (bits << 1) | 1
                lat_lo = mid
            else:
                bits <<= 1
                lat_hi = mid
        even = not even
        bit_count += 1
        if bit_count == 5:
            chars.append(BASE32[bits])
            bits = 0
            bit_count = 0

    return "".join(chars)


def decode_bbox(geohash: str) -> tuple[float, float, float, float]:
    """Return the cell bounds as (min_lat, min_lon, max_lat, max_lon)."""
    if not geohash:
        raise InvalidInput("geohash must not be empty")

    lat_lo, lat_hi = -90.0, 90.0
    lon_lo, lon_hi = -180.0, 180.0
    even = True

    for ch in geohash.lower():
        idx = _BASE32_INDEX.get(ch)
        if idx is None:
            raise InvalidInput(f"Invalid geohash character: {ch}", {"geohash": geohash})
        for shift in range(4, -1, -1):
            bit = (idx >> shift) & 1
            if even:
                mid = (lon_lo + lon_hi) / 2
                if bit:
                    lon_lo = mid
                else:
                    lon_hi = mid
            else:
                mid = (lat_lo + lat_hi) / 2
                if bit:
                    lat_lo = mid
                else:
                    lat_hi = mid
            even = not even

    return lat_lo, lon_lo, lat_hi, lon_hi


def decode(geohash: str) -> tuple[float, float]:
    """Cell center as (lat, lon)."""
    min_lat, min_lon, max_lat, max_lon = decode_bbox(geohash)
    return (min_lat + max_lat) / 2, (min_lon + max_lon) / 2


def is_valid(geohash: str) -> bool:
    return bool(geohash) and len(geohash) <= MAX_PRECISION and all(ch in _BASE32_INDEX for ch in geohash.lower())
