# itinero_travel/api/geo.py
"""Great-circle geometry helpers. All distances are kilometers."""

from __future__ import annotations

import math
from typing import Optional

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Return the great-circle distance between two WGS84 points in km.

    Swapping the two points yields the identical float result.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (math.sin(d_lat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(d_lng / 2) ** 2)
    # Rounding pushes near-antipodal pairs slightly past 1
    a = min(1.0, max(0.0, a))

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def validate_coordinates(lat: Optional[float], lng: Optional[float]) -> bool:
    """Check that coordinates are finite and within WGS84 ranges."""
    if lat is None or lng is None:
        return False
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


__all__ = ["EARTH_RADIUS_KM", "haversine_km", "validate_coordinates"]
