"""
Trip distance estimate from coordinates.

Used only when a booking request carries pickup / drop coordinates but no
distance.  Great-circle (haversine) distance, not a road distance.
"""

from __future__ import annotations

import math

from .entities import Location

EARTH_RADIUS_KM = 6_371.0


def haversine_km(a: Location, b: Location) -> float:
    """Return the great-circle distance in **km** between two locations."""
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlat = lat2 - lat1
    dlng = math.radians(b.longitude - a.longitude)

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))
