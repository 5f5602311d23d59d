"""
Geospatial utility functions for distance calculations.

Provides the haversine great-circle distance used by proximity
searches.  Coordinates are ``(longitude, latitude)`` in decimal
degrees, the same order as GeoJSON points.
"""

import math
from typing import Optional, Tuple


# Earth's mean radius in meters (IUGG)
EARTH_RADIUS_METERS = 6371008.8


def haversine_meters(
    point_a: Tuple[float, float],
    point_b: Tuple[float, float],
) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        point_a: (longitude, latitude) in decimal degrees
        point_b: (longitude, latitude) in decimal degrees

    Returns:
        Distance in meters
    """
    lon1, lat1 = math.radians(point_a[0]), math.radians(point_a[1])
    lon2, lat2 = math.radians(point_b[0]), math.radians(point_b[1])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    )
    # Rounding can push ``a`` marginally above 1 for antipodal points.
    c = 2 * math.asin(math.sqrt(min(1.0, a)))

    return EARTH_RADIUS_METERS * c


def sqlite_haversine(
    lon1: Optional[float],
    lat1: Optional[float],
    lon2: Optional[float],
    lat2: Optional[float],
) -> Optional[float]:
    """SQL function wrapper: ``haversine_m(lon1, lat1, lon2, lat2)``.

    Returns NULL when any coordinate is NULL so that rows without a
    location never match a radius predicate.
    """
    if None in (lon1, lat1, lon2, lat2):
        return None
    return haversine_meters((lon1, lat1), (lon2, lat2))
