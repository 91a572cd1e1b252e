"""
Helper functions for geographic and temporal calculations.

This module contains utility functions used across the ranking pipeline,
including great-circle distance, timezone coercion and the piecewise-linear
interpolation shared by several component scores.
"""

import math
from datetime import datetime, timezone

from implementation.classes.event import Coordinates

EARTH_RADIUS_KM: float = 6371.0

# Length of one degree of latitude along a meridian, in km.
KM_PER_DEGREE_LATITUDE: float = math.pi * EARTH_RADIUS_KM / 180.0

_SECONDS_PER_HOUR: float = 3600.0


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """
    Great-circle distance between two points using the Haversine formula.

    Args:
        a: First point (latitude, longitude) in decimal degrees.
        b: Second point (latitude, longitude) in decimal degrees.

    Returns:
        Distance in kilometres on a sphere of radius EARTH_RADIUS_KM.

    Examples:
        >>> haversine_km(Coordinates(0.0, 0.0), Coordinates(0.0, 0.0))
        0.0
        >>> round(haversine_km(Coordinates(0.0, 0.0), Coordinates(1.0, 0.0)), 3)
        111.195
    """
    lat1 = math.radians(a[0])
    lat2 = math.radians(b[0])
    d_lat = lat2 - lat1
    d_lng = math.radians(b[1] - a[1])

    h = (
        math.sin(d_lat / 2.0) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2.0) ** 2
    )
    # Clamp guards asin against h drifting a few ULPs above 1.0 for antipodes.
    return 2.0 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, h)))


def ensure_utc(value: datetime) -> datetime:
    """
    Return `value` as a timezone-aware UTC datetime.

    Naive datetimes are interpreted as already being in UTC (the catalog
    stores UTC timestamps without offsets). Aware datetimes are converted.
    """
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hours_between(start: datetime, end: datetime) -> float:
    """Signed number of hours from `start` to `end` (negative if end is earlier)."""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / _SECONDS_PER_HOUR


def interpolate(x: float, x0: float, x1: float, y0: float, y1: float) -> float:
    """
    Linear interpolation of y at x on the segment (x0, y0) → (x1, y1).

    x is not clamped; callers pick the segment before interpolating.
    """
    if x1 == x0:
        return y0
    return y0 + (x - x0) * (y1 - y0) / (x1 - x0)
