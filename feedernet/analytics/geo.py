"""
Great-circle geometry in nautical miles.

Scalar haversine for single legs and a NumPy-vectorized path length for
whole tracks.
"""

import math
from typing import Sequence

import numpy as np

EARTH_RADIUS_NM = 3440.065


def haversine_nm(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate great-circle distance between two points in nautical miles.

    Uses the Haversine formula for accuracy over short to medium distances.
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) *
        math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_NM * c


def path_distance_nm(lats: Sequence[float], lons: Sequence[float]) -> float:
    """
    Sum of haversine legs over consecutive points.

    Returns 0.0 for fewer than two points.
    """
    if len(lats) != len(lons):
        raise ValueError('lats and lons must have the same length')
    if len(lats) < 2:
        return 0.0

    lat = np.radians(np.asarray(lats, dtype=np.float64))
    lon = np.radians(np.asarray(lons, dtype=np.float64))

    dlat = np.diff(lat)
    dlon = np.diff(lon)

    a = (
        np.sin(dlat / 2) ** 2 +
        np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(dlon / 2) ** 2
    )
    # Clip guards sqrt(1 - a) against float drift just above 1
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return float(np.sum(EARTH_RADIUS_NM * c))
