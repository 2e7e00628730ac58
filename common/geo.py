from __future__ import annotations

from typing import Tuple
import math


EARTH_RADIUS_KM = 6371.0  # mean Earth radius

# Reference point for the "km from the capital" badge (Phnom Penh).
PHNOM_PENH: Tuple[float, float] = (11.5564, 104.9282)

# Road km per great-circle km, for travel-distance estimates.
ROAD_FACTOR = 1.35


# -------------------------
# Great-circle distance
# -------------------------
def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Haversine great-circle distance (km) between two lat/lon pairs in degrees.

    No range checking; NaN inputs give NaN.
    """
    p1 = math.radians(lat1)
    p2 = math.radians(lat2)
    dphi = p2 - p1
    dl = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2.0) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2.0) ** 2
    # round-off can push `a` just outside [0, 1]; comparisons keep NaN intact
    if a > 1.0:
        a = 1.0
    elif a < 0.0:
        a = 0.0
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))


def distance_from_reference(
    lat: float,
    lon: float,
    ref: Tuple[float, float] = PHNOM_PENH,
    road_factor: float = ROAD_FACTOR,
) -> float:
    """
    Estimated travel distance (km) from `ref` (lat, lon): great-circle distance
    scaled by `road_factor`. Pass road_factor=1.0 for the straight-line value.
    """
    return road_factor * haversine_km(ref[0], ref[1], lat, lon)
