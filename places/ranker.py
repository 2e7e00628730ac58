from __future__ import annotations

from typing import Iterable, List

from common.geo import haversine_km
from common.types import DistanceResult, Place


DEFAULT_K = 4
DEFAULT_MAX_RADIUS_KM = 50.0


def rank_nearby(
    place: Place,
    candidates: Iterable[Place],
    k: int = DEFAULT_K,
    max_radius_km: float = DEFAULT_MAX_RADIUS_KM,
) -> List[DistanceResult]:
    """
    Return up to `k` candidates closest to `place`, nearest first.

    Skips the reference itself (matched by id), candidates without coordinates
    and anything farther than `max_radius_km`. Equal distances keep input order.
    Returns [] when the reference has no coordinates.
    """
    if not place.has_coordinates or k <= 0:
        return []

    out: List[DistanceResult] = []
    for c in candidates:
        if c.id == place.id or not c.has_coordinates:
            continue
        d = haversine_km(place.latitude, place.longitude, c.latitude, c.longitude)
        if not d <= max_radius_km:  # also drops NaN
            continue
        out.append(DistanceResult(place=c, distance_km=d))

    out.sort(key=lambda r: r.distance_km)  # list.sort is stable
    return out[:k]
