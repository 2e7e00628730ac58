from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# Record columns the core reads or writes; everything else rides along in `attrs`.
_CORE_FIELDS = ("id", "images", "latitude", "longitude")


def _opt_float(v: Any) -> Optional[float]:
    if v is None or v == "":
        return None
    return float(v)


@dataclass(slots=True)
class Place:
    """
    A catalog entry as stored in the record store.

    Attributes:
        id: record identifier (string; numeric ids are coerced).
        images: image URLs in display order.
        latitude, longitude: WGS84 degrees, or None when unknown.
        attrs: remaining record columns (names, province, keywords, ...),
            carried through untouched.
    """
    id: str
    images: List[str] = field(default_factory=list)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    attrs: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.id = str(self.id)
        self.images = list(self.images or [])
        if self.latitude is not None and not (-90.0 <= self.latitude <= 90.0):
            raise ValueError("latitude out of range")
        if self.longitude is not None and not (-180.0 <= self.longitude <= 180.0):
            raise ValueError("longitude out of range")

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def name(self) -> str:
        return str(self.attrs.get("name_en") or self.attrs.get("name_km") or self.id)

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "Place":
        """Build a Place from a raw record-store row."""
        return cls(
            id=rec["id"],
            images=rec.get("images") or [],
            latitude=_opt_float(rec.get("latitude")),
            longitude=_opt_float(rec.get("longitude")),
            attrs={k: v for k, v in rec.items() if k not in _CORE_FIELDS},
        )

    def to_record(self) -> Dict[str, Any]:
        d = dict(self.attrs)
        d.update(
            {
                "id": self.id,
                "images": list(self.images),
                "latitude": self.latitude,
                "longitude": self.longitude,
            }
        )
        return d


@dataclass(slots=True, frozen=True)
class DistanceResult:
    """A candidate place and its distance (km) from the reference place."""
    place: Place
    distance_km: float

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.place.id, "distance_km": self.distance_km}
