"""Shared data structures for route optimization.

Stops and origins travel between the HTTP layer, the geocoder and the
optimizer, so they live here as a single source-of-truth definition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _expect_object(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be an object, got {type(data).__name__}")
    return data


def _expect_list(value: Any, what: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{what} must be a list, got {type(value).__name__}")
    return value


def _coordinate(value: Any, what: str) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{what} is not a number: {value!r}") from None


@dataclass
class Stop:
    """A single schedulable activity on a trip itinerary."""

    id: str
    name: str  # e.g. "Senso-ji"
    lat: Optional[float] = None
    lng: Optional[float] = None
    day: Optional[int] = None  # 1-based day number within the trip
    order_index: Optional[int] = None
    address: Optional[str] = None
    place_id: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "lat": self.lat,
            "lng": self.lng,
            "day": self.day,
            "order_index": self.order_index,
            "address": self.address,
            "place_id": self.place_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stop":
        """Build a stop from an API payload.

        Accepts both ``lat``/``lng`` and the ``latitude``/``longitude`` column
        names used by the activities table, and ``activity_name`` for ``name``.
        """
        data = _expect_object(data, "Stop")
        if "id" not in data:
            raise ValueError("Stop is missing an id")

        return cls(
            id=str(data["id"]),
            name=data.get("name") or data.get("activity_name") or "",
            lat=_coordinate(data.get("lat", data.get("latitude")), "Stop latitude"),
            lng=_coordinate(data.get("lng", data.get("longitude")), "Stop longitude"),
            day=data.get("day", data.get("day_number")),
            order_index=data.get("order_index"),
            address=data.get("address"),
            place_id=data.get("place_id"),
        )

    @classmethod
    def list_from_dicts(cls, items: Any) -> List["Stop"]:
        """Build stops from a JSON array; ``None`` is an empty list."""
        return [cls.from_dict(s) for s in _expect_list(items, "stops")]


@dataclass
class Origin:
    """A fixed lodging location that starts and ends every day's tour."""

    lat: float
    lng: float
    name: str = "Hotel"
    address: Optional[str] = None
    place_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "name": self.name,
            "address": self.address,
            "place_id": self.place_id,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Origin"]:
        if not data:
            return None
        data = _expect_object(data, "Origin")

        lat = _coordinate(data.get("lat", data.get("latitude")), "Origin latitude")
        lng = _coordinate(data.get("lng", data.get("longitude")), "Origin longitude")
        if lat is None or lng is None:
            raise ValueError("Origin requires both latitude and longitude")

        return cls(
            lat=lat,
            lng=lng,
            name=data.get("name") or "Hotel",
            address=data.get("address"),
            place_id=data.get("place_id"),
        )


@dataclass
class DayPlan:
    """All stops scheduled on one day of a trip."""

    day_number: int
    stops: List[Stop] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DayPlan":
        data = _expect_object(data, "Day")
        day_number = data.get("day_number", data.get("dayNumber"))
        if day_number is None:
            raise ValueError("Day is missing a day_number")
        try:
            day_number = int(day_number)
        except (TypeError, ValueError):
            raise ValueError(f"Day number is not an integer: {day_number!r}") from None

        raw_stops = data.get("stops") or data.get("activities")
        return cls(day_number=day_number, stops=Stop.list_from_dicts(raw_stops))

    @classmethod
    def list_from_dicts(cls, items: Any) -> List["DayPlan"]:
        """Build day plans from a JSON array; ``None`` is an empty list."""
        return [cls.from_dict(d) for d in _expect_list(items, "days")]


# A trip itinerary is represented as a list of day plans.
Itinerary = List[DayPlan]
