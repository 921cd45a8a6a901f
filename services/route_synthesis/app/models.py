"""Domain types for itineraries and the map-ready data derived from them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Sequence


class TransportMode(str, Enum):
    """How the traveller moves from a destination to the next one."""

    CAR = "car"
    WALK = "walk"
    BIKE = "bike"
    TRAIN = "train"
    PLANE = "plane"
    UNSPECIFIED = "unspecified"

    @property
    def routing_profile(self) -> str | None:
        """Directions profile for the mode, ``None`` when no road routing applies."""

        return _ROUTING_PROFILES.get(self)


_ROUTING_PROFILES = {
    TransportMode.CAR: "driving",
    TransportMode.WALK: "walking",
    TransportMode.BIKE: "cycling",
}


@dataclass(frozen=True)
class Coordinate:
    """A point on the globe in degrees, longitude first."""

    lon: float
    lat: float

    def __post_init__(self) -> None:
        if not -180.0 <= self.lon <= 180.0:
            raise ValueError(f"longitude out of range: {self.lon}")
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"latitude out of range: {self.lat}")

    def as_pair(self) -> list[float]:
        return [self.lon, self.lat]


@dataclass(frozen=True)
class Destination:
    id: int
    name: str
    coordinate: Coordinate
    days: int = 1
    transport_mode: TransportMode = TransportMode.UNSPECIFIED

    def __post_init__(self) -> None:
        if self.days < 1:
            raise ValueError(f"destination {self.id} must last at least one day")


@dataclass(frozen=True)
class Leg:
    """One consecutive hop of the itinerary."""

    origin: Destination
    destination: Destination

    @property
    def mode(self) -> TransportMode:
        return self.origin.transport_mode


def legs_for(itinerary: Sequence[Destination]) -> list[Leg]:
    """Derive the legs of an itinerary from its consecutive pairs."""

    return [Leg(origin, dest) for origin, dest in zip(itinerary, itinerary[1:])]


@dataclass(frozen=True)
class PathSegment:
    """Resolved path for one leg, ready to be drawn."""

    origin_id: int
    destination_id: int
    mode: TransportMode
    coordinates: tuple[Coordinate, ...]
    source: str = "geodesic"

    def __post_init__(self) -> None:
        if len(self.coordinates) < 2:
            raise ValueError("a path segment needs at least two coordinates")


@dataclass(frozen=True)
class RouteSet:
    """Ordered segments for one itinerary snapshot."""

    generation: int = 0
    segments: tuple[PathSegment, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[PathSegment]:
        return iter(self.segments)


@dataclass(frozen=True)
class VisitedCountrySet:
    """Uppercase ISO 3166-1 alpha-2 codes of the countries an itinerary visits."""

    generation: int = 0
    codes: frozenset[str] = field(default_factory=frozenset)

    def __len__(self) -> int:
        return len(self.codes)

    def __contains__(self, code: object) -> bool:
        return code in self.codes
