from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from .models import Coordinate, Destination, TransportMode


class DestinationIn(BaseModel):
    id: Optional[int] = None
    name: str = Field(min_length=1)
    lon: float = Field(ge=-180, le=180)
    lat: float = Field(ge=-90, le=90)
    days: int = Field(default=1, ge=1)
    transport_mode: Optional[TransportMode] = None

    def to_domain(self, destination_id: int) -> Destination:
        return Destination(
            id=destination_id,
            name=self.name,
            coordinate=Coordinate(lon=self.lon, lat=self.lat),
            days=self.days,
            transport_mode=self.transport_mode or TransportMode.UNSPECIFIED,
        )


class DestinationOut(BaseModel):
    id: int
    name: str
    lon: float
    lat: float
    days: int
    transport_mode: TransportMode

    @classmethod
    def from_domain(cls, dest: Destination) -> "DestinationOut":
        return cls(
            id=dest.id,
            name=dest.name,
            lon=dest.coordinate.lon,
            lat=dest.coordinate.lat,
            days=dest.days,
            transport_mode=dest.transport_mode,
        )


class ItineraryIn(BaseModel):
    destinations: List[DestinationIn]

    def to_destinations(self) -> List[Destination]:
        """Build domain destinations, numbering the ones sent without an id."""

        taken = {item.id for item in self.destinations if item.id is not None}
        next_id = 1
        result = []
        for item in self.destinations:
            destination_id = item.id
            if destination_id is None:
                while next_id in taken:
                    next_id += 1
                destination_id = next_id
                taken.add(destination_id)
            result.append(item.to_domain(destination_id))
        return result


class ItineraryOut(BaseModel):
    destinations: List[DestinationOut]


class DestinationPatch(BaseModel):
    days: Optional[int] = Field(default=None, ge=1)
    transport_mode: Optional[TransportMode] = None


class ReorderRequest(BaseModel):
    from_index: int = Field(ge=0)
    to_index: int = Field(ge=0)


class SegmentOut(BaseModel):
    origin_id: int
    destination_id: int
    mode: TransportMode
    source: str
    coordinates: List[List[float]]


class RouteSetOut(BaseModel):
    generation: int
    segments: List[SegmentOut]


class CountriesOut(BaseModel):
    generation: int
    countries: List[str]
