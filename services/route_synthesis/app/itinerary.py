"""In-memory itinerary state; every change yields a new immutable snapshot."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from .models import Coordinate, Destination, TransportMode

Snapshot = tuple[Destination, ...]


class DestinationNotFound(KeyError):
    """No destination with the requested id."""


class ItineraryStore:
    """Holds the current itinerary and a version bumped on every change.

    The version is read together with the snapshot and handed to the pipeline
    as its generation.
    """

    def __init__(self, destinations: Iterable[Destination] = ()) -> None:
        self._snapshot: Snapshot = ()
        self._version = 0
        self.replace(destinations)

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._version

    def _set(self, items: Snapshot) -> Snapshot:
        self._snapshot = items
        self._version += 1
        return items

    def replace(self, destinations: Iterable[Destination]) -> Snapshot:
        items = tuple(destinations)
        ids = [d.id for d in items]
        if len(ids) != len(set(ids)):
            raise ValueError("destination ids must be unique")
        return self._set(items)

    def _index_of(self, destination_id: int) -> int:
        for index, dest in enumerate(self._snapshot):
            if dest.id == destination_id:
                return index
        raise DestinationNotFound(destination_id)

    def add(
        self,
        name: str,
        coordinate: Coordinate,
        days: int = 1,
        transport_mode: TransportMode = TransportMode.UNSPECIFIED,
        destination_id: int | None = None,
    ) -> Destination:
        """Append a destination; the id defaults to the last id plus one."""

        if destination_id is None:
            destination_id = (self._snapshot[-1].id if self._snapshot else 0) + 1
            taken = {d.id for d in self._snapshot}
            while destination_id in taken:
                destination_id += 1
        elif any(d.id == destination_id for d in self._snapshot):
            raise ValueError(f"destination {destination_id} already exists")
        destination = Destination(
            id=destination_id,
            name=name,
            coordinate=coordinate,
            days=days,
            transport_mode=transport_mode,
        )
        self._set((*self._snapshot, destination))
        return destination

    def update(
        self,
        destination_id: int,
        *,
        days: int | None = None,
        transport_mode: TransportMode | None = None,
    ) -> Destination:
        index = self._index_of(destination_id)
        current = self._snapshot[index]
        changes: dict[str, object] = {}
        if days is not None:
            changes["days"] = days
        if transport_mode is not None:
            changes["transport_mode"] = transport_mode
        updated = replace(current, **changes)
        items = list(self._snapshot)
        items[index] = updated
        self._set(tuple(items))
        return updated

    def remove(self, destination_id: int) -> Snapshot:
        index = self._index_of(destination_id)
        return self._set(self._snapshot[:index] + self._snapshot[index + 1 :])

    def reorder(self, from_index: int, to_index: int) -> Snapshot:
        """Move the entry at ``from_index`` so that it ends up at ``to_index``."""

        size = len(self._snapshot)
        if not (0 <= from_index < size and 0 <= to_index < size):
            raise IndexError("reorder index out of range")
        items = list(self._snapshot)
        moved = items.pop(from_index)
        items.insert(to_index, moved)
        return self._set(tuple(items))
