"""Fan-out of leg resolution over a whole itinerary."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from prometheus_client import Counter

from .legs import FALLBACK_STEPS, resolve_leg
from .mapbox import MapboxClient
from .models import Destination, PathSegment, RouteSet, legs_for
from .snapshots import SnapshotGuard

logger = logging.getLogger(__name__)

STALE_RESULTS = Counter(
    "route_stale_results_total",
    "Results dropped because a newer itinerary snapshot was started",
    ["service", "kind"],
)


async def build_routes(
    itinerary: Sequence[Destination],
    client: MapboxClient | None,
    *,
    steps: int = FALLBACK_STEPS,
) -> tuple[PathSegment, ...]:
    """Resolve every leg concurrently and return segments in leg order."""

    legs = legs_for(itinerary)
    if not legs:
        return ()
    # gather keeps positional order whatever the completion order is
    segments = await asyncio.gather(
        *(resolve_leg(leg, client, steps=steps) for leg in legs)
    )
    return tuple(segments)


class RouteBuilder:
    """Builds route sets and publishes only the one for the latest snapshot."""

    def __init__(
        self, client: MapboxClient | None, *, steps: int = FALLBACK_STEPS
    ) -> None:
        self.client = client
        self.steps = steps
        self._guard = SnapshotGuard()
        self._latest = RouteSet()

    @property
    def latest(self) -> RouteSet:
        return self._latest

    async def build(
        self, itinerary: Sequence[Destination], generation: int | None = None
    ) -> RouteSet | None:
        """Build routes for ``itinerary``; ``None`` if superseded before finishing.

        ``generation`` is the itinerary version the snapshot was taken at; without
        it the build is tagged as the newest one.
        """

        generation = self._guard.start(generation)
        snapshot = tuple(itinerary)
        segments = await build_routes(snapshot, self.client, steps=self.steps)
        if not self._guard.is_current(generation):
            STALE_RESULTS.labels("route_synthesis", "routes").inc()
            logger.debug(
                "Dropping route set %s, generation %s is current",
                generation,
                self._guard.current,
            )
            return None
        self._latest = RouteSet(generation=generation, segments=segments)
        return self._latest
