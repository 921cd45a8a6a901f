"""Resolution of the set of countries an itinerary passes through."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from .builder import STALE_RESULTS
from .mapbox import MapboxClient, MapboxError
from .models import Destination, VisitedCountrySet
from .snapshots import SnapshotGuard

logger = logging.getLogger(__name__)


def normalize_country_code(short_code: str | None) -> str | None:
    """Turn a geocoder short code (``es``, ``us-ca``) into ``ES``/``US``.

    Returns ``None`` for anything that is not exactly two characters once the
    region suffix is stripped.
    """

    if not short_code:
        return None
    code = short_code.split("-", 1)[0].strip().upper()
    return code if len(code) == 2 else None


async def _country_of(destination: Destination, client: MapboxClient) -> str | None:
    try:
        short_code = await client.reverse_country(destination.coordinate)
    except MapboxError as exc:
        logger.info("Country lookup for destination %s skipped: %s", destination.id, exc)
        return None
    return normalize_country_code(short_code)


async def resolve_visited_countries(
    itinerary: Sequence[Destination], client: MapboxClient | None
) -> frozenset[str]:
    if client is None or not itinerary:
        return frozenset()
    codes = await asyncio.gather(*(_country_of(dest, client) for dest in itinerary))
    return frozenset(code for code in codes if code)


class VisitedCountryAggregator:
    """Same latest-snapshot-wins discipline as :class:`~.builder.RouteBuilder`."""

    def __init__(self, client: MapboxClient | None) -> None:
        self.client = client
        self._guard = SnapshotGuard()
        self._latest = VisitedCountrySet()

    @property
    def latest(self) -> VisitedCountrySet:
        return self._latest

    async def resolve(
        self, itinerary: Sequence[Destination], generation: int | None = None
    ) -> VisitedCountrySet | None:
        generation = self._guard.start(generation)
        codes = await resolve_visited_countries(tuple(itinerary), self.client)
        if not self._guard.is_current(generation):
            STALE_RESULTS.labels("route_synthesis", "countries").inc()
            logger.debug("Dropping country set %s", generation)
            return None
        self._latest = VisitedCountrySet(generation=generation, codes=codes)
        return self._latest
