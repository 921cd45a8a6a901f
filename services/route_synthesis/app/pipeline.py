"""Runs route building and country resolution for every itinerary change."""

from __future__ import annotations

import asyncio
import time
from typing import Any, Protocol, Sequence

from src.common.logging import get_logger
from src.common.metrics import JOB_DURATION

from .builder import RouteBuilder
from .countries import VisitedCountryAggregator
from .legs import FALLBACK_STEPS
from .mapbox import MapboxClient
from .models import Destination, RouteSet, VisitedCountrySet

logger = get_logger(__name__)

ROUTES_TOPIC = "itinerary.routes"
COUNTRIES_TOPIC = "itinerary.countries"


class Producer(Protocol):
    async def send(self, topic: str, key: Any, value: Any) -> None: ...


def route_set_payload(route_set: RouteSet) -> dict[str, Any]:
    return {
        "generation": route_set.generation,
        "segments": [
            {
                "origin_id": seg.origin_id,
                "destination_id": seg.destination_id,
                "mode": seg.mode.value,
                "source": seg.source,
                "coordinates": [c.as_pair() for c in seg.coordinates],
            }
            for seg in route_set.segments
        ],
    }


def country_set_payload(countries: VisitedCountrySet) -> dict[str, Any]:
    return {"generation": countries.generation, "countries": sorted(countries.codes)}


class ItineraryPipeline:
    """Feeds itinerary snapshots to the route builder and country aggregator.

    Both components publish independently; the latest accepted results are
    exposed through :attr:`routes` and :attr:`countries` and, when a producer
    is attached, sent to Kafka.
    """

    def __init__(
        self,
        client: MapboxClient | None,
        *,
        steps: int = FALLBACK_STEPS,
        producer: Producer | None = None,
        routes_topic: str = ROUTES_TOPIC,
        countries_topic: str = COUNTRIES_TOPIC,
    ) -> None:
        self.builder = RouteBuilder(client, steps=steps)
        self.aggregator = VisitedCountryAggregator(client)
        self.producer = producer
        self.routes_topic = routes_topic
        self.countries_topic = countries_topic

    @property
    def routes(self) -> RouteSet:
        return self.builder.latest

    @property
    def countries(self) -> VisitedCountrySet:
        return self.aggregator.latest

    async def _publish(self, topic: str, value: dict[str, Any]) -> None:
        if self.producer is None:
            return
        try:
            await self.producer.send(topic, key="itinerary", value=value)
        except Exception:  # noqa: BLE001
            logger.exception("publish_failed", topic=topic)

    async def _run_routes(
        self, itinerary: Sequence[Destination], generation: int | None
    ) -> None:
        start = time.monotonic()
        route_set = await self.builder.build(itinerary, generation)
        JOB_DURATION.labels("route_synthesis", "build_routes").observe(
            time.monotonic() - start
        )
        if route_set is None:
            return
        logger.info(
            "routes_published",
            generation=route_set.generation,
            segments=len(route_set),
            routed=sum(1 for s in route_set if s.source == "routing"),
        )
        await self._publish(self.routes_topic, route_set_payload(route_set))

    async def _run_countries(
        self, itinerary: Sequence[Destination], generation: int | None
    ) -> None:
        start = time.monotonic()
        countries = await self.aggregator.resolve(itinerary, generation)
        JOB_DURATION.labels("route_synthesis", "resolve_countries").observe(
            time.monotonic() - start
        )
        if countries is None:
            return
        logger.info(
            "countries_published",
            generation=countries.generation,
            countries=sorted(countries.codes),
        )
        await self._publish(self.countries_topic, country_set_payload(countries))

    async def handle_itinerary_changed(
        self, itinerary: Sequence[Destination], version: int | None = None
    ) -> None:
        """Recompute routes and countries for one itinerary snapshot.

        ``version`` is the store version the snapshot belongs to; results for a
        lower version never replace results for a higher one.
        """

        snapshot = tuple(itinerary)
        await asyncio.gather(
            self._run_routes(snapshot, version),
            self._run_countries(snapshot, version),
        )
