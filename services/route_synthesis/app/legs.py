"""Resolution of a single itinerary leg into a drawable path."""

from __future__ import annotations

import logging

from prometheus_client import Counter

from .geodesic import interpolate_great_circle
from .mapbox import MapboxClient, MapboxError
from .models import Leg, PathSegment

logger = logging.getLogger(__name__)

#: Steps used for geodesic arcs; enough for long inter-city hops to look smooth.
FALLBACK_STEPS = 96

LEGS_RESOLVED = Counter(
    "route_legs_resolved_total",
    "Resolved itinerary legs by path source",
    ["service", "source"],
)

ROUTING_FALLBACKS = Counter(
    "route_routing_fallbacks_total",
    "Legs that fell back to a geodesic arc after a routing failure",
    ["service", "profile"],
)


def geodesic_segment(leg: Leg, steps: int = FALLBACK_STEPS) -> PathSegment:
    path = interpolate_great_circle(
        leg.origin.coordinate, leg.destination.coordinate, steps
    )
    LEGS_RESOLVED.labels("route_synthesis", "geodesic").inc()
    return PathSegment(
        origin_id=leg.origin.id,
        destination_id=leg.destination.id,
        mode=leg.mode,
        coordinates=tuple(path),
        source="geodesic",
    )


async def resolve_leg(
    leg: Leg, client: MapboxClient | None, *, steps: int = FALLBACK_STEPS
) -> PathSegment:
    """Return a path for ``leg``, preferring road routing when it applies.

    ``client`` is ``None`` when no usable access token is configured. Routing
    is attempted once, only for modes with a Directions profile; any failure
    degrades to the great-circle arc.
    """

    profile = leg.mode.routing_profile
    if client is None or profile is None:
        return geodesic_segment(leg, steps)

    try:
        coordinates = await client.directions(
            profile, leg.origin.coordinate, leg.destination.coordinate
        )
    except MapboxError as exc:
        logger.info(
            "Routing %s -> %s (%s) failed, using great circle: %s",
            leg.origin.id,
            leg.destination.id,
            profile,
            exc,
        )
        ROUTING_FALLBACKS.labels("route_synthesis", profile).inc()
        return geodesic_segment(leg, steps)

    LEGS_RESOLVED.labels("route_synthesis", "routing").inc()
    return PathSegment(
        origin_id=leg.origin.id,
        destination_id=leg.destination.id,
        mode=leg.mode,
        coordinates=tuple(coordinates),
        source="routing",
    )
