import asyncio

import pytest

from services.route_synthesis.app.builder import RouteBuilder, build_routes
from services.route_synthesis.app.mapbox import MapboxError
from services.route_synthesis.app.models import (
    Coordinate,
    Destination,
    TransportMode,
)

pytestmark = pytest.mark.anyio


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


def _itinerary(mode: TransportMode = TransportMode.UNSPECIFIED) -> list[Destination]:
    return [
        Destination(1, "Madrid", Coordinate(-3.70, 40.42), 2, mode),
        Destination(2, "Paris", Coordinate(2.35, 48.86), 3, mode),
        Destination(3, "Amsterdam", Coordinate(4.90, 52.37), 2, mode),
        Destination(4, "Rome", Coordinate(12.50, 41.90), 4, mode),
    ]


class GatedMapbox:
    """Blocks every directions call until its origin's gate is opened."""

    def __init__(self) -> None:
        self.gates: dict[float, asyncio.Event] = {}
        self.completed: list[float] = []

    def gate(self, lon: float) -> asyncio.Event:
        return self.gates.setdefault(lon, asyncio.Event())

    async def directions(
        self, profile: str, origin: Coordinate, destination: Coordinate
    ) -> list[Coordinate]:
        await self.gate(origin.lon).wait()
        self.completed.append(origin.lon)
        return [origin, destination]


async def test_single_destination_has_no_segments() -> None:
    assert await build_routes(_itinerary()[:1], None) == ()
    assert await build_routes([], None) == ()


async def test_segments_follow_itinerary_order() -> None:
    segments = await build_routes(_itinerary(), None)

    assert [(s.origin_id, s.destination_id) for s in segments] == [
        (1, 2),
        (2, 3),
        (3, 4),
    ]
    assert segments[0].coordinates[0] == Coordinate(-3.70, 40.42)
    assert segments[-1].coordinates[-1] == Coordinate(12.50, 41.90)


async def test_order_kept_when_legs_complete_in_reverse() -> None:
    client = GatedMapbox()
    itinerary = _itinerary(TransportMode.CAR)

    task = asyncio.create_task(build_routes(itinerary, client))
    await asyncio.sleep(0)
    for dest in reversed(itinerary[:-1]):
        client.gate(dest.coordinate.lon).set()
        await asyncio.sleep(0)
    segments = await task

    assert client.completed == [4.90, 2.35, -3.70]
    assert [s.origin_id for s in segments] == [1, 2, 3]
    assert all(s.source == "routing" for s in segments)


async def test_one_failing_leg_does_not_affect_others() -> None:
    class FlakyMapbox:
        async def directions(self, profile, origin, destination):
            if origin.lon == 2.35:
                raise MapboxError("no route")
            return [origin, destination]

    segments = await build_routes(_itinerary(TransportMode.CAR), FlakyMapbox())

    assert [s.source for s in segments] == ["routing", "geodesic", "routing"]


async def test_superseded_build_is_never_published() -> None:
    client = GatedMapbox()
    builder = RouteBuilder(client)

    first = asyncio.create_task(builder.build(_itinerary(TransportMode.CAR)))
    await asyncio.sleep(0)

    reordered = list(reversed(_itinerary(TransportMode.PLANE)))
    second = await builder.build(reordered)
    assert second is not None
    assert [s.origin_id for s in builder.latest] == [4, 3, 2]

    for lon in (-3.70, 2.35, 4.90):
        client.gate(lon).set()
    assert await first is None

    assert builder.latest is second
    assert builder.latest.generation == 2
    assert [s.origin_id for s in builder.latest] == [4, 3, 2]


async def test_latest_build_wins_even_if_it_finishes_first() -> None:
    client = GatedMapbox()
    builder = RouteBuilder(client)
    one = _itinerary(TransportMode.CAR)[:2]
    two = _itinerary(TransportMode.CAR)[2:]

    first = asyncio.create_task(builder.build(one))
    second = asyncio.create_task(builder.build(two))
    await asyncio.sleep(0)

    client.gate(4.90).set()
    published = await second
    client.gate(-3.70).set()
    stale = await first

    assert stale is None
    assert published is not None
    assert builder.latest is published
    assert [(s.origin_id, s.destination_id) for s in builder.latest] == [(3, 4)]


async def test_empty_itinerary_publishes_empty_route_set() -> None:
    builder = RouteBuilder(None)
    await builder.build(_itinerary())
    result = await builder.build([])
    assert result is not None
    assert len(result) == 0
    assert builder.latest is result


async def test_tagged_build_started_late_does_not_overtake_newer_version() -> None:
    client = GatedMapbox()
    builder = RouteBuilder(client)
    newer = _itinerary(TransportMode.CAR)[2:]
    older = _itinerary(TransportMode.CAR)[:2]

    late_newer = asyncio.create_task(builder.build(newer, generation=2))
    await asyncio.sleep(0)
    late_older = asyncio.create_task(builder.build(older, generation=1))
    await asyncio.sleep(0)

    client.gate(-3.70).set()
    assert await late_older is None
    client.gate(4.90).set()
    published = await late_newer

    assert published is not None
    assert builder.latest is published
    assert builder.latest.generation == 2
    assert [(s.origin_id, s.destination_id) for s in builder.latest] == [(3, 4)]
