import math

import pytest

from services.route_synthesis.app.geodesic import interpolate_great_circle
from services.route_synthesis.app.models import Coordinate

MADRID = Coordinate(lon=-3.70, lat=40.42)
PARIS = Coordinate(lon=2.35, lat=48.86)


@pytest.mark.parametrize(
    "start, end, steps",
    [
        (MADRID, PARIS, 96),
        (Coordinate(170.0, 10.0), Coordinate(-170.0, -10.0), 12),
        (Coordinate(-74.0, 40.7), Coordinate(139.7, 35.7), 5),
        (Coordinate(0.0, 89.0), Coordinate(180.0, 89.0), 1),
    ],
)
def test_returns_steps_plus_one_points_with_exact_endpoints(
    start: Coordinate, end: Coordinate, steps: int
) -> None:
    path = interpolate_great_circle(start, end, steps)
    assert len(path) == steps + 1
    assert path[0] == start
    assert path[-1] == end


@pytest.mark.parametrize("steps", [1, 5, 96])
def test_identical_points_short_circuit(steps: int) -> None:
    assert interpolate_great_circle(MADRID, MADRID, steps) == [MADRID, MADRID]


def test_points_follow_the_great_circle() -> None:
    path = interpolate_great_circle(Coordinate(0.0, 0.0), Coordinate(90.0, 0.0), 2)
    assert path[1].lon == pytest.approx(45.0)
    assert path[1].lat == pytest.approx(0.0, abs=1e-9)


def test_intermediate_points_are_evenly_spaced() -> None:
    path = interpolate_great_circle(MADRID, PARIS, 8)

    def angle(a: Coordinate, b: Coordinate) -> float:
        la, lb = math.radians(a.lat), math.radians(b.lat)
        dlon = math.radians(b.lon - a.lon)
        cos_angle = math.sin(la) * math.sin(lb) + math.cos(la) * math.cos(lb) * math.cos(
            dlon
        )
        return math.acos(max(-1.0, min(1.0, cos_angle)))

    gaps = [angle(a, b) for a, b in zip(path, path[1:])]
    assert max(gaps) == pytest.approx(min(gaps), rel=1e-6)


def test_antipodal_points_progress_monotonically() -> None:
    start = Coordinate(0.0, 0.0)
    end = Coordinate(180.0, 0.0)
    path = interpolate_great_circle(start, end, 96)

    assert len(path) == 97
    assert path[0] == start and path[-1] == end
    lons = [p.lon for p in path]
    assert all(b > a for a, b in zip(lons, lons[1:]))
    assert all(abs(p.lat) < 1e-9 for p in path)


def test_pole_to_pole_does_not_raise() -> None:
    path = interpolate_great_circle(Coordinate(0.0, 90.0), Coordinate(0.0, -90.0), 10)
    lats = [p.lat for p in path]
    assert len(path) == 11
    assert all(b < a for a, b in zip(lats, lats[1:]))


@pytest.mark.parametrize(
    "start, end, meridian",
    [
        (Coordinate(0.0, 90.0), Coordinate(0.0, -90.0), 180.0),
        (Coordinate(0.0, -90.0), Coordinate(0.0, 90.0), 0.0),
    ],
)
def test_pole_to_pole_meridian(start: Coordinate, end: Coordinate, meridian: float) -> None:
    middle = interpolate_great_circle(start, end, 10)[5]
    assert middle.lat == pytest.approx(0.0, abs=1e-9)
    assert abs(middle.lon) == pytest.approx(meridian, abs=1e-9)


def test_rejects_zero_steps() -> None:
    with pytest.raises(ValueError):
        interpolate_great_circle(MADRID, PARIS, 0)
