"""Great-circle interpolation between two coordinates."""

from __future__ import annotations

import math

from .models import Coordinate

Vector = tuple[float, float, float]

# Below this sin(omega) the two points are treated as antipodal and the
# slerp denominator is not trusted.
_ANTIPODAL_EPSILON = 1e-12


def _clamp(value: float, low: float = -1.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _to_vector(point: Coordinate) -> Vector:
    lon = math.radians(point.lon)
    lat = math.radians(point.lat)
    cos_lat = math.cos(lat)
    return (cos_lat * math.cos(lon), cos_lat * math.sin(lon), math.sin(lat))


def _normalize(vec: Vector) -> Vector:
    norm = math.sqrt(vec[0] ** 2 + vec[1] ** 2 + vec[2] ** 2)
    if norm == 0.0:
        raise ValueError("cannot normalize a zero vector")
    return (vec[0] / norm, vec[1] / norm, vec[2] / norm)


def _cross(a: Vector, b: Vector) -> Vector:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def _to_coordinate(vec: Vector) -> Coordinate:
    x, y, z = _normalize(vec)
    lon = math.degrees(math.atan2(y, x))
    lat = math.degrees(math.asin(_clamp(z)))
    return Coordinate(lon=_clamp(lon, -180.0, 180.0), lat=_clamp(lat, -90.0, 90.0))


def _eastward_perpendicular(a: Vector) -> Vector:
    """Unit vector orthogonal to ``a`` pointing east along the local parallel."""

    east = _cross((0.0, 0.0, 1.0), a)
    if math.sqrt(east[0] ** 2 + east[1] ** 2 + east[2] ** 2) < _ANTIPODAL_EPSILON:
        # a is a pole and every meridian qualifies; a x y follows the 180th
        # meridian from the north pole and the prime meridian from the south.
        east = _cross(a, (0.0, 1.0, 0.0))
    return _normalize(east)


def interpolate_great_circle(
    start: Coordinate, end: Coordinate, steps: int
) -> list[Coordinate]:
    """Sample ``steps + 1`` points along the great circle from ``start`` to ``end``.

    Identical points short-circuit to ``[start, end]``. For antipodal points
    every meridian-like circle is shortest; the path heads east from
    ``start``. The first and last points are always the inputs themselves.
    """

    if steps < 1:
        raise ValueError("steps must be at least 1")
    if start == end:
        return [start, end]

    a = _to_vector(start)
    b = _to_vector(end)
    dot = _clamp(a[0] * b[0] + a[1] * b[1] + a[2] * b[2])
    omega = math.acos(dot)
    if omega == 0.0:
        return [start, end]

    sin_omega = math.sin(omega)
    antipodal = sin_omega < _ANTIPODAL_EPSILON
    if antipodal:
        perpendicular = _eastward_perpendicular(a)

    points = [start]
    for i in range(1, steps):
        t = i / steps
        if antipodal:
            angle = math.pi * t
            ca, sa = math.cos(angle), math.sin(angle)
            vec = (
                ca * a[0] + sa * perpendicular[0],
                ca * a[1] + sa * perpendicular[1],
                ca * a[2] + sa * perpendicular[2],
            )
        else:
            wa = math.sin((1.0 - t) * omega) / sin_omega
            wb = math.sin(t * omega) / sin_omega
            vec = (
                wa * a[0] + wb * b[0],
                wa * a[1] + wb * b[1],
                wa * a[2] + wb * b[2],
            )
        points.append(_to_coordinate(vec))
    points.append(end)
    return points
