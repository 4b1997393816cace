# geo.py
"""
Geospatial helpers shared by every subsystem.

 - distance: haversine great-circle distance in metres
 - to_local / from_local: equirectangular projection around an origin,
   valid only within a few kilometres (crowd ranges are tens of metres)
 - normalize / limit / magnitude: 2D vector helpers on (x, y) tuples
"""

import math
from typing import Sequence, Tuple

import config
from models import Point

Vector = Tuple[float, float]

ZERO: Vector = (0.0, 0.0)


def distance(p1: Point, p2: Point) -> float:
    """Great-circle distance in metres between two points (haversine)."""
    phi1 = math.radians(p1.lat)
    phi2 = math.radians(p2.lat)
    d_phi = math.radians(p2.lat - p1.lat)
    d_lambda = math.radians(p2.lng - p1.lng)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return config.EARTH_RADIUS_M * c


def meters_per_degree_lng(lat: float) -> float:
    return config.METERS_PER_DEG_LNG_EQUATOR * math.cos(math.radians(lat))


def to_local(point: Point, origin: Point) -> Vector:
    """Project `point` into metres (x east, y north) around `origin`."""
    x = (point.lng - origin.lng) * meters_per_degree_lng(origin.lat)
    y = (point.lat - origin.lat) * config.METERS_PER_DEG_LAT
    return (x, y)


def from_local(coords: Vector, origin: Point) -> Point:
    """Inverse of to_local."""
    x, y = coords
    return Point(
        lat=origin.lat + y / config.METERS_PER_DEG_LAT,
        lng=origin.lng + x / meters_per_degree_lng(origin.lat),
    )


def offset(point: Point, dx: float, dy: float) -> Point:
    """Move `point` by dx metres east and dy metres north."""
    return from_local((dx, dy), point)


def magnitude(vector: Vector) -> float:
    return math.hypot(vector[0], vector[1])


def normalize(vector: Vector) -> Vector:
    length = magnitude(vector)
    if length == 0:
        return ZERO
    return (vector[0] / length, vector[1] / length)


def limit(vector: Vector, max_magnitude: float) -> Vector:
    length = magnitude(vector)
    if length > max_magnitude:
        return (vector[0] / length * max_magnitude, vector[1] / length * max_magnitude)
    return vector


def route_length(coordinates: Sequence[Point]) -> float:
    """Sum of haversine legs along a polyline."""
    total = 0.0
    for a, b in zip(coordinates, coordinates[1:]):
        total += distance(a, b)
    return total
