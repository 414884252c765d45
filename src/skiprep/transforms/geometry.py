"""
Geometry helpers for GeoJSON coordinates.

Distances use the Haversine formula on a spherical Earth
(R = 6,371,008.8 m, the mean radius). Coordinates are [lng, lat] in decimal
degrees, optionally followed by an elevation.
"""

from math import asin, atan2, cos, degrees, radians, sin, sqrt
from typing import Any

from ..types import UnsupportedGeometryError

EARTH_RADIUS_M = 6_371_008.8

Position = list[float]


def haversine_distance_m(a: Position, b: Position) -> float:
    """Great-circle distance in meters between two [lng, lat] positions."""
    dlat = radians(b[1] - a[1])
    dlon = radians(b[0] - a[0])
    h = sin(dlat / 2) ** 2 + cos(radians(a[1])) * cos(radians(b[1])) * sin(dlon / 2) ** 2
    return EARTH_RADIUS_M * 2 * atan2(sqrt(h), sqrt(1 - h))


def initial_bearing_deg(a: Position, b: Position) -> float:
    lon1, lat1 = radians(a[0]), radians(a[1])
    lon2, lat2 = radians(b[0]), radians(b[1])
    dlon = lon2 - lon1
    y = sin(dlon) * cos(lat2)
    x = cos(lat1) * sin(lat2) - sin(lat1) * cos(lat2) * cos(dlon)
    return degrees(atan2(y, x))


def destination(origin: Position, bearing_deg: float, distance_m: float) -> Position:
    """Point reached from origin after distance_m along bearing_deg."""
    brng = radians(bearing_deg)
    lat1 = radians(origin[1])
    lon1 = radians(origin[0])
    d_r = distance_m / EARTH_RADIUS_M

    lat2 = asin(sin(lat1) * cos(d_r) + cos(lat1) * sin(d_r) * cos(brng))
    lon2 = lon1 + atan2(
        sin(brng) * sin(d_r) * cos(lat1),
        cos(d_r) - sin(lat1) * sin(lat2),
    )
    return [degrees(lon2), degrees(lat2)]


def line_length_m(coordinates: list[Position]) -> float:
    return sum(
        haversine_distance_m(coordinates[i], coordinates[i + 1])
        for i in range(len(coordinates) - 1)
    )


def along(coordinates: list[Position], distance_m: float) -> Position:
    """Position at distance_m along a line, clamped to its last vertex."""
    travelled = 0.0
    for i in range(len(coordinates) - 1):
        start, end = coordinates[i], coordinates[i + 1]
        segment = haversine_distance_m(start, end)
        if distance_m <= travelled + segment and segment > 0:
            overshoot = distance_m - travelled
            if overshoot <= 0:
                return [start[0], start[1]]
            return destination(start, initial_bearing_deg(start, end), overshoot)
        travelled += segment
    last = coordinates[-1]
    return [last[0], last[1]]


def chunk_start_points(coordinates: list[Position], resolution_m: float) -> list[Position]:
    """
    Split a line into resolution_m long chunks and return each chunk's start
    point followed by the line's final point.

    A line no longer than one chunk yields its first and last vertex.
    """
    if len(coordinates) < 2:
        return []
    if resolution_m <= 0:
        raise ValueError("Chunk resolution must be positive")

    length = line_length_m(coordinates)
    if length <= resolution_m:
        chunk_count = 1
    else:
        chunk_count = int(length // resolution_m)
        if length % resolution_m:
            chunk_count += 1

    points = [along(coordinates, resolution_m * i) for i in range(chunk_count)]
    last = coordinates[-1]
    points.append([last[0], last[1]])
    return points


def vertex_sequences(geometry: dict[str, Any]) -> list[list[Position]]:
    """
    Vertex sequences of a geometry in document order: one per line, part or ring.

    The returned lists are the geometry's own coordinate lists.
    """
    kind = geometry.get("type")
    coordinates = geometry.get("coordinates")
    if kind == "Point":
        return [[coordinates]]
    if kind == "LineString":
        return [coordinates]
    if kind in ("MultiLineString", "Polygon"):
        return list(coordinates)
    if kind == "MultiPolygon":
        return [ring for polygon in coordinates for ring in polygon]
    raise UnsupportedGeometryError(kind)


def is_ring_geometry(geometry: dict[str, Any]) -> bool:
    return geometry.get("type") in ("Polygon", "MultiPolygon")
