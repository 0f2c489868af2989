"""Geospatial helper functions."""

from __future__ import annotations

import math

from ..models.domain import Coordinate

EARTH_RADIUS_KM = 6371.0


def to_radians(degrees: float) -> float:
    return degrees * (math.pi / 180.0)


def to_degrees(radians: float) -> float:
    return radians * (180.0 / math.pi)


def haversine_km(a: Coordinate, b: Coordinate) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = to_radians(a.lat), to_radians(b.lat)
    d_phi = to_radians(b.lat - a.lat)
    d_lambda = to_radians(b.lng - a.lng)

    h = min(1.0, math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def closest_point_on_segment(p: Coordinate, seg_start: Coordinate, seg_end: Coordinate) -> Coordinate:
    """Clamp the planar projection of ``p`` onto ``seg_start -> seg_end``.

    Latitude and longitude are treated as a flat plane. Good enough for the short
    intra-city segments of a routed polyline; not a geodesic projection.
    """

    d_lat = seg_end.lat - seg_start.lat
    d_lng = seg_end.lng - seg_start.lng
    length_sq = d_lat * d_lat + d_lng * d_lng
    if length_sq == 0:
        return seg_start

    t = ((p.lat - seg_start.lat) * d_lat + (p.lng - seg_start.lng) * d_lng) / length_sq
    t = max(0.0, min(1.0, t))
    return Coordinate(seg_start.lat + t * d_lat, seg_start.lng + t * d_lng)


def point_to_segment_km(p: Coordinate, seg_start: Coordinate, seg_end: Coordinate) -> float:
    """Distance in km from ``p`` to the nearest point of a segment."""

    return haversine_km(p, closest_point_on_segment(p, seg_start, seg_end))


def bounding_box(a: Coordinate, b: Coordinate) -> tuple[float, float, float, float]:
    """Return ``(min_lat, max_lat, min_lng, max_lng)`` spanned by two coordinates."""

    return min(a.lat, b.lat), max(a.lat, b.lat), min(a.lng, b.lng), max(a.lng, b.lng)


def in_bounding_box(point: Coordinate, box: tuple[float, float, float, float]) -> bool:
    min_lat, max_lat, min_lng, max_lng = box
    return min_lat <= point.lat <= max_lat and min_lng <= point.lng <= max_lng
