"""Projection of coordinates onto driver polylines."""

from __future__ import annotations

import math
from typing import Sequence

from ...models.domain import Coordinate, PathPoint, ProjectionResult
from ..geospatial import haversine_km, point_to_segment_km


def project(point: Coordinate, polyline: Sequence[PathPoint]) -> ProjectionResult:
    """Find the polyline segment closest to ``point``.

    Returns the path index of the nearer endpoint of the winning segment and the
    perpendicular distance to that segment in km. Ties between segments go to the
    later segment, so a point sitting exactly on a shared vertex reports the
    downstream segment.

    A polyline with a single point is projected onto that point. An empty polyline
    is a caller error and raises ``ValueError``.
    """
    if not polyline:
        raise ValueError("Cannot project onto an empty polyline.")

    if len(polyline) < 2:
        only = polyline[0]
        return ProjectionResult(index=only.index, distance_km=haversine_km(point, only.coordinate))

    min_distance = math.inf
    nearest_index = polyline[0].index

    for start, end in zip(polyline, polyline[1:]):
        start_coord = start.coordinate
        end_coord = end.coordinate
        distance = point_to_segment_km(point, start_coord, end_coord)
        if distance <= min_distance:
            min_distance = distance
            to_start = haversine_km(point, start_coord)
            to_end = haversine_km(point, end_coord)
            nearest_index = start.index if to_start < to_end else end.index

    return ProjectionResult(index=nearest_index, distance_km=min_distance)
