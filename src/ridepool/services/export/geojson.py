"""GeoJSON export utilities for driver routes."""

from __future__ import annotations

from typing import Any, Dict, Optional

from shapely.geometry import LineString, Point, mapping

from ...models.domain import Polyline, RouteOffer
from ..geospatial import haversine_km


def polyline_to_linestring(polyline: Polyline) -> LineString:
    """Convert a polyline to a shapely LineString in (lng, lat) axis order."""
    if len(polyline) < 2:
        raise ValueError("LineString must have at least 2 coordinates")
    return LineString([(point.lng, point.lat) for point in polyline])


def polyline_length_km(polyline: Polyline) -> float:
    """Sum of great-circle lengths of consecutive polyline segments."""
    return sum(haversine_km(start.coordinate, end.coordinate) for start, end in zip(polyline, polyline[1:]))


def polyline_to_wkt(polyline: Polyline) -> str:
    return polyline_to_linestring(polyline).wkt


def polyline_to_feature(polyline: Polyline, properties: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Convert a polyline to a GeoJSON LineString feature."""
    feature_properties = dict(properties or {})
    feature_properties.setdefault("point_count", len(polyline))
    feature_properties.setdefault("length_km", round(polyline_length_km(polyline), 3))
    feature_properties.setdefault("is_fallback", len(polyline) == 2)
    return {
        "type": "Feature",
        "geometry": mapping(polyline_to_linestring(polyline)),
        "properties": feature_properties,
    }


def offer_route_to_feature_collection(offer: RouteOffer) -> Dict[str, Any]:
    """Route line plus origin/destination markers for map overlays."""
    route = offer.route
    features = []
    if route.has_polyline:
        features.append(polyline_to_feature(route.polyline, {"offer_id": offer.offer_id, "kind": "route"}))
    for kind, location in (("origin", route.origin), ("destination", route.destination)):
        features.append(
            {
                "type": "Feature",
                "geometry": mapping(Point(location.lng, location.lat)),
                "properties": {"offer_id": offer.offer_id, "kind": kind, "address": location.address},
            }
        )
    return {"type": "FeatureCollection", "features": features}
