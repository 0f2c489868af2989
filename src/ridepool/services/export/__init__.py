"""Export services."""

from .geojson import (
    offer_route_to_feature_collection,
    polyline_to_feature,
    polyline_to_wkt,
)

__all__ = [
    "offer_route_to_feature_collection",
    "polyline_to_feature",
    "polyline_to_wkt",
]
