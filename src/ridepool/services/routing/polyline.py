"""Route polyline acquisition with straight-line fallback."""

from __future__ import annotations

import logging

import httpx

from ...models.domain import Coordinate, Polyline
from .osrm_client import OSRMClient

logger = logging.getLogger(__name__)


class PolylineProvider:
    """Obtain an indexed driving path between two coordinates.

    Any routing failure (transport error, timeout, non-``Ok`` status, empty geometry)
    degrades to the two-point fallback polyline ``[(origin, 0), (destination, 1)]``.
    ``get_route_polyline`` never raises for routing-service problems.
    """

    def __init__(self, client: OSRMClient | None = None) -> None:
        self._client = client

    @property
    def client(self) -> OSRMClient:
        if self._client is None:
            self._client = OSRMClient()
        return self._client

    def get_route_polyline(self, origin: Coordinate, destination: Coordinate) -> Polyline:
        try:
            path = self.client.route_geometry(origin, destination)
        except (httpx.HTTPError, ConnectionError, ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
            logger.warning(
                f"Routing failed for ({origin.lat},{origin.lng}) -> ({destination.lat},{destination.lng}), "
                f"using direct line: {exc}"
            )
            return Polyline.fallback(origin, destination)

        if not path:
            logger.warning("No route geometry returned by OSRM, using direct line")
            return Polyline.fallback(origin, destination)
        if len(path) == 1:
            # A single routed point cannot describe a path; keep the endpoints instead.
            logger.warning("OSRM returned a single-point geometry, using direct line")
            return Polyline.fallback(origin, destination)

        polyline = Polyline.from_coordinates(path)
        logger.info(f"Generated polyline with {len(polyline)} points")
        return polyline


def get_route_polyline(origin: Coordinate, destination: Coordinate) -> Polyline:
    """Module-level convenience wrapper around a default :class:`PolylineProvider`."""
    return PolylineProvider().get_route_polyline(origin, destination)
