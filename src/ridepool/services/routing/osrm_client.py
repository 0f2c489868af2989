"""HTTP client for interacting with OSRM services."""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx

from ...config import settings
from ...models.domain import Coordinate

logger = logging.getLogger(__name__)


class OSRMClient:
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.osrm_base_url).rstrip("/")
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        # One client per call; offer creation may run on several threads at once.
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            headers={"User-Agent": settings.user_agent},
            transport=self._transport,
        )

    def route(self, coordinates: Sequence[Coordinate]) -> dict:
        """Get the driving route between waypoints using the OSRM route endpoint.

        Requests the full geometry as GeoJSON, so ``routes[0].geometry.coordinates``
        holds ``[lng, lat]`` pairs.

        Raises:
            ValueError: If OSRM answers with a non-``Ok`` code or no routes.
            ConnectionError: If the service cannot be reached.
            httpx.HTTPError: On non-2xx responses or other transport failures.
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required for OSRM route.")

        # OSRM route endpoint expects coordinates as "lng,lat;lng,lat;..."
        coordinate_str = ";".join(f"{coord.lng},{coord.lat}" for coord in coordinates)
        params = {
            "overview": "full",
            "geometries": "geojson",
            "steps": "false",
        }
        url = f"{self.base_url}/route/v1/{self.profile}/{coordinate_str}"

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()

                    if not isinstance(data, dict):
                        raise ValueError("OSRM route response is not a JSON object.")
                    if data.get("code") != "Ok":
                        error_msg = data.get("message", data.get("code", "Unknown OSRM route error"))
                        raise ValueError(f"OSRM route request failed: {error_msg}")
                    routes = data.get("routes")
                    if not routes or not isinstance(routes, list):
                        raise ValueError("OSRM route response contained no routes.")
                    if not isinstance(routes[0], dict):
                        raise ValueError("OSRM route entry is not a JSON object.")
                    geometry = routes[0].get("geometry")
                    if geometry is not None and not isinstance(geometry, dict):
                        raise ValueError("OSRM route geometry is not a GeoJSON object.")

                    return data
                except httpx.HTTPStatusError:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OSRM route request timed out after {attempt} attempt(s): {e}")
                        raise
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM route timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.ConnectError, httpx.NetworkError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(
                            f"Failed to connect to OSRM service at {self.base_url}: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
        finally:
            client.close()

    def route_geometry(self, origin: Coordinate, destination: Coordinate) -> list[Coordinate]:
        """Return the routed path between two points as coordinates in travel order."""
        data = self.route([origin, destination])
        raw_coordinates = (data["routes"][0].get("geometry") or {}).get("coordinates") or []
        # GeoJSON coordinates are [lng, lat]
        return [Coordinate(lat=float(pair[1]), lng=float(pair[0])) for pair in raw_coordinates]


def check_health(base_url: str | None = None, transport: httpx.BaseTransport | None = None) -> bool:
    """Check OSRM service health by routing between two fixed points.

    Public OSRM endpoints may not have a /health endpoint, so connectivity is tested
    with a minimal route request.
    """
    try:
        client = OSRMClient(base_url=base_url, timeout=5.0, max_retries=0, transport=transport)
        # Berlin test pair, routable on both public and self-hosted Europe extracts
        client.route([Coordinate(52.517037, 13.388860), Coordinate(52.496891, 13.385983)])
        return True
    except (httpx.HTTPError, ConnectionError, ValueError):
        return False
