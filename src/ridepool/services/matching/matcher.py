"""Route compatibility checks between a driver route and a passenger trip."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ...config import settings
from ...models.domain import Coordinate, MatchDecision, Polyline, Route
from ..geospatial import bounding_box, haversine_km, in_bounding_box
from .projector import project

logger = logging.getLogger(__name__)

MATCH = "match"
HEURISTIC_MATCH = "no_polyline_heuristic_match"
DIRECTION_MISMATCH = "direction_mismatch"
OUTSIDE_BOUNDS = "outside_bounds"
ORDER_INVALID = "order_invalid"
OFF_ROUTE_START = "off_route_start"
OFF_ROUTE_END = "off_route_end"
INDEX_ORDER = "index_order"
LENGTH_RATIO = "length_ratio"


@dataclass(frozen=True, slots=True)
class MatchingPolicy:
    """Tunable thresholds for route matching."""

    max_off_route_km: float = 3.0
    length_ratio_slack: float = 1.1
    axis_epsilon_deg: float = 1e-9

    @classmethod
    def from_settings(cls) -> "MatchingPolicy":
        return cls(
            max_off_route_km=settings.max_off_route_km,
            length_ratio_slack=settings.length_ratio_slack,
            axis_epsilon_deg=settings.axis_epsilon_deg,
        )


def _same_sign(driver_delta: float, passenger_delta: float) -> bool:
    # Zero on either side matches any sign on that axis.
    if driver_delta == 0 or passenger_delta == 0:
        return True
    return (driver_delta > 0) == (passenger_delta > 0)


def _describe(delta: float, positive: str, negative: str) -> str:
    if delta > 0:
        return positive
    if delta < 0:
        return negative
    return "none"


class RouteCompatibilityMatcher:
    """Decide whether a passenger trip lies along a driver's route.

    Checks run cheapest first and stop at the first failure:

    1. direction: per-axis sign of the driver and passenger lat/lng deltas agree
    2. bounds: both passenger points fall inside the box spanned by the driver's endpoints
    3. order: pickup precedes drop-off along the driver's dominant axis of travel
    4. off-route: both passenger points project within ``max_off_route_km`` of the polyline
    5. index order: ``driver_start <= pickup_index < dropoff_index <= driver_end``
    6. length ratio: passenger straight-line length ``<= driver length * length_ratio_slack``

    Lat/lng deltas are compared as if the coordinate plane were flat; routes across the
    anti-meridian or near the poles are not supported.
    """

    def __init__(self, policy: MatchingPolicy | None = None) -> None:
        self.policy = policy or MatchingPolicy.from_settings()

    def check_endpoints(
        self,
        passenger_from: Coordinate,
        passenger_to: Coordinate,
        driver_from: Coordinate,
        driver_to: Coordinate,
    ) -> Optional[MatchDecision]:
        """Run the direction, bounds and order checks. Returns a rejection or ``None``."""
        driver_d_lat = driver_to.lat - driver_from.lat
        driver_d_lng = driver_to.lng - driver_from.lng
        passenger_d_lat = passenger_to.lat - passenger_from.lat
        passenger_d_lng = passenger_to.lng - passenger_from.lng

        if not (_same_sign(driver_d_lat, passenger_d_lat) and _same_sign(driver_d_lng, passenger_d_lng)):
            detail = (
                f"driver heads {_describe(driver_d_lat, 'north', 'south')}/{_describe(driver_d_lng, 'east', 'west')}, "
                f"passenger heads {_describe(passenger_d_lat, 'north', 'south')}/{_describe(passenger_d_lng, 'east', 'west')}"
            )
            return MatchDecision(False, DIRECTION_MISMATCH, detail)

        box = bounding_box(driver_from, driver_to)
        if not (in_bounding_box(passenger_from, box) and in_bounding_box(passenger_to, box)):
            min_lat, max_lat, min_lng, max_lng = box
            detail = (
                f"driver box lat [{min_lat:.6f}, {max_lat:.6f}] lng [{min_lng:.6f}, {max_lng:.6f}]"
            )
            return MatchDecision(False, OUTSIDE_BOUNDS, detail)

        eps = self.policy.axis_epsilon_deg
        if abs(driver_d_lat) > eps:
            forward = driver_d_lat > 0
            order_valid = passenger_from.lat < passenger_to.lat if forward else passenger_from.lat > passenger_to.lat
        elif abs(driver_d_lng) > eps:
            forward = driver_d_lng > 0
            order_valid = passenger_from.lng < passenger_to.lng if forward else passenger_from.lng > passenger_to.lng
        else:
            order_valid = True  # driver origin and destination coincide

        if not order_valid:
            return MatchDecision(False, ORDER_INVALID, "passenger travels against the driver's direction")

        return None

    def is_compatible(
        self,
        passenger_from: Coordinate,
        passenger_to: Coordinate,
        driver_polyline: Polyline,
    ) -> MatchDecision:
        if not driver_polyline:
            raise ValueError("Driver polyline must contain at least one point.")

        driver_first = driver_polyline.first
        driver_last = driver_polyline.last
        driver_from = driver_first.coordinate
        driver_to = driver_last.coordinate

        rejection = self.check_endpoints(passenger_from, passenger_to, driver_from, driver_to)
        if rejection is not None:
            return self._log(rejection)

        max_km = self.policy.max_off_route_km
        start = project(passenger_from, driver_polyline)
        if start.distance_km > max_km:
            return self._log(
                MatchDecision(False, OFF_ROUTE_START, f"pickup is {start.distance_km:.2f}km away (max: {max_km}km)")
            )
        end = project(passenger_to, driver_polyline)
        if end.distance_km > max_km:
            return self._log(
                MatchDecision(False, OFF_ROUTE_END, f"drop-off is {end.distance_km:.2f}km away (max: {max_km}km)")
            )

        driver_start_idx = driver_first.index
        driver_end_idx = driver_last.index
        if not (driver_start_idx <= start.index < end.index <= driver_end_idx):
            return self._log(
                MatchDecision(
                    False,
                    INDEX_ORDER,
                    f"driver[{driver_start_idx}-{driver_end_idx}] vs passenger[{start.index}-{end.index}]",
                )
            )

        driver_length_km = haversine_km(driver_from, driver_to)
        passenger_length_km = haversine_km(passenger_from, passenger_to)
        if passenger_length_km > driver_length_km * self.policy.length_ratio_slack:
            return self._log(
                MatchDecision(
                    False,
                    LENGTH_RATIO,
                    f"driver={driver_length_km:.2f}km, passenger={passenger_length_km:.2f}km",
                )
            )

        return self._log(
            MatchDecision(
                True,
                MATCH,
                f"driver[{driver_start_idx}-{driver_end_idx}] vs passenger[{start.index}-{end.index}], "
                f"driver={driver_length_km:.2f}km, passenger={passenger_length_km:.2f}km, "
                f"startDist={start.distance_km:.2f}km, endDist={end.distance_km:.2f}km",
            )
        )

    def is_compatible_route(
        self,
        passenger_from: Coordinate,
        passenger_to: Coordinate,
        route: Route,
    ) -> MatchDecision:
        """Match against a stored route.

        Any stored polyline, even a single point, goes through the full check sequence.
        Only routes with no polyline points fall back to the endpoint heuristics.
        """
        if route.polyline:
            return self.is_compatible(passenger_from, passenger_to, route.polyline)

        rejection = self.check_endpoints(
            passenger_from,
            passenger_to,
            route.origin.coordinate,
            route.destination.coordinate,
        )
        if rejection is not None:
            return self._log(rejection)
        return self._log(MatchDecision(True, HEURISTIC_MATCH, "route has no polyline; endpoint checks passed"))

    @staticmethod
    def _log(decision: MatchDecision) -> MatchDecision:
        if decision.is_match:
            logger.debug(f"Route match ({decision.reason}): {decision.detail}")
        else:
            logger.debug(f"No match ({decision.reason}): {decision.detail}")
        return decision
