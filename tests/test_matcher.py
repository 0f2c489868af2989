import pytest

from ridepool.models.domain import Coordinate, Location, PathPoint, Polyline, Route
from ridepool.services.matching import matcher as matcher_module
from ridepool.services.matching.matcher import MatchingPolicy, RouteCompatibilityMatcher


def _polyline(*points: tuple[float, float]) -> Polyline:
    return Polyline.from_coordinates(Coordinate(lat, lng) for lat, lng in points)


def _route(origin: tuple[float, float], destination: tuple[float, float], polyline: Polyline | None = None) -> Route:
    return Route(
        origin=Location(address="Origin", lat=origin[0], lng=origin[1]),
        destination=Location(address="Destination", lat=destination[0], lng=destination[1]),
        polyline=polyline,
    )


DIAGONAL = _polyline((0, 0), (5, 5), (10, 10))


@pytest.fixture
def matcher() -> RouteCompatibilityMatcher:
    return RouteCompatibilityMatcher(MatchingPolicy())


def test_passenger_inside_route_matches(matcher: RouteCompatibilityMatcher) -> None:
    decision = matcher.is_compatible(Coordinate(1, 1), Coordinate(4, 4), DIAGONAL)

    assert decision.is_match
    assert decision.reason == matcher_module.MATCH
    assert bool(decision)


def test_passenger_travelling_the_whole_route_matches(matcher: RouteCompatibilityMatcher) -> None:
    decision = matcher.is_compatible(Coordinate(0, 0), Coordinate(10, 10), DIAGONAL)

    assert decision.is_match


def test_reverse_direction_is_rejected(matcher: RouteCompatibilityMatcher) -> None:
    decision = matcher.is_compatible(Coordinate(4, 4), Coordinate(1, 1), DIAGONAL)

    assert not decision.is_match
    assert decision.reason == matcher_module.DIRECTION_MISMATCH


def test_fully_reversed_trip_is_rejected(matcher: RouteCompatibilityMatcher) -> None:
    decision = matcher.is_compatible(Coordinate(10, 10), Coordinate(0, 0), DIAGONAL)

    assert not decision.is_match
    assert decision.reason == matcher_module.DIRECTION_MISMATCH


def test_zero_axis_delta_matches_either_sign(matcher: RouteCompatibilityMatcher) -> None:
    # Driver and passenger both head due east; the flat latitude axis is not a mismatch.
    route = _polyline((0, 0), (0, 5), (0, 10))

    decision = matcher.is_compatible(Coordinate(0, 1), Coordinate(0, 4), route)

    assert decision.is_match


def test_passenger_outside_driver_box_is_rejected(matcher: RouteCompatibilityMatcher) -> None:
    decision = matcher.is_compatible(Coordinate(1, 1), Coordinate(11, 11), DIAGONAL)

    assert decision.reason == matcher_module.OUTSIDE_BOUNDS


def test_order_check_uses_dominant_axis(matcher: RouteCompatibilityMatcher) -> None:
    # Driver travels due north; passenger does not advance north at all.
    route = _polyline((0, 0), (5, 0), (10, 0))

    decision = matcher.is_compatible(Coordinate(3, 0), Coordinate(3, 0), route)

    assert decision.reason == matcher_module.ORDER_INVALID


def test_off_route_pickup_is_rejected(matcher: RouteCompatibilityMatcher) -> None:
    decision = matcher.is_compatible(Coordinate(1, 1.1), Coordinate(4, 4.1), DIAGONAL)

    assert not decision.is_match
    assert decision.reason == matcher_module.OFF_ROUTE_START


def test_off_route_dropoff_is_rejected(matcher: RouteCompatibilityMatcher) -> None:
    decision = matcher.is_compatible(Coordinate(1, 1), Coordinate(4, 4.1), DIAGONAL)

    assert decision.reason == matcher_module.OFF_ROUTE_END


def test_both_endpoints_nearest_same_vertex_fail_index_order(matcher: RouteCompatibilityMatcher) -> None:
    decision = matcher.is_compatible(Coordinate(1, 1), Coordinate(1.5, 1.5), DIAGONAL)

    assert decision.reason == matcher_module.INDEX_ORDER


def test_length_ratio_rejects_passenger_trip_longer_than_driver() -> None:
    strict = RouteCompatibilityMatcher(MatchingPolicy(length_ratio_slack=0.5))

    decision = strict.is_compatible(Coordinate(0, 0), Coordinate(10, 10), DIAGONAL)

    assert decision.reason == matcher_module.LENGTH_RATIO


def test_off_route_threshold_is_configurable() -> None:
    loose = RouteCompatibilityMatcher(MatchingPolicy(max_off_route_km=20.0))

    decision = loose.is_compatible(Coordinate(1, 1.1), Coordinate(4, 4.1), DIAGONAL)

    assert decision.is_match


def test_policy_from_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(matcher_module.settings, "max_off_route_km", 0.5)
    monkeypatch.setattr(matcher_module.settings, "length_ratio_slack", 2.0)

    policy = MatchingPolicy.from_settings()

    assert policy.max_off_route_km == 0.5
    assert policy.length_ratio_slack == 2.0
    assert RouteCompatibilityMatcher().policy == policy


def test_empty_polyline_is_a_caller_error(matcher: RouteCompatibilityMatcher) -> None:
    with pytest.raises(ValueError):
        matcher.is_compatible(Coordinate(1, 1), Coordinate(4, 4), Polyline())


def test_route_without_polyline_uses_endpoint_heuristics(matcher: RouteCompatibilityMatcher) -> None:
    route = _route((0, 0), (10, 10))

    # Far from the straight line, yet inside the box and in the right order.
    decision = matcher.is_compatible_route(Coordinate(1, 8), Coordinate(2, 9), route)

    assert decision.is_match
    assert decision.reason == matcher_module.HEURISTIC_MATCH


def test_single_point_polyline_goes_through_projection(matcher: RouteCompatibilityMatcher) -> None:
    route = _route((0, 0), (10, 10), Polyline([PathPoint(0, 0, 0)]))

    decision = matcher.is_compatible_route(Coordinate(1, 1), Coordinate(4, 4), route)
    assert not decision.is_match
    assert decision.reason == matcher_module.OUTSIDE_BOUNDS

    on_point = matcher.is_compatible_route(Coordinate(0, 0), Coordinate(0, 0), route)
    assert on_point.reason == matcher_module.INDEX_ORDER


def test_empty_stored_polyline_uses_heuristics(matcher: RouteCompatibilityMatcher) -> None:
    route = _route((0, 0), (10, 10), Polyline())

    assert matcher.is_compatible_route(Coordinate(1, 1), Coordinate(4, 4), route).reason == matcher_module.HEURISTIC_MATCH


def test_route_with_polyline_uses_projection(matcher: RouteCompatibilityMatcher) -> None:
    route = _route((0, 0), (10, 10), DIAGONAL)

    decision = matcher.is_compatible_route(Coordinate(1, 8), Coordinate(2, 9), route)

    assert decision.reason == matcher_module.OFF_ROUTE_START


def test_matching_is_deterministic(matcher: RouteCompatibilityMatcher) -> None:
    decisions = {matcher.is_compatible(Coordinate(1, 1), Coordinate(4, 4), DIAGONAL) for _ in range(5)}

    assert len(decisions) == 1
