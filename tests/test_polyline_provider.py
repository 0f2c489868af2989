import httpx
import pytest

from ridepool.models.domain import Coordinate, Polyline
from ridepool.services.routing import osrm_client
from ridepool.services.routing.osrm_client import OSRMClient, check_health
from ridepool.services.routing.polyline import PolylineProvider

ORIGIN = Coordinate(19.0760, 72.8777)
DESTINATION = Coordinate(18.5204, 73.8567)


def _osrm_response(coordinates: list[list[float]], code: str = "Ok") -> dict:
    return {
        "code": code,
        "routes": [{"geometry": {"type": "LineString", "coordinates": coordinates}, "distance": 150000.0}],
    }


def _provider(handler) -> PolylineProvider:
    client = OSRMClient(base_url="http://osrm.test", profile="driving", transport=httpx.MockTransport(handler))
    return PolylineProvider(client=client)


def test_route_request_asks_for_full_geojson_geometry() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_osrm_response([[72.8777, 19.0760], [73.8567, 18.5204]]))

    _provider(handler).get_route_polyline(ORIGIN, DESTINATION)

    assert len(seen) == 1
    request = seen[0]
    assert request.url.path == "/route/v1/driving/72.8777,19.076;73.8567,18.5204"
    assert request.url.params["overview"] == "full"
    assert request.url.params["geometries"] == "geojson"


def test_successful_route_is_indexed_in_lat_lng_order() -> None:
    geometry = [[72.8777, 19.0760], [73.2, 18.9], [73.5, 18.7], [73.8567, 18.5204]]

    provider = _provider(lambda request: httpx.Response(200, json=_osrm_response(geometry)))
    result = provider.get_route_polyline(ORIGIN, DESTINATION)

    assert len(result) == 4
    assert [point.index for point in result] == [0, 1, 2, 3]
    assert (result[1].lat, result[1].lng) == (18.9, 73.2)
    assert result.validated() is result


def test_server_error_falls_back_to_straight_line() -> None:
    provider = _provider(lambda request: httpx.Response(503, text="unavailable"))

    assert provider.get_route_polyline(ORIGIN, DESTINATION) == Polyline.fallback(ORIGIN, DESTINATION)


def test_connection_error_falls_back_to_straight_line() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = _provider(handler).get_route_polyline(ORIGIN, DESTINATION)

    assert result == Polyline.fallback(ORIGIN, DESTINATION)
    assert [(p.lat, p.lng, p.index) for p in result] == [
        (ORIGIN.lat, ORIGIN.lng, 0),
        (DESTINATION.lat, DESTINATION.lng, 1),
    ]


def test_timeout_falls_back_to_straight_line() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    assert _provider(handler).get_route_polyline(ORIGIN, DESTINATION) == Polyline.fallback(ORIGIN, DESTINATION)


@pytest.mark.parametrize(
    "payload",
    [
        {"code": "NoRoute", "message": "Impossible route between points"},
        {"code": "Ok", "routes": []},
        _osrm_response([]),
        _osrm_response([[72.8777, 19.0760]]),
        {"code": "Ok", "routes": [{"distance": 10.0}]},
        {"code": "Ok", "routes": [{"geometry": None}]},
        {"code": "Ok", "routes": ["bogus"]},
        {"code": "Ok", "routes": [{"geometry": "LINESTRING(0 0, 1 1)"}]},
        [1, 2, 3],
    ],
)
def test_unusable_responses_fall_back(payload: object) -> None:
    provider = _provider(lambda request: httpx.Response(200, json=payload))

    assert provider.get_route_polyline(ORIGIN, DESTINATION) == Polyline.fallback(ORIGIN, DESTINATION)


def test_malformed_json_falls_back() -> None:
    provider = _provider(lambda request: httpx.Response(200, text="<html>not json</html>"))

    assert provider.get_route_polyline(ORIGIN, DESTINATION) == Polyline.fallback(ORIGIN, DESTINATION)


def test_client_raises_value_error_for_non_ok_code() -> None:
    client = OSRMClient(
        base_url="http://osrm.test",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"code": "NoRoute"})),
    )

    with pytest.raises(ValueError, match="NoRoute"):
        client.route([ORIGIN, DESTINATION])


def test_client_retries_server_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(osrm_client.time, "sleep", lambda seconds: None)
    responses = iter(
        [
            httpx.Response(502),
            httpx.Response(200, json=_osrm_response([[72.8777, 19.0760], [73.8567, 18.5204]])),
        ]
    )
    client = OSRMClient(
        base_url="http://osrm.test",
        max_retries=1,
        transport=httpx.MockTransport(lambda request: next(responses)),
    )

    assert client.route([ORIGIN, DESTINATION])["code"] == "Ok"


def test_check_health_reports_reachability() -> None:
    ok = httpx.MockTransport(lambda request: httpx.Response(200, json=_osrm_response([[13.38, 52.51], [13.39, 52.49]])))
    down = httpx.MockTransport(lambda request: httpx.Response(500))

    assert check_health(base_url="http://osrm.test", transport=ok) is True
    assert check_health(base_url="http://osrm.test", transport=down) is False
