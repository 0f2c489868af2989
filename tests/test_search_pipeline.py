from datetime import date, datetime, timedelta, timezone

import pytest

from ridepool.models.domain import Coordinate, Location, PathPoint, Polyline, Route, RouteOffer
from ridepool.persistence.offers import InMemoryOfferStore
from ridepool.services.matching.matcher import MatchingPolicy, RouteCompatibilityMatcher
from ridepool.services.pooling.search import OfferSearchPipeline, SearchFilters

BASE_TIME = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
DIAGONAL = Polyline.from_coordinates(Coordinate(lat, lat) for lat in (0.0, 5.0, 10.0))
REVERSED = Polyline.from_coordinates(Coordinate(lat, lat) for lat in (10.0, 5.0, 0.0))


def _offer(
    offer_id: str,
    *,
    rank: int = 0,
    origin: tuple[float, float] = (0.0, 0.0),
    destination: tuple[float, float] = (10.0, 10.0),
    polyline: Polyline | None = DIAGONAL,
    **fields,
) -> RouteOffer:
    defaults = dict(
        departure_date=date(2024, 5, 2),
        departure_time="09:00",
        vehicle_type="car",
        available_seats=3,
        total_seats=4,
        price=150.0,
        status="active",
    )
    defaults.update(fields)
    return RouteOffer(
        offer_id=offer_id,
        driver_id=f"driver-{offer_id}",
        route=Route(
            origin=Location(address="Origin", lat=origin[0], lng=origin[1]),
            destination=Location(address="Destination", lat=destination[0], lng=destination[1]),
            polyline=polyline,
        ),
        # rank 0 is the newest offer
        created_at=BASE_TIME - timedelta(minutes=rank),
        **defaults,
    )


def _pipeline(offers: list[RouteOffer], max_workers: int = 4) -> OfferSearchPipeline:
    return OfferSearchPipeline(
        store=InMemoryOfferStore(offers),
        matcher=RouteCompatibilityMatcher(MatchingPolicy()),
        max_workers=max_workers,
    )


def _route_filters(**overrides) -> SearchFilters:
    params = dict(passenger_from=Coordinate(1.0, 1.0), passenger_to=Coordinate(4.0, 4.0))
    params.update(overrides)
    return SearchFilters(**params)


def test_pagination_counts_matches_before_slicing() -> None:
    offers = [_offer(f"M{rank:02d}", rank=rank) for rank in range(25)]
    offers += [
        _offer(f"R{rank:02d}", rank=rank, origin=(10.0, 10.0), destination=(0.0, 0.0), polyline=REVERSED)
        for rank in range(5)
    ]

    result = _pipeline(offers).search(_route_filters(page=2, limit=10))

    assert result.total == 25
    assert [offer.offer_id for offer in result.offers] == [f"M{rank:02d}" for rank in range(10, 20)]
    assert result.has_next_page


def test_last_page_has_no_next_page() -> None:
    offers = [_offer(f"M{rank:02d}", rank=rank) for rank in range(25)]

    result = _pipeline(offers).search(_route_filters(page=3, limit=10))

    assert [offer.offer_id for offer in result.offers] == [f"M{rank:02d}" for rank in range(20, 25)]
    assert not result.has_next_page


def test_page_past_the_end_is_empty() -> None:
    result = _pipeline([_offer("A")]).search(_route_filters(page=5, limit=10))

    assert result.offers == []
    assert result.total == 1


def test_results_are_identical_with_and_without_thread_pool() -> None:
    offers = [_offer(f"M{rank:02d}", rank=rank) for rank in range(12)]
    far_east = Polyline.from_coordinates([Coordinate(0.0, 9.0), Coordinate(10.0, 9.0)])
    offers += [
        _offer(f"X{rank:02d}", rank=rank, origin=(0.0, 9.0), destination=(10.0, 9.0), polyline=far_east)
        for rank in range(12)
    ]

    pooled = _pipeline(offers, max_workers=8).search(_route_filters(limit=100))
    inline = _pipeline(offers, max_workers=1).search(_route_filters(limit=100))

    assert [o.offer_id for o in pooled.offers] == [o.offer_id for o in inline.offers]
    assert pooled.total == 12


def test_malformed_offer_is_skipped_without_failing_search() -> None:
    broken = Polyline([PathPoint("bad", 0.0, 0), PathPoint(10.0, 10.0, 1)])  # type: ignore[arg-type]
    offers = [_offer("GOOD", rank=1), _offer("BROKEN", rank=0, polyline=broken)]

    result = _pipeline(offers).search(_route_filters())

    assert [offer.offer_id for offer in result.offers] == ["GOOD"]
    assert result.total == 1


def test_browse_mode_skips_route_matching() -> None:
    offers = [
        _offer("NORTH", rank=0),
        _offer("SOUTH", rank=1, origin=(10.0, 10.0), destination=(0.0, 0.0), polyline=REVERSED),
    ]

    result = _pipeline(offers).search(SearchFilters())

    assert [offer.offer_id for offer in result.offers] == ["NORTH", "SOUTH"]


def test_store_filters_are_applied_before_matching() -> None:
    offers = [
        _offer("CHEAP", rank=0, price=50.0),
        _offer("PRICEY", rank=1, price=500.0),
        _offer("BIKE", rank=2, vehicle_type="bike", total_seats=1, available_seats=1),
        _offer("FULL", rank=3, available_seats=0),
        _offer("DONE", rank=4, status="completed"),
        _offer("TOMORROW", rank=5, departure_date=date(2024, 5, 3)),
    ]

    result = _pipeline(offers).search(
        _route_filters(departure_date=date(2024, 5, 2), vehicle_type="car", max_price=200.0)
    )

    assert [offer.offer_id for offer in result.offers] == ["CHEAP"]


def test_offer_without_polyline_is_matched_by_heuristics() -> None:
    offers = [_offer("LEGACY", polyline=None)]

    filters = _route_filters(passenger_from=Coordinate(1.0, 8.0), passenger_to=Coordinate(2.0, 9.0))

    result = _pipeline(offers).search(filters)

    assert [offer.offer_id for offer in result.offers] == ["LEGACY"]


def test_limit_is_capped(monkeypatch: pytest.MonkeyPatch) -> None:
    from ridepool.services.pooling import search as search_module

    monkeypatch.setattr(search_module.settings, "max_limit", 5)
    offers = [_offer(f"M{rank:02d}", rank=rank) for rank in range(8)]

    result = _pipeline(offers).search(_route_filters(limit=50))

    assert result.limit == 5
    assert len(result.offers) == 5


@pytest.mark.parametrize(
    "kwargs",
    [
        {"passenger_from": Coordinate(1.0, 1.0)},
        {"passenger_to": Coordinate(1.0, 1.0)},
        {"page": 0},
        {"limit": 0},
        {"min_price": 100.0, "max_price": 50.0},
    ],
)
def test_invalid_filters_raise(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        SearchFilters(**kwargs)
