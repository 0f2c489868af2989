"""Offer search: coarse store filters, route matching, then pagination."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ...config import settings
from ...models.domain import Coordinate, RouteOffer
from ...persistence.offers import OfferQuery, OfferStore, get_offer_store
from ..matching.matcher import RouteCompatibilityMatcher

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SearchFilters:
    passenger_from: Optional[Coordinate] = None
    passenger_to: Optional[Coordinate] = None
    departure_date: Optional[date] = None
    vehicle_type: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    page: Optional[int] = None
    limit: Optional[int] = None

    def __post_init__(self) -> None:
        if (self.passenger_from is None) != (self.passenger_to is None):
            raise ValueError("Both passenger origin and destination are required for route matching.")
        if self.page is not None and self.page < 1:
            raise ValueError("page must be >= 1")
        if self.limit is not None and self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("min_price must not exceed max_price")

    @property
    def has_passenger_route(self) -> bool:
        return self.passenger_from is not None and self.passenger_to is not None

    def to_query(self) -> OfferQuery:
        return OfferQuery(
            departure_date=self.departure_date,
            vehicle_type=self.vehicle_type,
            min_price=self.min_price,
            max_price=self.max_price,
        )


@dataclass(slots=True)
class OfferSearchResult:
    offers: list[RouteOffer] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20

    @property
    def has_next_page(self) -> bool:
        return self.page * self.limit < self.total


class OfferSearchPipeline:
    """Search pooling offers for a passenger trip.

    Store filters narrow the candidate set first. When both passenger endpoints are
    given, every candidate is checked against its stored route on a bounded thread pool;
    an offer whose evaluation raises is logged and dropped rather than failing the search.
    Survivors are sorted newest first and paginated last, so ``total`` counts matches.
    """

    def __init__(
        self,
        store: OfferStore | None = None,
        matcher: RouteCompatibilityMatcher | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.store = store if store is not None else get_offer_store()
        self.matcher = matcher or RouteCompatibilityMatcher()
        self.max_workers = max_workers or settings.match_workers

    def search(self, filters: SearchFilters) -> OfferSearchResult:
        page = filters.page or settings.default_page
        limit = min(filters.limit or settings.default_limit, settings.max_limit)

        offers = self.store.find_offers(filters.to_query())
        logger.info(f"Found {len(offers)} offers matching date/status/vehicle/price filters")

        if filters.has_passenger_route:
            offers = self._filter_by_route(offers, filters.passenger_from, filters.passenger_to)
            logger.info(f"{len(offers)} offers lie along the passenger route")

        offers.sort(key=lambda offer: offer.created_at, reverse=True)
        total = len(offers)
        skip = (page - 1) * limit
        return OfferSearchResult(offers=offers[skip : skip + limit], total=total, page=page, limit=limit)

    def _filter_by_route(
        self,
        offers: list[RouteOffer],
        passenger_from: Coordinate,
        passenger_to: Coordinate,
    ) -> list[RouteOffer]:
        def evaluate(offer: RouteOffer) -> bool:
            return self._is_match(offer, passenger_from, passenger_to)

        workers = min(self.max_workers, len(offers))
        if workers <= 1:
            flags = [evaluate(offer) for offer in offers]
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                flags = list(executor.map(evaluate, offers))
        return [offer for offer, keep in zip(offers, flags) if keep]

    def _is_match(self, offer: RouteOffer, passenger_from: Coordinate, passenger_to: Coordinate) -> bool:
        try:
            decision = self.matcher.is_compatible_route(passenger_from, passenger_to, offer.route)
        except Exception as e:
            logger.warning(f"Skipping offer {offer.offer_id}: route evaluation failed: {e}")
            return False
        return decision.is_match


def search_offers(filters: SearchFilters, store: OfferStore | None = None) -> OfferSearchResult:
    return OfferSearchPipeline(store=store).search(filters)
