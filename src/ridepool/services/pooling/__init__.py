"""Pooling offer services: lifecycle, search and polyline backfill."""

from .backfill import BackfillResult, backfill_polylines
from .offers import (
    OfferNotFoundError,
    OfferPermissionError,
    cancel_offer,
    create_offer,
    get_offer,
    list_driver_offers,
    nearby_offers,
    update_offer,
)
from .search import OfferSearchPipeline, OfferSearchResult, SearchFilters, search_offers

__all__ = [
    "BackfillResult",
    "OfferNotFoundError",
    "OfferPermissionError",
    "OfferSearchPipeline",
    "OfferSearchResult",
    "SearchFilters",
    "backfill_polylines",
    "cancel_offer",
    "create_offer",
    "get_offer",
    "list_driver_offers",
    "nearby_offers",
    "search_offers",
    "update_offer",
]
