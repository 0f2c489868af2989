"""Pooling offer lifecycle: creation with route polylines, updates, cancellation, lookups."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Optional

from ...config import settings
from ...models.domain import OFFER_STATUSES, SEARCHABLE_STATUSES, VEHICLE_TYPES, Coordinate, Route, RouteOffer
from ...persistence.offers import OfferQuery, OfferStore, get_offer_store
from ..geospatial import haversine_km
from ..routing.polyline import PolylineProvider

logger = logging.getLogger(__name__)

DRIVER_OFFERS_LIMIT = 50
UPDATABLE_FIELDS = ("departure_date", "departure_time", "available_seats", "price", "notes", "status")


class OfferNotFoundError(LookupError):
    """Raised when an offer id does not exist in the store."""


class OfferPermissionError(PermissionError):
    """Raised when a driver tries to modify someone else's offer."""


def generate_offer_id() -> str:
    return f"PO{uuid.uuid4().hex[:12].upper()}"


def _attach_polyline(route: Route, provider: PolylineProvider) -> None:
    route.polyline = provider.get_route_polyline(route.origin.coordinate, route.destination.coordinate)


def create_offer(
    *,
    driver_id: str,
    route: Route,
    departure_date: date,
    departure_time: str,
    vehicle_type: str,
    available_seats: int,
    total_seats: int,
    price: float = 0.0,
    notes: Optional[str] = None,
    driver_name: Optional[str] = None,
    store: OfferStore | None = None,
    provider: PolylineProvider | None = None,
) -> RouteOffer:
    """Create a pending offer with a route polyline attached.

    The polyline is fetched once here; when routing is unavailable the offer is still
    created with the two-point fallback line.
    """
    if vehicle_type not in VEHICLE_TYPES:
        raise ValueError(f"Unsupported vehicle type '{vehicle_type}'.")
    if available_seats < 1:
        raise ValueError("An offer needs at least one available seat.")
    if total_seats < available_seats:
        raise ValueError("available_seats cannot exceed total_seats.")
    if price < 0:
        raise ValueError("price must be >= 0")

    store = store if store is not None else get_offer_store()
    offer = RouteOffer(
        offer_id=generate_offer_id(),
        driver_id=driver_id,
        driver_name=driver_name,
        route=route,
        departure_date=departure_date,
        departure_time=departure_time,
        vehicle_type=vehicle_type,
        available_seats=available_seats,
        total_seats=total_seats,
        price=price,
        notes=notes,
        status="pending",
    )
    _attach_polyline(offer.route, provider or PolylineProvider())
    store.add_offer(offer)
    logger.info(f"Pooling offer created: {offer.offer_id} ({len(offer.route.polyline)} polyline points)")
    return offer


def _load(offer_id: str, store: OfferStore) -> RouteOffer:
    offer = store.get_offer(offer_id)
    if offer is None:
        raise OfferNotFoundError(f"Offer '{offer_id}' not found")
    return offer


def _sync_status(offer: RouteOffer) -> bool:
    """Repair status drift from seat/passenger counts. Returns True if changed."""
    changed = False
    if offer.status == "pending" and offer.passengers:
        offer.status = "active"
        changed = True
    if offer.status == "active" and offer.available_seats == 0:
        offer.status = "booked"
        changed = True
    if changed:
        logger.info(f"Synced offer status: {offer.offer_id} -> {offer.status}")
    return changed


def get_offer(offer_id: str, *, store: OfferStore | None = None, count_view: bool = True) -> RouteOffer:
    store = store if store is not None else get_offer_store()
    offer = _load(offer_id, store)
    changed = _sync_status(offer)
    if count_view:
        offer.views += 1
        changed = True
    if changed:
        store.save_offer(offer)
    return offer


def list_driver_offers(driver_id: str, *, store: OfferStore | None = None) -> list[RouteOffer]:
    store = store if store is not None else get_offer_store()
    offers = store.find_offers(OfferQuery(statuses=(), min_available_seats=0, driver_id=driver_id))
    offers.sort(key=lambda offer: offer.created_at, reverse=True)
    offers = offers[:DRIVER_OFFERS_LIMIT]
    for offer in offers:
        if _sync_status(offer):
            store.save_offer(offer)
    return offers


def update_offer(
    offer_id: str,
    driver_id: str,
    changes: dict[str, Any],
    *,
    store: OfferStore | None = None,
    provider: PolylineProvider | None = None,
) -> RouteOffer:
    """Apply field changes; a changed route gets a fresh polyline."""
    store = store if store is not None else get_offer_store()
    offer = _load(offer_id, store)
    if offer.driver_id != driver_id:
        raise OfferPermissionError("You do not have permission to update this offer")

    new_route: Route | None = changes.get("route")
    if new_route is not None:
        endpoints_changed = (
            new_route.origin.coordinate != offer.route.origin.coordinate
            or new_route.destination.coordinate != offer.route.destination.coordinate
        )
        if endpoints_changed or not new_route.has_polyline:
            _attach_polyline(new_route, provider or PolylineProvider())
        offer.route = new_route

    for name in UPDATABLE_FIELDS:
        if name in changes and changes[name] is not None:
            setattr(offer, name, changes[name])

    if offer.status not in OFFER_STATUSES:
        raise ValueError(f"Unsupported offer status '{offer.status}'.")
    if offer.available_seats < 0 or offer.available_seats > offer.total_seats:
        raise ValueError("available_seats must be between 0 and total_seats.")

    store.save_offer(offer)
    logger.info(f"Pooling offer updated: {offer_id}")
    return offer


def cancel_offer(offer_id: str, driver_id: str, *, store: OfferStore | None = None) -> RouteOffer:
    store = store if store is not None else get_offer_store()
    offer = _load(offer_id, store)
    if offer.driver_id != driver_id:
        raise OfferPermissionError("You do not have permission to cancel this offer")
    offer.status = "cancelled"
    store.save_offer(offer)
    logger.info(f"Pooling offer cancelled: {offer_id}")
    return offer


def nearby_offers(
    lat: float,
    lng: float,
    radius_km: float | None = None,
    *,
    store: OfferStore | None = None,
) -> list[tuple[RouteOffer, float]]:
    """Open offers whose origin lies within ``radius_km``, nearest first."""
    store = store if store is not None else get_offer_store()
    radius = radius_km if radius_km is not None else settings.nearby_radius_km
    here = Coordinate(lat, lng)

    nearby: list[tuple[RouteOffer, float]] = []
    for offer in store.find_offers(OfferQuery(statuses=SEARCHABLE_STATUSES)):
        distance = round(haversine_km(here, offer.route.origin.coordinate), 2)
        if distance <= radius:
            nearby.append((offer, distance))
    nearby.sort(key=lambda item: item[1])
    return nearby
