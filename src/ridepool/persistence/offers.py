"""Offer store: coarse offer queries and polyline persistence."""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timezone
from functools import lru_cache
from typing import Any, Optional, Protocol

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import (
    SEARCHABLE_STATUSES,
    Location,
    Passenger,
    Polyline,
    Route,
    RouteOffer,
)

logger = logging.getLogger(__name__)

SUPABASE_PAGE_SIZE = 1000


@dataclass(frozen=True, slots=True)
class OfferQuery:
    """Coarse, index-friendly filters evaluated by the store itself."""

    statuses: tuple[str, ...] = SEARCHABLE_STATUSES
    min_available_seats: int = 1
    departure_date: Optional[date] = None
    vehicle_type: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    driver_id: Optional[str] = None

    def accepts(self, offer: RouteOffer) -> bool:
        if self.statuses and offer.status not in self.statuses:
            return False
        if offer.available_seats < self.min_available_seats:
            return False
        if self.departure_date is not None and offer.departure_date != self.departure_date:
            return False
        if self.vehicle_type is not None and offer.vehicle_type != self.vehicle_type:
            return False
        if self.min_price is not None and offer.price < self.min_price:
            return False
        if self.max_price is not None and offer.price > self.max_price:
            return False
        if self.driver_id is not None and offer.driver_id != self.driver_id:
            return False
        return True


class OfferStore(Protocol):
    def find_offers(self, query: OfferQuery) -> list[RouteOffer]: ...

    def get_offer(self, offer_id: str) -> Optional[RouteOffer]: ...

    def add_offer(self, offer: RouteOffer) -> RouteOffer: ...

    def save_offer(self, offer: RouteOffer) -> RouteOffer: ...

    def save_polyline(self, offer_id: str, polyline: Polyline) -> None: ...

    def find_offers_missing_polyline(self) -> list[RouteOffer]: ...


def _location_to_record(location: Location) -> dict[str, Any]:
    return {
        "address": location.address,
        "lat": location.lat,
        "lng": location.lng,
        "city": location.city,
        "state": location.state,
        "pincode": location.pincode,
    }


def _location_from_record(record: dict[str, Any]) -> Location:
    return Location(
        address=record.get("address") or "",
        lat=float(record["lat"]),
        lng=float(record["lng"]),
        city=record.get("city"),
        state=record.get("state"),
        pincode=record.get("pincode"),
    )


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not value:
        return datetime.now(timezone.utc)
    # Postgres emits "+00:00" offsets; older rows may carry a trailing "Z"
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def offer_to_record(offer: RouteOffer) -> dict[str, Any]:
    """Flatten an offer into a table row."""
    route = offer.route
    return {
        "offer_id": offer.offer_id,
        "driver_id": offer.driver_id,
        "driver_name": offer.driver_name,
        "route_from": _location_to_record(route.origin),
        "route_to": _location_to_record(route.destination),
        "distance_km": route.distance_km,
        "duration_min": route.duration_min,
        "polyline": route.polyline.to_records() if route.polyline is not None else None,
        "departure_date": offer.departure_date.isoformat(),
        "departure_time": offer.departure_time,
        "vehicle_type": offer.vehicle_type,
        "available_seats": offer.available_seats,
        "total_seats": offer.total_seats,
        "price": offer.price,
        "status": offer.status,
        "notes": offer.notes,
        "passengers": [
            {"user_id": p.user_id, "name": p.name, "status": p.status} for p in offer.passengers
        ],
        "views": offer.views,
        "created_at": offer.created_at.isoformat(),
        "updated_at": offer.updated_at.isoformat(),
    }


def offer_from_record(record: dict[str, Any]) -> RouteOffer:
    """Rebuild an offer from a table row. Raises ``KeyError``/``ValueError`` on malformed rows."""
    polyline_records = record.get("polyline")
    route = Route(
        origin=_location_from_record(record["route_from"]),
        destination=_location_from_record(record["route_to"]),
        distance_km=record.get("distance_km"),
        duration_min=record.get("duration_min"),
        polyline=Polyline.from_records(polyline_records) if polyline_records is not None else None,
    )
    return RouteOffer(
        offer_id=str(record["offer_id"]),
        driver_id=str(record["driver_id"]),
        driver_name=record.get("driver_name"),
        route=route,
        departure_date=_parse_date(record["departure_date"]),
        departure_time=str(record.get("departure_time") or ""),
        vehicle_type=str(record["vehicle_type"]),
        available_seats=int(record.get("available_seats") or 0),
        total_seats=int(record.get("total_seats") or 0),
        price=float(record.get("price") or 0.0),
        status=str(record.get("status") or "pending"),
        notes=record.get("notes"),
        passengers=[
            Passenger(user_id=p["user_id"], name=p.get("name", ""), status=p.get("status", "pending"))
            for p in (record.get("passengers") or [])
        ],
        views=int(record.get("views") or 0),
        created_at=_parse_datetime(record.get("created_at")),
        updated_at=_parse_datetime(record.get("updated_at")),
    )


class InMemoryOfferStore:
    """Dict-backed offer store. Returns copies so callers cannot mutate stored state."""

    def __init__(self, offers: list[RouteOffer] | None = None) -> None:
        self._lock = threading.Lock()
        self._offers: dict[str, RouteOffer] = {}
        for offer in offers or []:
            self._offers[offer.offer_id] = copy.deepcopy(offer)

    def find_offers(self, query: OfferQuery) -> list[RouteOffer]:
        with self._lock:
            matches = [copy.deepcopy(offer) for offer in self._offers.values() if query.accepts(offer)]
        matches.sort(key=lambda offer: offer.created_at, reverse=True)
        return matches

    def get_offer(self, offer_id: str) -> Optional[RouteOffer]:
        with self._lock:
            offer = self._offers.get(offer_id)
            return copy.deepcopy(offer) if offer is not None else None

    def add_offer(self, offer: RouteOffer) -> RouteOffer:
        with self._lock:
            if offer.offer_id in self._offers:
                raise ValueError(f"Offer '{offer.offer_id}' already exists.")
            self._offers[offer.offer_id] = copy.deepcopy(offer)
        return offer

    def save_offer(self, offer: RouteOffer) -> RouteOffer:
        with self._lock:
            if offer.offer_id not in self._offers:
                raise KeyError(offer.offer_id)
            offer.updated_at = datetime.now(timezone.utc)
            self._offers[offer.offer_id] = copy.deepcopy(offer)
        return offer

    def save_polyline(self, offer_id: str, polyline: Polyline) -> None:
        with self._lock:
            offer = self._offers.get(offer_id)
            if offer is None:
                raise KeyError(offer_id)
            offer.route.polyline = polyline
            offer.updated_at = datetime.now(timezone.utc)

    def find_offers_missing_polyline(self) -> list[RouteOffer]:
        with self._lock:
            return [copy.deepcopy(offer) for offer in self._offers.values() if not offer.route.has_polyline]

    def __len__(self) -> int:
        return len(self._offers)


class SupabaseOfferStore:
    """Offer store backed by a Supabase (PostgREST) table.

    Each write touches a single row; there is no cross-offer transaction.
    """

    def __init__(self, client: Any, table: str | None = None) -> None:
        self._client = client
        self._table = table or settings.offers_table

    def _rows(self, build_query) -> list[dict[str, Any]]:
        """Page through a select in ``SUPABASE_PAGE_SIZE`` batches."""
        rows: list[dict[str, Any]] = []
        start = 0
        while True:
            response = build_query().range(start, start + SUPABASE_PAGE_SIZE - 1).execute()
            batch = response.data or []
            rows.extend(batch)
            if len(batch) < SUPABASE_PAGE_SIZE:
                return rows
            start += SUPABASE_PAGE_SIZE

    def _parse_rows(self, rows: list[dict[str, Any]]) -> list[RouteOffer]:
        offers: list[RouteOffer] = []
        for row in rows:
            try:
                offers.append(offer_from_record(row))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed offer row {row.get('offer_id', 'unknown')}: {e}")
        return offers

    def find_offers(self, query: OfferQuery) -> list[RouteOffer]:
        def build():
            builder = self._client.table(self._table).select("*")
            if query.statuses:
                builder = builder.in_("status", list(query.statuses))
            builder = builder.gte("available_seats", query.min_available_seats)
            if query.departure_date is not None:
                builder = builder.eq("departure_date", query.departure_date.isoformat())
            if query.vehicle_type is not None:
                builder = builder.eq("vehicle_type", query.vehicle_type)
            if query.min_price is not None:
                builder = builder.gte("price", query.min_price)
            if query.max_price is not None:
                builder = builder.lte("price", query.max_price)
            if query.driver_id is not None:
                builder = builder.eq("driver_id", query.driver_id)
            return builder.order("created_at", desc=True)

        offers = self._parse_rows(self._rows(build))
        logger.info(f"Retrieved {len(offers)} offers from {self._table}")
        return offers

    def get_offer(self, offer_id: str) -> Optional[RouteOffer]:
        response = self._client.table(self._table).select("*").eq("offer_id", offer_id).limit(1).execute()
        if not response.data:
            return None
        return offer_from_record(response.data[0])

    def add_offer(self, offer: RouteOffer) -> RouteOffer:
        self._client.table(self._table).insert(offer_to_record(offer)).execute()
        return offer

    def save_offer(self, offer: RouteOffer) -> RouteOffer:
        offer.updated_at = datetime.now(timezone.utc)
        record = offer_to_record(offer)
        record.pop("created_at", None)
        self._client.table(self._table).update(record).eq("offer_id", offer.offer_id).execute()
        return offer

    def save_polyline(self, offer_id: str, polyline: Polyline) -> None:
        self._client.table(self._table).update(
            {
                "polyline": polyline.to_records(),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
        ).eq("offer_id", offer_id).execute()

    def find_offers_missing_polyline(self) -> list[RouteOffer]:
        # Empty or single-point arrays are not expressible as a simple PostgREST filter.
        offers = self._parse_rows(
            self._rows(lambda: self._client.table(self._table).select("*").order("created_at", desc=False))
        )
        return [offer for offer in offers if not offer.route.has_polyline]


_memory_store = InMemoryOfferStore()


@lru_cache()
def get_offer_store() -> OfferStore:
    """Supabase-backed store when configured, otherwise a process-wide in-memory store."""
    client = get_supabase_client()
    if client is None:
        return _memory_store
    return SupabaseOfferStore(client)
