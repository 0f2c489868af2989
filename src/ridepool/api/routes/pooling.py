"""Pooling offer endpoints."""

from __future__ import annotations

import logging
import datetime as dt
from typing import List

from fastapi import APIRouter, Header, HTTPException, Query, status
from pydantic import ValidationError

from ...models.domain import Coordinate
from ...schemas.pooling import (
    BackfillResponse,
    CoordinateModel,
    CreateOfferRequest,
    OfferModel,
    OfferSearchResponse,
    UpdateOfferRequest,
    VehicleType,
)
from ...services.export.geojson import offer_route_to_feature_collection
from ...services.pooling import (
    OfferNotFoundError,
    OfferPermissionError,
    SearchFilters,
    backfill_polylines,
    cancel_offer,
    create_offer,
    get_offer,
    list_driver_offers,
    nearby_offers,
    search_offers,
    update_offer,
)

router = APIRouter(prefix="/pooling", tags=["pooling"])


def _coordinate(lat: float | None, lng: float | None, label: str) -> Coordinate | None:
    if lat is None and lng is None:
        return None
    if lat is None or lng is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Both {label}_lat and {label}_lng are required",
        )
    try:
        return CoordinateModel(lat=lat, lng=lng).to_domain()
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {label} coordinate") from exc


@router.get("/offers/search", response_model=OfferSearchResponse, status_code=status.HTTP_200_OK)
def search(
    from_lat: float | None = Query(default=None, ge=-90, le=90),
    from_lng: float | None = Query(default=None, ge=-180, le=180),
    to_lat: float | None = Query(default=None, ge=-90, le=90),
    to_lng: float | None = Query(default=None, ge=-180, le=180),
    departure_date: dt.date | None = Query(default=None, alias="date", description="Departure date (YYYY-MM-DD)"),
    vehicle_type: VehicleType | None = Query(default=None),
    min_price: float | None = Query(default=None, ge=0),
    max_price: float | None = Query(default=None, ge=0),
    page: int = Query(default=1, ge=1, description="1-based page index for pagination"),
    limit: int = Query(default=20, ge=1, le=100, description="Maximum number of offers per page"),
) -> OfferSearchResponse:
    passenger_from = _coordinate(from_lat, from_lng, "from")
    passenger_to = _coordinate(to_lat, to_lng, "to")
    try:
        filters = SearchFilters(
            passenger_from=passenger_from,
            passenger_to=passenger_to,
            departure_date=departure_date,
            vehicle_type=vehicle_type,
            min_price=min_price,
            max_price=max_price,
            page=page,
            limit=limit,
        )
        result = search_offers(filters)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error searching offers: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to search offers: {str(exc)}",
        ) from exc

    return OfferSearchResponse(
        offers=[OfferModel.from_domain(offer, include_polyline=False) for offer in result.offers],
        total=result.total,
        page=result.page,
        limit=result.limit,
        has_next_page=result.has_next_page,
    )


@router.get("/offers/nearby", response_model=List[OfferModel], status_code=status.HTTP_200_OK)
def nearby(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float | None = Query(default=None, gt=0, description="Search radius in km"),
) -> List[OfferModel]:
    return [
        OfferModel.from_domain(offer, include_polyline=False, distance_km=distance)
        for offer, distance in nearby_offers(lat, lng, radius)
    ]


@router.get("/offers", response_model=List[OfferModel], status_code=status.HTTP_200_OK)
def my_offers(x_driver_id: str = Header(...)) -> List[OfferModel]:
    return [OfferModel.from_domain(offer, include_polyline=False) for offer in list_driver_offers(x_driver_id)]


@router.post("/offers", response_model=OfferModel, status_code=status.HTTP_201_CREATED)
def create(payload: CreateOfferRequest, x_driver_id: str = Header(...)) -> OfferModel:
    try:
        offer = create_offer(
            driver_id=x_driver_id,
            driver_name=payload.driver_name,
            route=payload.route.to_domain(),
            departure_date=payload.date,
            departure_time=payload.time,
            vehicle_type=payload.vehicle_type,
            available_seats=payload.available_seats,
            total_seats=payload.total_seats,
            price=payload.price,
            notes=payload.notes,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return OfferModel.from_domain(offer)


@router.get("/offers/{offer_id}", response_model=OfferModel, status_code=status.HTTP_200_OK)
def offer_details(offer_id: str) -> OfferModel:
    try:
        return OfferModel.from_domain(get_offer(offer_id))
    except OfferNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/offers/{offer_id}/route", status_code=status.HTTP_200_OK)
def offer_route(offer_id: str) -> dict:
    """Driver route as a GeoJSON FeatureCollection for map overlays."""
    try:
        offer = get_offer(offer_id, count_view=False)
    except OfferNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return offer_route_to_feature_collection(offer)


@router.put("/offers/{offer_id}", response_model=OfferModel, status_code=status.HTTP_200_OK)
def update(offer_id: str, payload: UpdateOfferRequest, x_driver_id: str = Header(...)) -> OfferModel:
    try:
        offer = update_offer(offer_id, x_driver_id, payload.to_changes())
    except OfferNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except OfferPermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return OfferModel.from_domain(offer)


@router.delete("/offers/{offer_id}", status_code=status.HTTP_200_OK)
def cancel(offer_id: str, x_driver_id: str = Header(...)) -> dict:
    try:
        cancel_offer(offer_id, x_driver_id)
    except OfferNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except OfferPermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    return {"success": True, "message": f"Offer {offer_id} cancelled"}


@router.post("/migrate-polylines", response_model=BackfillResponse, status_code=status.HTTP_200_OK)
def migrate_polylines() -> BackfillResponse:
    """Generate polylines for stored offers that don't have one."""
    try:
        result = backfill_polylines()
    except Exception as exc:
        logging.exception(f"Error backfilling polylines: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to backfill polylines: {str(exc)}",
        ) from exc
    return BackfillResponse(
        updated=result.updated,
        failed=result.failed,
        message=f"Polyline migration completed: {result.updated} updated, {result.failed} failed",
    )
