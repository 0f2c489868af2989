"""Pooling offer request/response schemas."""

from __future__ import annotations

import datetime as dt
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from ..models.domain import Coordinate, Location, PathPoint, Polyline, Route, RouteOffer

VehicleType = Literal["car", "bike"]
OfferStatus = Literal["active", "pending", "expired", "completed", "cancelled", "suspended", "booked"]


class CoordinateModel(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_domain(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)


class LocationModel(CoordinateModel):
    address: str
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None

    def to_domain(self) -> Location:  # type: ignore[override]
        return Location(
            address=self.address,
            lat=self.lat,
            lng=self.lng,
            city=self.city,
            state=self.state,
            pincode=self.pincode,
        )

    @classmethod
    def from_domain(cls, location: Location) -> "LocationModel":
        return cls(
            address=location.address,
            lat=location.lat,
            lng=location.lng,
            city=location.city,
            state=location.state,
            pincode=location.pincode,
        )


class PathPointModel(BaseModel):
    lat: float
    lng: float
    index: int


class RouteModel(BaseModel):
    from_: LocationModel = Field(..., alias="from")
    to: LocationModel
    distance_km: Optional[float] = Field(default=None, ge=0)
    duration_min: Optional[float] = Field(default=None, ge=0)

    model_config = {"populate_by_name": True}

    def to_domain(self) -> Route:
        return Route(
            origin=self.from_.to_domain(),
            destination=self.to.to_domain(),
            distance_km=self.distance_km,
            duration_min=self.duration_min,
        )


class RouteResponseModel(RouteModel):
    polyline: Optional[List[PathPointModel]] = None

    @classmethod
    def from_domain(cls, route: Route, include_polyline: bool = True) -> "RouteResponseModel":
        polyline: Polyline | None = route.polyline if include_polyline else None
        return cls(
            from_=LocationModel.from_domain(route.origin),
            to=LocationModel.from_domain(route.destination),
            distance_km=route.distance_km,
            duration_min=route.duration_min,
            polyline=[_point_model(point) for point in polyline] if polyline is not None else None,
        )


def _point_model(point: PathPoint) -> PathPointModel:
    return PathPointModel(lat=point.lat, lng=point.lng, index=point.index)


class CreateOfferRequest(BaseModel):
    route: RouteModel
    date: dt.date
    time: str
    vehicle_type: VehicleType
    available_seats: int = Field(..., ge=1)
    total_seats: int = Field(..., ge=1)
    price: float = Field(default=0.0, ge=0)
    notes: Optional[str] = Field(default=None, max_length=500)
    driver_name: Optional[str] = None

    @model_validator(mode="after")
    def _validate_seats(self) -> "CreateOfferRequest":
        if self.available_seats > self.total_seats:
            raise ValueError("available_seats cannot exceed total_seats")
        return self


class UpdateOfferRequest(BaseModel):
    route: Optional[RouteModel] = None
    date: Optional[dt.date] = None
    time: Optional[str] = None
    available_seats: Optional[int] = Field(default=None, ge=0)
    price: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=500)
    status: Optional[OfferStatus] = None

    def to_changes(self) -> dict:
        return {
            "route": self.route.to_domain() if self.route is not None else None,
            "departure_date": self.date,
            "departure_time": self.time,
            "available_seats": self.available_seats,
            "price": self.price,
            "notes": self.notes,
            "status": self.status,
        }


class OfferModel(BaseModel):
    offer_id: str
    driver_id: str
    driver_name: Optional[str] = None
    route: RouteResponseModel
    date: dt.date
    time: str
    vehicle_type: str
    available_seats: int
    total_seats: int
    price: float
    status: str
    notes: Optional[str] = None
    views: int = 0
    created_at: dt.datetime
    updated_at: dt.datetime
    distance_km: Optional[float] = Field(default=None, description="Distance from the query point (nearby search).")

    @classmethod
    def from_domain(
        cls,
        offer: RouteOffer,
        *,
        include_polyline: bool = True,
        distance_km: float | None = None,
    ) -> "OfferModel":
        return cls(
            offer_id=offer.offer_id,
            driver_id=offer.driver_id,
            driver_name=offer.driver_name,
            route=RouteResponseModel.from_domain(offer.route, include_polyline=include_polyline),
            date=offer.departure_date,
            time=offer.departure_time,
            vehicle_type=offer.vehicle_type,
            available_seats=offer.available_seats,
            total_seats=offer.total_seats,
            price=offer.price,
            status=offer.status,
            notes=offer.notes,
            views=offer.views,
            created_at=offer.created_at,
            updated_at=offer.updated_at,
            distance_km=distance_km,
        )


class OfferSearchResponse(BaseModel):
    offers: List[OfferModel]
    total: int
    page: int
    limit: int
    has_next_page: bool


class BackfillResponse(BaseModel):
    updated: int
    failed: int
    message: str
