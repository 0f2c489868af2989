"""Domain models for coordinates, route polylines and pooling offers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Iterable, Iterator, Optional, Sequence

VEHICLE_TYPES = ("car", "bike")

OFFER_STATUSES = ("active", "pending", "expired", "completed", "cancelled", "suspended", "booked")
SEARCHABLE_STATUSES = ("active", "pending")


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float


@dataclass(slots=True)
class Location:
    """A geocoded place: coordinate plus free-text address details."""

    address: str
    lat: float
    lng: float
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)


@dataclass(frozen=True, slots=True)
class PathPoint:
    lat: float
    lng: float
    index: int

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)


class Polyline(Sequence[PathPoint]):
    """Ordered, indexed sequence of points approximating a driving route.

    Stored polylines are read leniently: a polyline loaded from the offer store may hold
    fewer than two points or non-contiguous indices. Use :meth:`validated` where the
    contiguous ``0..n-1`` invariant must hold.
    """

    __slots__ = ("_points",)

    def __init__(self, points: Iterable[PathPoint] = ()) -> None:
        self._points: tuple[PathPoint, ...] = tuple(points)

    @classmethod
    def from_coordinates(cls, coordinates: Iterable[Coordinate]) -> "Polyline":
        """Index coordinates ``0..n-1`` in traversal order."""
        return cls(PathPoint(coord.lat, coord.lng, idx) for idx, coord in enumerate(coordinates))

    @classmethod
    def fallback(cls, origin: Coordinate, destination: Coordinate) -> "Polyline":
        """Two-point straight line used when no routed geometry is available."""
        return cls((PathPoint(origin.lat, origin.lng, 0), PathPoint(destination.lat, destination.lng, 1)))

    @classmethod
    def from_records(cls, records: Iterable[dict[str, Any]] | None) -> "Polyline":
        """Build from stored ``{"lat", "lng", "index"}`` records."""
        if not records:
            return cls()
        return cls(
            PathPoint(float(record["lat"]), float(record["lng"]), int(record["index"]))
            for record in records
        )

    def to_records(self) -> list[dict[str, Any]]:
        return [{"lat": point.lat, "lng": point.lng, "index": point.index} for point in self._points]

    def validated(self) -> "Polyline":
        if len(self._points) < 2:
            raise ValueError(f"Polyline requires at least 2 points, got {len(self._points)}.")
        for expected, point in enumerate(self._points):
            if point.index != expected:
                raise ValueError(
                    f"Polyline indices must be contiguous from 0; position {expected} has index {point.index}."
                )
        return self

    @property
    def first(self) -> PathPoint:
        return self._points[0]

    @property
    def last(self) -> PathPoint:
        return self._points[-1]

    @property
    def is_routable(self) -> bool:
        """True when the polyline can take part in projection-based matching."""
        return len(self._points) >= 2

    def coordinates(self) -> list[Coordinate]:
        return [point.coordinate for point in self._points]

    def __getitem__(self, item):  # type: ignore[override]
        if isinstance(item, slice):
            return Polyline(self._points[item])
        return self._points[item]

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[PathPoint]:
        return iter(self._points)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Polyline):
            return self._points == other._points
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._points)

    def __repr__(self) -> str:
        return f"Polyline({len(self._points)} points)"


@dataclass(slots=True)
class Route:
    origin: Location
    destination: Location
    distance_km: Optional[float] = None
    duration_min: Optional[float] = None
    polyline: Optional[Polyline] = None

    @property
    def has_polyline(self) -> bool:
        return self.polyline is not None and self.polyline.is_routable


@dataclass(slots=True)
class Passenger:
    user_id: str
    name: str
    status: str = "pending"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class RouteOffer:
    """A driver's posted ride, as held by the offer store."""

    offer_id: str
    driver_id: str
    route: Route
    departure_date: date
    departure_time: str
    vehicle_type: str
    available_seats: int
    total_seats: int
    price: float = 0.0
    status: str = "pending"
    notes: Optional[str] = None
    driver_name: Optional[str] = None
    passengers: list[Passenger] = field(default_factory=list)
    views: int = 0
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True, slots=True)
class ProjectionResult:
    index: int
    distance_km: float


@dataclass(frozen=True, slots=True)
class MatchDecision:
    is_match: bool
    reason: str
    detail: str = ""

    def __bool__(self) -> bool:
        return self.is_match
