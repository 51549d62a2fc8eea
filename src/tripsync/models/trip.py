"""Trip data model and trip-input payload helpers."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from tripsync.errors import InvalidArgumentError

DEFAULT_COVER_IMAGE: str = "https://images.unsplash.com/photo-1488646953014-85cb44e25828"

TRIP_INPUT_FIELDS: tuple[str, ...] = (
    "destination",
    "country",
    "start_date",
    "end_date",
    "travelers",
    "traveler_type",
    "vibes",
    "budget",
)

REQUIRED_TRIP_INPUT_FIELDS: tuple[str, ...] = (
    "destination",
    "start_date",
    "end_date",
    "travelers",
    "traveler_type",
    "vibes",
)


class TripStatus(str, Enum):
    """Trip lifecycle status."""

    DRAFT = "draft"
    PLANNED = "planned"
    ACTIVE = "active"
    COMPLETED = "completed"


def _pick(data: Mapping[str, Any], key: str, alt: str | None = None, default: Any = None) -> Any:
    # Itinerary payloads produced by the search backend use camelCase keys.
    if key in data:
        return data[key]
    if alt is not None and alt in data:
        return data[alt]
    return default


@dataclass(slots=True)
class Activity:
    """A single itinerary entry within a day."""

    id: str
    time: str = ""
    title: str = ""
    description: str = ""
    location: str = ""
    duration: str = ""
    type: str = "activity"

    price: Optional[str] = None
    booking_url: Optional[str] = None
    image: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    top_review: Optional[str] = None
    free_cancellation: Optional[bool] = None
    is_saved: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Activity:
        return cls(
            id=str(_pick(data, "id", default="")),
            time=_pick(data, "time", default=""),
            title=_pick(data, "title", default=""),
            description=_pick(data, "description", default=""),
            location=_pick(data, "location", default=""),
            duration=_pick(data, "duration", default=""),
            type=_pick(data, "type", default="activity"),
            price=_pick(data, "price"),
            booking_url=_pick(data, "booking_url", "bookingUrl"),
            image=_pick(data, "image"),
            rating=_pick(data, "rating"),
            review_count=_pick(data, "review_count", "reviewCount"),
            top_review=_pick(data, "top_review", "topReview"),
            free_cancellation=_pick(data, "free_cancellation", "freeCancellation"),
            is_saved=_pick(data, "is_saved", "isSaved"),
        )


@dataclass(slots=True)
class TripDay:
    """One day of an itinerary."""

    date: str
    day_number: int
    theme: str = ""
    activities: list[Activity] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TripDay:
        return cls(
            date=_pick(data, "date", default=""),
            day_number=int(_pick(data, "day_number", "dayNumber", default=0)),
            theme=_pick(data, "theme", default=""),
            activities=[Activity.from_dict(a) for a in _pick(data, "activities", default=[]) or []],
        )


@dataclass(slots=True)
class HotelLocation:
    name: str
    address: str
    lat: float
    lng: float
    neighborhood: Optional[str] = None


@dataclass(slots=True)
class Hotel:
    """Hotel selected for a trip."""

    id: str
    name: str
    description: str = ""
    price_per_night: float = 0.0
    total_price: float = 0.0
    rating: float = 0.0
    review_count: int = 0
    amenities: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    booking_url: str = ""
    location: Optional[HotelLocation] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Hotel:
        loc = _pick(data, "location")
        location = None
        if isinstance(loc, Mapping):
            location = HotelLocation(
                name=loc.get("name", ""),
                address=loc.get("address", ""),
                lat=float(loc.get("lat", 0.0)),
                lng=float(loc.get("lng", 0.0)),
                neighborhood=loc.get("neighborhood"),
            )
        return cls(
            id=str(_pick(data, "id", default="")),
            name=_pick(data, "name", default=""),
            description=_pick(data, "description", default=""),
            price_per_night=float(_pick(data, "price_per_night", "pricePerNight", default=0.0)),
            total_price=float(_pick(data, "total_price", "totalPrice", default=0.0)),
            rating=float(_pick(data, "rating", default=0.0)),
            review_count=int(_pick(data, "review_count", "reviewCount", default=0)),
            amenities=list(_pick(data, "amenities", default=[]) or []),
            images=list(_pick(data, "images", default=[]) or []),
            booking_url=_pick(data, "booking_url", "bookingUrl", default=""),
            location=location,
        )


@dataclass(slots=True)
class Trip:
    """
    A travel itinerary record.

    Notes:
        - Trips created on this device carry a `local_` id until the first
          successful sync replaces them with the server record.
        - `vibes` keeps insertion order but never holds duplicates.
    """

    id: str
    destination: str
    start_date: str
    end_date: str
    travelers: int
    traveler_type: str

    country: str = ""
    vibes: list[str] = field(default_factory=list)
    budget: Optional[str] = None
    days: list[TripDay] = field(default_factory=list)
    hotel: Optional[Hotel] = None
    cover_image: str = DEFAULT_COVER_IMAGE
    created_at: str = ""
    status: TripStatus = TripStatus.DRAFT

    def __post_init__(self) -> None:
        self.vibes = _unique(self.vibes)
        if not isinstance(self.status, TripStatus):
            self.status = TripStatus(self.status)

    def to_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Trip:
        hotel = data.get("hotel")
        return cls(
            id=str(data["id"]),
            destination=data.get("destination", ""),
            country=data.get("country") or "",
            start_date=data.get("start_date", ""),
            end_date=data.get("end_date", ""),
            travelers=int(data.get("travelers", 1)),
            traveler_type=data.get("traveler_type") or "solo",
            vibes=list(data.get("vibes") or []),
            budget=data.get("budget"),
            days=[TripDay.from_dict(d) for d in data.get("days") or []],
            hotel=Hotel.from_dict(hotel) if isinstance(hotel, Mapping) else None,
            cover_image=data.get("cover_image") or DEFAULT_COVER_IMAGE,
            created_at=data.get("created_at", ""),
            status=TripStatus(data.get("status") or TripStatus.DRAFT.value),
        )

    def apply_input(self, updates: Mapping[str, Any]) -> Trip:
        """Return a copy with the given trip-input fields replaced."""
        validate_trip_input(updates, partial=True)
        return dataclasses.replace(self, **dict(updates))


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


def validate_trip_input(data: Mapping[str, Any], *, partial: bool = False) -> None:
    """
    Validate a trip-input payload.

    Raises:
        InvalidArgumentError: on unknown keys, or on missing required keys
            when partial is False.
    """
    if not isinstance(data, Mapping):
        raise InvalidArgumentError("Trip input must be a mapping")

    unknown = sorted(set(data) - set(TRIP_INPUT_FIELDS))
    if unknown:
        raise InvalidArgumentError(
            "Unknown trip input fields",
            details={"fields": unknown},
        )

    if partial:
        return

    missing = [k for k in REQUIRED_TRIP_INPUT_FIELDS if data.get(k) in (None, "")]
    if missing:
        raise InvalidArgumentError(
            "Missing required trip input fields",
            details={"fields": missing},
        )


def trip_to_input(trip: Trip) -> dict[str, Any]:
    """Extract the full trip-input payload of a trip."""
    return {
        "destination": trip.destination,
        "country": trip.country,
        "start_date": trip.start_date,
        "end_date": trip.end_date,
        "travelers": trip.travelers,
        "traveler_type": trip.traveler_type,
        "vibes": list(trip.vibes),
        "budget": trip.budget,
    }
