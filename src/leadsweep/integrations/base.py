"""Collaborator contracts shared by extractors and mailers.

The scheduling core only depends on these types; the concrete Google Maps
and SendGrid adapters live next to this module.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Union


@dataclass
class RawRecord:
    """One business as reported by an extractor, before qualification.

    Attributes:
        name: Business name as scraped.
        address: Street address.
        category: Business category or primary place type.
        phone: Phone number in any format.
        email: Contact email, if the source exposes one.
        has_website: Whether the business already has a website.
        rating: Average star rating (0.0-5.0).
        review_count: Number of user reviews.
        latitude, longitude: Location, if known.
    """

    name: Optional[str]
    address: Optional[str]
    category: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    has_website: bool = False
    rating: Optional[float] = None
    review_count: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawRecord":
        """Build a record from a plain mapping (e.g. a JSON feed row)."""
        return cls(
            name=data.get("name"),
            address=data.get("address"),
            category=data.get("category"),
            phone=data.get("phone"),
            email=data.get("email"),
            has_website=bool(data.get("has_website", data.get("hasWebsite", False))),
            rating=data.get("rating"),
            review_count=data.get("review_count", data.get("reviewCount")),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "address": self.address,
            "category": self.category,
            "phone": self.phone,
            "email": self.email,
            "has_website": self.has_website,
            "rating": self.rating,
            "review_count": self.review_count,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


@dataclass(frozen=True)
class LocationArea:
    """A named search location such as ``"Austin, Texas"``."""

    name: str

    @property
    def label(self) -> str:
        return self.name


@dataclass(frozen=True)
class ZoneArea:
    """A zone's bounding box and centre."""

    name: str
    lat_min: float
    lat_max: float
    lon_min: float
    lon_max: float
    center_lat: float
    center_lon: float

    @property
    def label(self) -> str:
        return self.name

    @classmethod
    def from_zone(cls, zone: Any) -> "ZoneArea":
        """Build an area from a persisted zone (or any object with its fields)."""
        return cls(
            name=zone.name,
            lat_min=zone.lat_min,
            lat_max=zone.lat_max,
            lon_min=zone.lon_min,
            lon_max=zone.lon_max,
            center_lat=zone.center_lat,
            center_lon=zone.center_lon,
        )


AreaSpec = Union[LocationArea, ZoneArea]


@dataclass
class DeliveryResult:
    """Outcome of one mailer send.

    Attributes:
        success: Whether the mailer accepted the message.
        reference: Provider message id, when available.
        error: Failure description when success is False.
    """

    success: bool
    reference: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "reference": self.reference, "error": self.error}


class Extractor(Protocol):
    """Produces raw business records for a search area.

    Returns an empty list when the area has no results and raises only for
    hard failures.
    """

    async def discover(self, area: AreaSpec) -> List[RawRecord]:
        ...


class Mailer(Protocol):
    """Attempts delivery of one rendered message. Never raises."""

    async def send(self, destination: str, subject: str, body: str) -> DeliveryResult:
        ...
