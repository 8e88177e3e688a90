# Provider interfaces and dataclasses.
# bizfinder/providers/base.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float

    def is_valid(self) -> bool:
        return (
            math.isfinite(self.lat)
            and math.isfinite(self.lng)
            and -90.0 <= self.lat <= 90.0
            and -180.0 <= self.lng <= 180.0
        )


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned rectangle given by its southwest and northeast corners."""
    southwest: Coordinate
    northeast: Coordinate

    @property
    def lat_span(self) -> float:
        return self.northeast.lat - self.southwest.lat

    @property
    def lng_span(self) -> float:
        return self.northeast.lng - self.southwest.lng

    @property
    def center(self) -> Coordinate:
        return Coordinate(
            lat=(self.southwest.lat + self.northeast.lat) / 2.0,
            lng=(self.southwest.lng + self.northeast.lng) / 2.0,
        )

    def normalized(self) -> "BoundingBox":
        """
        Returns a box with ordered corners clamped to valid lat/lng ranges.
        Raises ValueError on non-finite corners.
        """
        values = (self.southwest.lat, self.southwest.lng, self.northeast.lat, self.northeast.lng)
        if not all(math.isfinite(v) for v in values):
            raise ValueError(f"non-finite bounding box: {values}")
        south, north = sorted((self.southwest.lat, self.northeast.lat))
        west, east = sorted((self.southwest.lng, self.northeast.lng))
        return BoundingBox(
            southwest=Coordinate(lat=max(south, -90.0), lng=max(west, -180.0)),
            northeast=Coordinate(lat=min(north, 90.0), lng=min(east, 180.0)),
        )

    @classmethod
    def around(cls, center: Coordinate, radius_deg: float) -> "BoundingBox":
        return cls(
            southwest=Coordinate(lat=center.lat - radius_deg, lng=center.lng - radius_deg),
            northeast=Coordinate(lat=center.lat + radius_deg, lng=center.lng + radius_deg),
        ).normalized()

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            "southwest": {"lat": self.southwest.lat, "lng": self.southwest.lng},
            "northeast": {"lat": self.northeast.lat, "lng": self.northeast.lng},
        }


@dataclass(frozen=True)
class Tile:
    """One cell of a grid partition; (row, col) is its position in the grid."""
    row: int
    col: int
    bounds: BoundingBox

    @property
    def tile_id(self) -> str:
        return f"r{self.row}c{self.col}"


class SearchIntensity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def base_density(self) -> int:
        return {"low": 2, "medium": 3, "high": 4}[self.value]


@dataclass(frozen=True)
class PlaceSummary:
    """
    A normalized text-search result. `place_id` is the only identity used for
    deduplication.
    """
    place_id: str
    name: str
    address: str
    rating: Optional[float] = None
    total_reviews: Optional[int] = None
    status: Optional[str] = None
    website: Optional[str] = None
    price_level: Optional[int] = None
    phone: Optional[str] = None
    location: Optional[Coordinate] = None


@dataclass(frozen=True)
class Review:
    author: str
    rating: Optional[int]
    text: str
    time: str


@dataclass(frozen=True)
class PlaceDetail:
    place_id: str
    name: str
    address: str
    rating: Optional[float] = None
    total_reviews: Optional[int] = None
    status: Optional[str] = None
    website: Optional[str] = None
    price_level: Optional[int] = None
    phone: Optional[str] = None
    location: Optional[Coordinate] = None
    reviews: List[Review] = field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: PlaceSummary) -> "PlaceDetail":
        return cls(
            place_id=summary.place_id,
            name=summary.name,
            address=summary.address,
            rating=summary.rating,
            total_reviews=summary.total_reviews,
            status=summary.status,
            website=summary.website,
            price_level=summary.price_level,
            phone=summary.phone,
            location=summary.location,
            reviews=[],
        )


@dataclass(frozen=True)
class SearchPage:
    """One page of a text search: upstream status, results and optional next-page token."""
    status: str
    places: List[PlaceSummary]
    next_page_token: Optional[str] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class GeocodeResult:
    status: str
    location: Optional[Coordinate] = None
    bounds: Optional[BoundingBox] = None


@dataclass(frozen=True)
class DetailsResponse:
    status: str
    result: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SearchMeta:
    """Per-request accounting. Never drives control flow."""
    strategy: str = "standard"
    fallback_used: bool = False
    search_term: Optional[str] = None
    location: Optional[str] = None
    search_calls: int = 0
    geocode_calls: int = 0
    tiles_created: int = 0
    tiles_processed: int = 0
    raw_results: int = 0
    unique_results: int = 0
    tile_logs: List[Dict[str, Any]] = field(default_factory=list)
    details_calls: int = 0
    detail_failures: int = 0
    error: Optional[str] = None

    @property
    def total_api_calls(self) -> int:
        return self.search_calls + self.geocode_calls + self.details_calls


class PlacesProvider(Protocol):
    provider_name: str

    async def text_search(
        self,
        query: str,
        bounds: Optional[BoundingBox] = None,
        *,
        page_token: Optional[str] = None,
    ) -> SearchPage:
        """
        One text-search request. Non-OK upstream statuses are returned, not raised.
        """
        ...

    async def geocode(self, address: str) -> GeocodeResult:
        ...

    async def place_details(self, place_id: str) -> DetailsResponse:
        ...
