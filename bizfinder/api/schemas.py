from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Dict, List, Literal, Optional

Intensity = Literal["low", "medium", "high"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchRequest(CamelModel):
    # Optional so a missing query is reported as a 400, not a schema error.
    query: Optional[str] = None
    max_results: Optional[int] = None
    search_intensity: Optional[Intensity] = None


class LatLng(BaseModel):
    lat: float
    lng: float


class ReviewOut(CamelModel):
    author: str
    rating: Optional[int] = None
    text: str
    time: str


class PlaceOut(CamelModel):
    id: str
    name: str
    address: str
    phone: Optional[str] = None
    rating: Optional[float] = None
    total_reviews: Optional[int] = None
    status: Optional[str] = None
    website: Optional[str] = None
    price_level: Optional[int] = None
    location: Optional[LatLng] = None
    reviews: List[ReviewOut] = []


class TileLogOut(CamelModel):
    tile_id: str
    bounds: Dict[str, LatLng]
    pages: int
    raw_count: int
    new_unique: int
    calls: int
    error: Optional[str] = None


class SearchMetaOut(CamelModel):
    strategy: str
    fallback_used: bool = False
    search_term: Optional[str] = None
    location: Optional[str] = None
    search_calls: int = 0
    geocode_calls: int = 0
    tiles_created: int = 0
    tiles_processed: int = 0
    raw_results: int = 0
    unique_results: int = 0
    tile_logs: List[TileLogOut] = []
    details_calls: int = 0
    detail_failures: int = 0
    total_api_calls: int = 0
    error: Optional[str] = None


class SearchResponse(CamelModel):
    results: List[PlaceOut]
    api_calls_used: int
    meta: SearchMetaOut


class ErrorResponse(BaseModel):
    error: str
