# bizfinder/providers/google_places.py
from __future__ import annotations

import asyncio
import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..core.errors import UpstreamError
from .base import BoundingBox, Coordinate, DetailsResponse, GeocodeResult, PlaceSummary, SearchPage

logger = logging.getLogger(__name__)

_METERS_PER_DEGREE = 111_320.0
# Largest radius the text search endpoint accepts.
_MAX_BIAS_RADIUS_M = 50_000


def _safe_get(d: Dict[str, Any], path: List[str], default=None):
    cur: Any = d
    for key in path:
        if not isinstance(cur, dict) or key not in cur:
            return default
        cur = cur[key]
    return cur


def _parse_latlng(raw: Any) -> Optional[Coordinate]:
    if not isinstance(raw, dict):
        return None
    lat = raw.get("lat")
    lng = raw.get("lng")
    if lat is None or lng is None:
        return None
    try:
        coord = Coordinate(lat=float(lat), lng=float(lng))
    except (TypeError, ValueError):
        return None
    return coord if coord.is_valid() else None


def _parse_box(raw: Any) -> Optional[BoundingBox]:
    if not isinstance(raw, dict):
        return None
    sw = _parse_latlng(raw.get("southwest"))
    ne = _parse_latlng(raw.get("northeast"))
    if sw is None or ne is None:
        return None
    return BoundingBox(southwest=sw, northeast=ne).normalized()


def parse_place(raw: Dict[str, Any]) -> Optional[PlaceSummary]:
    """Maps one text-search result onto a PlaceSummary; results without an id are dropped."""
    place_id = raw.get("place_id")
    if not place_id:
        return None
    return PlaceSummary(
        place_id=str(place_id),
        name=raw.get("name") or "",
        address=raw.get("formatted_address") or "",
        rating=raw.get("rating"),
        total_reviews=raw.get("user_ratings_total"),
        status=raw.get("business_status"),
        website=raw.get("website"),
        price_level=raw.get("price_level"),
        phone=raw.get("formatted_phone_number"),
        location=_parse_latlng(_safe_get(raw, ["geometry", "location"])),
    )


def bias_circle(bounds: BoundingBox) -> tuple[Coordinate, int]:
    """
    The text search endpoint biases by circle only, so a rectangle is sent as
    its circumscribed circle: the center plus the half-diagonal in meters.
    """
    center = bounds.center
    lat_m = bounds.lat_span * _METERS_PER_DEGREE
    lng_m = bounds.lng_span * _METERS_PER_DEGREE * math.cos(math.radians(center.lat))
    radius = int(math.ceil(math.hypot(lat_m, lng_m) / 2.0))
    return center, max(1, min(radius, _MAX_BIAS_RADIUS_M))


@dataclass(frozen=True)
class GooglePlacesConfig:
    api_key: str
    # e.g. "en" or "en-GB"
    language_code: str = "en"

    # Transport-level retries (429/5xx/timeouts). Status-level retries
    # (INVALID_REQUEST) are handled by the callers.
    timeout_s: float = 20.0
    max_retries: int = 2
    base_backoff_s: float = 0.5

    details_fields: str = (
        "name,"
        "formatted_address,"
        "formatted_phone_number,"
        "rating,"
        "user_ratings_total,"
        "business_status,"
        "website,"
        "price_level,"
        "reviews"
    )


class GooglePlacesProvider:
    """
    Google Maps Platform legacy web services:
      - GET https://maps.googleapis.com/maps/api/place/textsearch/json
      - GET https://maps.googleapis.com/maps/api/place/details/json
      - GET https://maps.googleapis.com/maps/api/geocode/json

    Auth:
      - `key` query parameter

    Every response carries a `status` field ("OK", "ZERO_RESULTS",
    "INVALID_REQUEST", ...). Statuses are handed back to the caller as-is.
    """

    provider_name = "google_places"
    _BASE_URL = "https://maps.googleapis.com/maps/api"

    def __init__(self, cfg: GooglePlacesConfig, client: Optional[httpx.AsyncClient] = None):
        if not cfg.api_key:
            raise ValueError("GooglePlacesConfig.api_key is required")
        self.cfg = cfg
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.cfg.timeout_s)
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("GooglePlacesProvider must be used with 'async with' or provide a client.")
        return self._client

    async def _get_with_retries(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Retries on transient failures (429/5xx/timeouts) with exponential backoff + jitter.
        """
        url = f"{self._BASE_URL}/{path}"
        params = {**params, "key": self.cfg.api_key}
        last_err: Optional[Exception] = None
        for attempt in range(self.cfg.max_retries + 1):
            try:
                resp = await self.client.get(url, params=params)
                if resp.status_code in (429, 500, 502, 503, 504):
                    raise httpx.HTTPStatusError(
                        f"transient status {resp.status_code}",
                        request=resp.request,
                        response=resp,
                    )
                resp.raise_for_status()
                data = resp.json()
                if not isinstance(data, dict):
                    raise ValueError("Expected JSON object response")
                return data
            except (httpx.TimeoutException, httpx.NetworkError, httpx.HTTPStatusError, ValueError) as e:
                last_err = e
                if attempt >= self.cfg.max_retries:
                    break
                backoff = self.cfg.base_backoff_s * (2 ** attempt)
                jitter = random.random() * 0.25
                logger.warning("GET %s failed (%s); retrying in %.2fs", path, type(e).__name__, backoff + jitter)
                await asyncio.sleep(backoff + jitter)
        # The exception text may embed the request URL, which carries the key.
        raise UpstreamError(f"{path} failed after retries: {type(last_err).__name__}") from last_err

    async def text_search(
        self,
        query: str,
        bounds: Optional[BoundingBox] = None,
        *,
        page_token: Optional[str] = None,
    ) -> SearchPage:
        """
        Executes one text search page. A follow-up page only needs the token;
        the upstream ignores the other parameters once one is given.
        """
        params: Dict[str, Any] = {"query": query, "language": self.cfg.language_code}
        if bounds is not None:
            center, radius = bias_circle(bounds)
            params["location"] = f"{center.lat:.6f},{center.lng:.6f}"
            params["radius"] = radius
        if page_token:
            params["pagetoken"] = page_token

        data = await self._get_with_retries("place/textsearch/json", params)

        places = [p for p in (parse_place(r) for r in data.get("results") or []) if p is not None]
        next_token = data.get("next_page_token")
        return SearchPage(
            status=str(data.get("status") or "UNKNOWN_ERROR"),
            places=places,
            next_page_token=str(next_token) if next_token else None,
            error_message=data.get("error_message"),
        )

    async def geocode(self, address: str) -> GeocodeResult:
        data = await self._get_with_retries(
            "geocode/json",
            {"address": address, "language": self.cfg.language_code},
        )
        status = str(data.get("status") or "UNKNOWN_ERROR")
        results = data.get("results") or []
        if status != "OK" or not results:
            return GeocodeResult(status=status)

        geometry = results[0].get("geometry") or {}
        bounds = _parse_box(geometry.get("bounds")) or _parse_box(geometry.get("viewport"))
        return GeocodeResult(
            status=status,
            location=_parse_latlng(geometry.get("location")),
            bounds=bounds,
        )

    async def place_details(self, place_id: str) -> DetailsResponse:
        data = await self._get_with_retries(
            "place/details/json",
            {
                "place_id": place_id,
                "fields": self.cfg.details_fields,
                "language": self.cfg.language_code,
            },
        )
        result = data.get("result")
        return DetailsResponse(
            status=str(data.get("status") or "UNKNOWN_ERROR"),
            result=result if isinstance(result, dict) else {},
        )
