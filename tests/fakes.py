from __future__ import annotations

import asyncio
from typing import Callable, Dict, List, Optional

from bizfinder.core.coordinator import CoordinatorConfig
from bizfinder.core.tiles import TileSearchConfig
from bizfinder.providers.base import (
    BoundingBox,
    Coordinate,
    DetailsResponse,
    GeocodeResult,
    PlaceSummary,
    SearchPage,
)

NO_DELAYS = TileSearchConfig(retry_base_delay_s=0.0, page_delay_s=0.0, batch_delay_s=0.0)


def fast_config(**kwargs) -> CoordinatorConfig:
    return CoordinatorConfig(tiles=kwargs.pop("tiles", NO_DELAYS), **kwargs)


def place(pid: str, **kwargs) -> PlaceSummary:
    kwargs.setdefault("name", f"Place {pid}")
    kwargs.setdefault("address", f"{pid} Main St")
    return PlaceSummary(place_id=pid, **kwargs)


def places(prefix: str, n: int) -> List[PlaceSummary]:
    return [place(f"{prefix}-{i}") for i in range(n)]


def paged(pages: List[List[PlaceSummary]]) -> Callable[[Optional[str]], SearchPage]:
    """Serves `pages` in order, chaining them with tokens "t1", "t2", ..."""

    def serve(token: Optional[str]) -> SearchPage:
        idx = int(token[1:]) if token else 0
        nxt = f"t{idx + 1}" if idx + 1 < len(pages) else None
        return SearchPage(status="OK", places=list(pages[idx]), next_page_token=nxt)

    return serve


class FakePlacesProvider:
    provider_name = "fake"

    def __init__(self, search=None, geocode=None, details=None):
        self._search = search or (lambda query, bounds, token: SearchPage(status="ZERO_RESULTS", places=[]))
        self._geocode = geocode or (lambda address: GeocodeResult(status="ZERO_RESULTS"))
        self._details = details or (lambda place_id: DetailsResponse(status="NOT_FOUND"))
        self.search_calls: List[tuple] = []
        self.geocode_calls: List[str] = []
        self.details_calls: List[str] = []

    async def text_search(self, query, bounds=None, *, page_token=None):
        self.search_calls.append((query, bounds, page_token))
        return self._answer(self._search(query, bounds, page_token))

    async def geocode(self, address):
        self.geocode_calls.append(address)
        return self._answer(self._geocode(address))

    async def place_details(self, place_id):
        self.details_calls.append(place_id)
        return self._answer(self._details(place_id))

    @staticmethod
    def _answer(value):
        if isinstance(value, Exception):
            raise value
        return value


def geocoded(lat: float, lng: float, bounds: Optional[BoundingBox] = None):
    return lambda address: GeocodeResult(status="OK", location=Coordinate(lat, lng), bounds=bounds)


def tile_search(by_bounds: Dict[BoundingBox, Callable[[Optional[str]], SearchPage]]):
    """Routes a tile-biased search to the page server registered for its bounds."""

    def search(query, bounds, token):
        serve = by_bounds.get(bounds)
        if serve is None:
            return SearchPage(status="ZERO_RESULTS", places=[])
        return serve(token)

    return search


class SlowTilesProvider(FakePlacesProvider):
    """Answers searches biased to `fast_bounds` at once and everything else after `delay_s`."""

    def __init__(self, fast_bounds, delay_s=0.05, **kwargs):
        super().__init__(**kwargs)
        self.fast_bounds = fast_bounds
        self.delay_s = delay_s

    async def text_search(self, query, bounds=None, *, page_token=None):
        if bounds != self.fast_bounds:
            await asyncio.sleep(self.delay_s)
        return await super().text_search(query, bounds, page_token=page_token)
