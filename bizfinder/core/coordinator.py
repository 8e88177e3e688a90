from __future__ import annotations

import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ..providers.base import PlaceSummary, PlacesProvider, SearchIntensity, SearchMeta
from .errors import LocationUnresolvableError
from .grid import GridConfig, partition_for_intensity
from .location import DEFAULT_RADIUS_DEG, LocationResolver, parse_query
from .paging import PagingStats, iter_pages
from .tiles import TileResult, TileSearchConfig, TileSearchError, TileSearchOrchestrator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoordinatorConfig:
    # Budgets up to this size are served by a single paginated query.
    standard_search_limit: int = 60
    default_country: Optional[str] = "USA"
    default_radius_deg: float = DEFAULT_RADIUS_DEG
    grid: GridConfig = field(default_factory=GridConfig)
    tiles: TileSearchConfig = field(default_factory=TileSearchConfig)


class ResultMerger:
    """First-seen-wins merge by place id, optionally capped at a budget."""

    def __init__(self, budget: Optional[int] = None):
        self.budget = budget
        self.seen: set[str] = set()
        self.places: List[PlaceSummary] = []

    @property
    def full(self) -> bool:
        return self.budget is not None and len(self.places) >= self.budget

    def add(self, places: Iterable[PlaceSummary]) -> int:
        added = 0
        for p in places:
            if self.full:
                break
            if p.place_id in self.seen:
                continue
            self.seen.add(p.place_id)
            self.places.append(p)
            added += 1
        return added


def _record_tile(result: TileResult, meta: SearchMeta) -> None:
    meta.tiles_processed += 1
    meta.search_calls += result.calls
    meta.raw_results += len(result.places)
    meta.tile_logs.append(result.log_entry())


@dataclass
class SearchOutcome:
    places: List[PlaceSummary]
    meta: SearchMeta


class SearchCoordinator:
    def __init__(self, provider: PlacesProvider, config: CoordinatorConfig | None = None):
        self.provider = provider
        self.config = config or CoordinatorConfig()

    async def search(self, query: str, max_results: int, intensity: SearchIntensity) -> SearchOutcome:
        meta = SearchMeta()
        if max_results <= self.config.standard_search_limit:
            places = await self.standard_search(query, max_results, meta)
            return SearchOutcome(places=places, meta=meta)

        try:
            places = await self.grid_search(query, max_results, intensity, meta)
        except LocationUnresolvableError as e:
            logger.warning("Grid search unavailable (%s); falling back to standard search", e)
            places = await self._fall_back(query, max_results, meta, e)
        except Exception as e:
            logger.exception("Grid search failed; falling back to standard search")
            places = await self._fall_back(query, max_results, meta, e)
        return SearchOutcome(places=places, meta=meta)

    async def _fall_back(self, query: str, max_results: int, meta: SearchMeta, exc: Exception) -> List[PlaceSummary]:
        meta.fallback_used = True
        meta.error = str(exc) or type(exc).__name__
        return await self.standard_search(query, max_results, meta)

    async def standard_search(self, query: str, max_results: int, meta: SearchMeta) -> List[PlaceSummary]:
        """
        One unbiased query, up to max_pages pages. Paging stops once the budget
        is met, but what has been fetched is not truncated.
        """
        meta.strategy = "standard"
        merger = ResultMerger()
        stats = PagingStats()
        raw = 0

        async with aclosing(iter_pages(self.provider, query, policy=self.config.tiles.paging, stats=stats)) as pages:
            async for places in pages:
                raw += len(places)
                merger.add(places)
                if len(merger.places) >= max_results:
                    break

        meta.search_calls += stats.calls
        meta.raw_results = raw
        if stats.error and not meta.error:
            if stats.stop_reason == "transport_error":
                meta.error = stats.error
            else:
                meta.error = f"Google Places API error: {stats.error}"
        meta.unique_results = len(merger.places)
        logger.info("Standard search %r: %d pages, %d results", query, stats.pages, len(merger.places))
        return merger.places

    async def grid_search(
        self,
        query: str,
        max_results: int,
        intensity: SearchIntensity,
        meta: SearchMeta,
    ) -> List[PlaceSummary]:
        meta.strategy = "grid"
        term, phrase = parse_query(query)
        meta.search_term = term
        meta.location = phrase
        logger.info("Grid search: term=%r location=%r budget=%d", term, phrase, max_results)

        resolver = LocationResolver(
            self.provider,
            default_country=self.config.default_country,
            default_radius_deg=self.config.default_radius_deg,
        )
        resolved = await resolver.resolve(phrase, meta)

        tiles = partition_for_intensity(resolved.bounds, intensity, self.config.grid)
        meta.tiles_created = len(tiles)

        merger = ResultMerger(budget=max_results)
        orchestrator = TileSearchOrchestrator(self.provider, self.config.tiles)
        try:
            async with aclosing(orchestrator.run_batches(term, tiles, merger.seen)) as batches:
                async for batch in batches:
                    # Merged in tile order, whatever order the batch finished in.
                    for result in batch:
                        _record_tile(result, meta)
                        merger.add(result.places)
                    if merger.full:
                        logger.info("Reached %d results after %d tiles", max_results, meta.tiles_processed)
                        break
        except TileSearchError as e:
            for result in e.results:
                _record_tile(result, meta)
            raise

        meta.unique_results = len(merger.places)
        logger.info(
            "Grid search done: %d/%d tiles, %d raw, %d unique",
            meta.tiles_processed, meta.tiles_created, meta.raw_results, meta.unique_results,
        )
        return merger.places
