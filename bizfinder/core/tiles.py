"""
Tile search orchestration

Runs one paginated, tile-biased text search per grid tile. Tiles are searched
in fixed-size concurrent batches with a pause between batches; each batch is
handed back to the caller before the next one starts so the caller can merge
results and stop early once it has enough.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Any, AsyncIterator, Dict, List, Optional, Sequence

from ..providers.base import PlaceSummary, PlacesProvider, Tile
from .paging import PagingPolicy, PagingStats, iter_pages

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TileSearchConfig:
    max_pages: int = 3
    max_retries: int = 3
    retry_base_delay_s: float = 1.0
    page_delay_s: float = 2.2
    batch_size: int = 4
    batch_delay_s: float = 0.3

    @property
    def paging(self) -> PagingPolicy:
        return PagingPolicy(
            max_pages=self.max_pages,
            max_retries=self.max_retries,
            retry_base_delay_s=self.retry_base_delay_s,
            page_delay_s=self.page_delay_s,
        )


@dataclass
class TileResult:
    tile: Tile
    places: List[PlaceSummary] = field(default_factory=list)
    pages: int = 0
    calls: int = 0
    new_unique: int = 0
    error: Optional[str] = None

    def log_entry(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "tile_id": self.tile.tile_id,
            "bounds": self.tile.bounds.to_dict(),
            "pages": self.pages,
            "raw_count": len(self.places),
            "new_unique": self.new_unique,
            "calls": self.calls,
        }
        if self.error:
            entry["error"] = self.error
        return entry


class TileSearchError(Exception):
    """
    A tile search failed with something other than an upstream status or
    transport error. `results` holds every tile of the batch, the failed
    ones included, once all of them have finished.
    """

    def __init__(self, cause: BaseException, results: List[TileResult]):
        super().__init__(str(cause) or type(cause).__name__)
        self.cause = cause
        self.results = results


class TileSearchOrchestrator:
    def __init__(self, provider: PlacesProvider, config: TileSearchConfig | None = None):
        self.provider = provider
        self.config = config or TileSearchConfig()

    async def search_tile(self, term: str, tile: Tile, seen: AbstractSet[str]) -> TileResult:
        """
        Searches a single tile. `seen` is only read here: ids already merged
        by the caller (or seen earlier on this tile) do not count as new.
        """
        result = TileResult(tile=tile)
        stats = PagingStats()
        local_ids = set()

        try:
            async for places in iter_pages(
                self.provider,
                term,
                bounds=tile.bounds,
                policy=self.config.paging,
                stats=stats,
            ):
                result.places.extend(places)
                for p in places:
                    if p.place_id not in seen and p.place_id not in local_ids:
                        result.new_unique += 1
                    local_ids.add(p.place_id)
        except Exception as e:
            result.pages = stats.pages
            result.calls = stats.calls
            result.error = str(e) or type(e).__name__
            logger.warning("Tile %s failed after %d calls: %s", tile.tile_id, result.calls, result.error)
            raise TileSearchError(e, [result]) from e

        result.pages = stats.pages
        result.calls = stats.calls
        result.error = stats.error
        logger.info(
            "Tile %s: %d pages, %d raw, %d new (%s)",
            tile.tile_id, result.pages, len(result.places), result.new_unique, stats.stop_reason,
        )
        return result

    async def _run_batch(self, term: str, batch: Sequence[Tile], seen: AbstractSet[str]) -> List[TileResult]:
        # Every tile runs to completion before a failure is reported.
        outcomes = await asyncio.gather(
            *(self.search_tile(term, t, seen) for t in batch),
            return_exceptions=True,
        )
        failures = [o for o in outcomes if isinstance(o, BaseException)]
        if not failures:
            return list(outcomes)

        results: List[TileResult] = []
        for tile, outcome in zip(batch, outcomes):
            if isinstance(outcome, TileSearchError):
                results.extend(outcome.results)
            elif isinstance(outcome, TileResult):
                results.append(outcome)
            else:
                results.append(TileResult(tile=tile, error=str(outcome) or type(outcome).__name__))
        first = failures[0]
        cause = first.cause if isinstance(first, TileSearchError) else first
        raise TileSearchError(cause, results) from cause

    async def run_batches(
        self,
        term: str,
        tiles: Sequence[Tile],
        seen: AbstractSet[str],
    ) -> AsyncIterator[List[TileResult]]:
        """
        Yields the results of each batch in tile order. The pause before the
        next batch only happens when the caller asks for it, so breaking out
        of the loop stops further batches immediately.

        Raises TileSearchError once the whole batch has finished if any tile
        in it failed unexpectedly.
        """
        size = max(1, self.config.batch_size)
        for start in range(0, len(tiles), size):
            if start:
                await asyncio.sleep(self.config.batch_delay_s)
            batch = tiles[start:start + size]
            logger.info("Searching tiles %d-%d of %d", start + 1, start + len(batch), len(tiles))
            yield await self._run_batch(term, batch, seen)
