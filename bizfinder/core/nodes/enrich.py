from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

from ...providers.base import PlaceDetail, PlaceSummary, Review
from ..workflow_types import WorkflowContext

logger = logging.getLogger(__name__)

MAX_REVIEWS = 10


def _pick(details: Dict[str, Any], key: str, fallback):
    value = details.get(key)
    return fallback if value is None or value == "" else value


def _reviews(details: Dict[str, Any]) -> List[Review]:
    reviews = []
    for r in (details.get("reviews") or [])[:MAX_REVIEWS]:
        if not isinstance(r, dict):
            continue
        reviews.append(
            Review(
                author=r.get("author_name") or "",
                rating=r.get("rating"),
                text=r.get("text") or "",
                time=r.get("relative_time_description") or "",
            )
        )
    return reviews


def merge_details(summary: PlaceSummary, details: Dict[str, Any]) -> PlaceDetail:
    """Detail fields win over the search summary wherever the upstream filled them in."""
    return PlaceDetail(
        place_id=summary.place_id,
        name=_pick(details, "name", summary.name),
        address=_pick(details, "formatted_address", summary.address),
        rating=_pick(details, "rating", summary.rating),
        total_reviews=_pick(details, "user_ratings_total", summary.total_reviews),
        status=_pick(details, "business_status", summary.status),
        website=_pick(details, "website", summary.website),
        price_level=_pick(details, "price_level", summary.price_level),
        phone=_pick(details, "formatted_phone_number", summary.phone),
        location=summary.location,
        reviews=_reviews(details),
    )


class DetailEnrichmentNode:
    name = "detail_enrichment"

    def __init__(self, provider, concurrency: int = 10):
        self.provider = provider
        self.concurrency = max(1, concurrency)

    async def _enrich_one(self, summary: PlaceSummary, sem: asyncio.Semaphore, ctx: WorkflowContext) -> PlaceDetail:
        async with sem:
            ctx.meta.details_calls += 1
            try:
                resp = await self.provider.place_details(summary.place_id)
            except Exception as e:
                logger.warning("Details for %s failed: %s", summary.place_id, e)
                ctx.meta.detail_failures += 1
                return PlaceDetail.from_summary(summary)

        if resp.status != "OK" or not resp.result:
            logger.warning("Details for %s returned %s; using search result", summary.place_id, resp.status)
            ctx.meta.detail_failures += 1
            return PlaceDetail.from_summary(summary)
        return merge_details(summary, resp.result)

    async def run(self, ctx: WorkflowContext) -> WorkflowContext:
        sem = asyncio.Semaphore(self.concurrency)
        ctx.details = list(await asyncio.gather(*(self._enrich_one(p, sem, ctx) for p in ctx.places)))
        logger.info(
            "Enriched %d places (%d fell back to search data)",
            len(ctx.details), ctx.meta.detail_failures,
        )
        return ctx
