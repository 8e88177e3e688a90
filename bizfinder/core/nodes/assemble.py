from __future__ import annotations

from typing import Any, Dict

from ...providers.base import PlaceDetail, SearchMeta
from ..workflow_types import WorkflowContext


def detail_to_dict(d: PlaceDetail) -> Dict[str, Any]:
    return {
        "id": d.place_id,
        "name": d.name,
        "address": d.address,
        "phone": d.phone,
        "rating": d.rating,
        "total_reviews": d.total_reviews,
        "status": d.status,
        "website": d.website,
        "price_level": d.price_level,
        "location": {"lat": d.location.lat, "lng": d.location.lng} if d.location else None,
        "reviews": [
            {"author": r.author, "rating": r.rating, "text": r.text, "time": r.time}
            for r in d.reviews
        ],
    }


def meta_to_dict(meta: SearchMeta) -> Dict[str, Any]:
    out = {
        "strategy": meta.strategy,
        "fallback_used": meta.fallback_used,
        "search_term": meta.search_term,
        "location": meta.location,
        "search_calls": meta.search_calls,
        "geocode_calls": meta.geocode_calls,
        "tiles_created": meta.tiles_created,
        "tiles_processed": meta.tiles_processed,
        "raw_results": meta.raw_results,
        "unique_results": meta.unique_results,
        "tile_logs": list(meta.tile_logs),
        "details_calls": meta.details_calls,
        "detail_failures": meta.detail_failures,
        "total_api_calls": meta.total_api_calls,
    }
    if meta.error:
        out["error"] = meta.error
    return out


class AssembleResultsNode:
    name = "assemble_results"

    async def run(self, ctx: WorkflowContext) -> WorkflowContext:
        ctx.response = {
            "results": [detail_to_dict(d) for d in ctx.details],
            "api_calls_used": ctx.meta.total_api_calls,
            "meta": meta_to_dict(ctx.meta),
        }
        return ctx
