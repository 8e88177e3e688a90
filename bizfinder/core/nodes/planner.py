from __future__ import annotations

from dataclasses import dataclass

from ...providers.base import SearchIntensity
from ..errors import InputInvalidError
from ..workflow_types import WorkflowContext


@dataclass(frozen=True)
class RequestPlannerConfig:
    default_max_results: int = 60
    default_intensity: SearchIntensity = SearchIntensity.LOW


class RequestPlannerNode:
    name = "request_planner"

    def __init__(self, config: RequestPlannerConfig | None = None):
        self.config = config or RequestPlannerConfig()

    async def run(self, ctx: WorkflowContext) -> WorkflowContext:
        req = ctx.request
        query = str(req.get("query") or "").strip()
        if not query:
            raise InputInvalidError("Query parameter is required")

        raw_max = req.get("max_results")
        if raw_max is None:
            max_results = self.config.default_max_results
        else:
            try:
                max_results = int(raw_max)
            except (TypeError, ValueError):
                raise InputInvalidError(f"maxResults must be a positive integer, got {raw_max!r}") from None
            if max_results < 1:
                raise InputInvalidError(f"maxResults must be a positive integer, got {raw_max!r}")

        raw_intensity = req.get("search_intensity")
        if raw_intensity is None:
            intensity = self.config.default_intensity
        else:
            try:
                intensity = SearchIntensity(str(raw_intensity).lower())
            except ValueError:
                raise InputInvalidError(
                    f"searchIntensity must be one of low, medium, high; got {raw_intensity!r}"
                ) from None

        ctx.plan = {
            "query": query,
            "max_results": max_results,
            "intensity": intensity,
        }
        return ctx
