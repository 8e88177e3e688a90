from __future__ import annotations

from ..coordinator import CoordinatorConfig, SearchCoordinator
from ..workflow_types import WorkflowContext


class DiscoverBusinessesNode:
    name = "discover_businesses"

    def __init__(self, provider, config: CoordinatorConfig | None = None):
        self.coordinator = SearchCoordinator(provider, config)

    async def run(self, ctx: WorkflowContext) -> WorkflowContext:
        outcome = await self.coordinator.search(
            ctx.plan["query"],
            ctx.plan["max_results"],
            ctx.plan["intensity"],
        )
        ctx.places = outcome.places
        ctx.meta = outcome.meta
        if outcome.meta.error:
            ctx.errors.append(outcome.meta.error)
        return ctx
