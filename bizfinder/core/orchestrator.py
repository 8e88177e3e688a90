from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from ..providers.google_places import GooglePlacesConfig, GooglePlacesProvider
from .config import Settings, get_settings
from .coordinator import CoordinatorConfig
from .errors import CredentialMissingError
from .grid import GridConfig
from .nodes.assemble import AssembleResultsNode
from .nodes.discover import DiscoverBusinessesNode
from .nodes.enrich import DetailEnrichmentNode
from .nodes.planner import RequestPlannerNode
from .workflow import WorkflowRunner
from .workflow_types import WorkflowContext

logger = logging.getLogger(__name__)


def coordinator_config(settings: Settings) -> CoordinatorConfig:
    return CoordinatorConfig(
        default_country=settings.default_country or None,
        grid=GridConfig(span_threshold_deg=settings.span_threshold_deg),
    )


async def run_pipeline(
    ctx: WorkflowContext,
    provider,
    settings: Settings,
    config: CoordinatorConfig | None = None,
) -> WorkflowContext:
    runner = WorkflowRunner(
        nodes=[
            DiscoverBusinessesNode(provider, config or coordinator_config(settings)),
            DetailEnrichmentNode(provider, concurrency=settings.detail_concurrency),
            AssembleResultsNode(),
        ]
    )
    return await runner.run(ctx)


async def run_search(
    request: Dict[str, Any],
    settings: Optional[Settings] = None,
    provider=None,
    config: CoordinatorConfig | None = None,
) -> Dict[str, Any]:
    """
    Runs one search request end to end and returns the response payload.
    Raises InputInvalidError / CredentialMissingError before any upstream call.
    """
    settings = settings or get_settings()
    ctx = WorkflowContext(search_id=uuid.uuid4().hex[:12], request=request)
    ctx = await RequestPlannerNode().run(ctx)
    logger.info(
        "[%s] search %r max_results=%d intensity=%s",
        ctx.search_id, ctx.plan["query"], ctx.plan["max_results"], ctx.plan["intensity"].value,
    )

    if provider is None:
        if not settings.google_places_api_key:
            raise CredentialMissingError(
                "Google Places API key not configured. Set GOOGLE_PLACES_API_KEY."
            )
        cfg = GooglePlacesConfig(
            api_key=settings.google_places_api_key,
            language_code=settings.language_code,
            timeout_s=settings.http_timeout_s,
        )
        async with GooglePlacesProvider(cfg) as google:
            ctx = await run_pipeline(ctx, google, settings, config)
    else:
        ctx = await run_pipeline(ctx, provider, settings, config)

    logger.info(
        "[%s] returned %d results using %d API calls",
        ctx.search_id, len(ctx.response["results"]), ctx.response["api_calls_used"],
    )
    return ctx.response
