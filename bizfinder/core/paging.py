"""
Page-token pagination over the text search endpoint.

The upstream returns at most 20 results per page and a `next_page_token`
that only becomes valid a couple of seconds after it is issued. A freshly
issued token is answered with INVALID_REQUEST, so that status is retried
with backoff; every other non-OK status ends the walk.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, List, Optional

from ..providers.base import BoundingBox, PlaceSummary, PlacesProvider, SearchPage
from .backoff import retry_while
from .errors import UpstreamError

logger = logging.getLogger(__name__)

TRANSIENT_STATUSES = frozenset({"INVALID_REQUEST"})


class PageStatus(str, Enum):
    OK = "ok"
    TRANSIENT = "transient"
    EMPTY = "empty"
    FAILED = "failed"


def classify_status(status: str) -> PageStatus:
    if status == "OK":
        return PageStatus.OK
    if status in TRANSIENT_STATUSES:
        return PageStatus.TRANSIENT
    if status == "ZERO_RESULTS":
        return PageStatus.EMPTY
    return PageStatus.FAILED


@dataclass(frozen=True)
class PagingPolicy:
    max_pages: int = 3
    max_retries: int = 3
    retry_base_delay_s: float = 1.0
    page_delay_s: float = 2.2


@dataclass
class PagingStats:
    pages: int = 0
    calls: int = 0
    stop_reason: Optional[str] = None
    error: Optional[str] = None


async def iter_pages(
    provider: PlacesProvider,
    query: str,
    *,
    bounds: Optional[BoundingBox] = None,
    policy: PagingPolicy = PagingPolicy(),
    stats: Optional[PagingStats] = None,
) -> AsyncIterator[List[PlaceSummary]]:
    """
    Yields one list of results per successful page, following next-page
    tokens up to policy.max_pages. Never raises for upstream statuses or
    transport failures; the reason the walk ended is left in `stats`.
    """
    stats = stats if stats is not None else PagingStats()
    token: Optional[str] = None

    for page_no in range(policy.max_pages):
        if page_no:
            await asyncio.sleep(policy.page_delay_s)

        async def fetch(page_token: Optional[str] = token) -> SearchPage:
            stats.calls += 1
            return await provider.text_search(query, bounds, page_token=page_token)

        try:
            outcome = await retry_while(
                fetch,
                lambda p: classify_status(p.status) is PageStatus.TRANSIENT,
                max_retries=policy.max_retries,
                base_delay_s=policy.retry_base_delay_s,
            )
        except UpstreamError as e:
            logger.warning("Search %r page %d failed: %s", query, page_no + 1, e)
            stats.stop_reason = "transport_error"
            stats.error = str(e)
            return

        page = outcome.value
        status = classify_status(page.status)
        if outcome.exhausted:
            logger.warning(
                "Search %r page %d still %s after %d attempts; giving up",
                query, page_no + 1, page.status, outcome.attempts,
            )
            stats.stop_reason = "retries_exhausted"
            stats.error = page.status
            return
        if status is not PageStatus.OK or not page.places:
            if status is PageStatus.FAILED:
                logger.warning(
                    "Search %r page %d returned %s: %s",
                    query, page_no + 1, page.status, page.error_message or "",
                )
                stats.error = page.status
            stats.stop_reason = page.status if status is not PageStatus.OK else "ZERO_RESULTS"
            return

        stats.pages += 1
        logger.debug("Search %r page %d: %d results", query, page_no + 1, len(page.places))
        yield page.places

        token = page.next_page_token
        if not token:
            stats.stop_reason = "exhausted"
            return

    stats.stop_reason = "page_limit"
