import pytest

from bizfinder.core import backoff
from bizfinder.core.errors import UpstreamError
from bizfinder.core.paging import PageStatus, PagingPolicy, PagingStats, classify_status, iter_pages
from bizfinder.providers.base import SearchPage

from fakes import FakePlacesProvider, paged, places

NO_WAIT = PagingPolicy(retry_base_delay_s=0.0, page_delay_s=0.0)


async def _collect(provider, policy=NO_WAIT, stats=None):
    out = []
    async for batch in iter_pages(provider, "pizza", policy=policy, stats=stats):
        out.append(batch)
    return out


@pytest.mark.parametrize(
    "status,expected",
    [
        ("OK", PageStatus.OK),
        ("INVALID_REQUEST", PageStatus.TRANSIENT),
        ("ZERO_RESULTS", PageStatus.EMPTY),
        ("OVER_QUERY_LIMIT", PageStatus.FAILED),
        ("REQUEST_DENIED", PageStatus.FAILED),
    ],
)
def test_classify_status(status, expected):
    assert classify_status(status) is expected


async def test_follows_tokens_up_to_page_limit():
    serve = paged([places("a", 20), places("b", 20), places("c", 20), places("d", 20)])
    provider = FakePlacesProvider(search=lambda q, b, t: serve(t))
    stats = PagingStats()

    batches = await _collect(provider, stats=stats)

    assert [len(b) for b in batches] == [20, 20, 20]
    assert [c[2] for c in provider.search_calls] == [None, "t1", "t2"]
    assert stats.pages == 3
    assert stats.calls == 3
    assert stats.stop_reason == "page_limit"


async def test_waits_before_each_token_follow_up(sleeps):
    serve = paged([places("a", 20), places("b", 20), places("c", 20)])
    provider = FakePlacesProvider(search=lambda q, b, t: serve(t))

    batches = await _collect(provider, policy=PagingPolicy())

    assert len(batches) == 3
    assert sleeps == [2.2, 2.2]


async def test_no_wait_after_last_page(sleeps):
    serve = paged([places("a", 20)])
    provider = FakePlacesProvider(search=lambda q, b, t: serve(t))

    await _collect(provider, policy=PagingPolicy())

    assert sleeps == []


async def test_stops_when_no_next_token():
    serve = paged([places("a", 5)])
    provider = FakePlacesProvider(search=lambda q, b, t: serve(t))
    stats = PagingStats()

    batches = await _collect(provider, stats=stats)

    assert len(batches) == 1
    assert stats.stop_reason == "exhausted"


async def test_invalid_request_is_retried_with_exponential_backoff(sleeps):
    answers = iter([
        SearchPage(status="INVALID_REQUEST", places=[]),
        SearchPage(status="INVALID_REQUEST", places=[]),
        SearchPage(status="OK", places=places("a", 3)),
    ])
    provider = FakePlacesProvider(search=lambda q, b, t: next(answers))
    stats = PagingStats()
    policy = PagingPolicy(retry_base_delay_s=1.0, page_delay_s=0.0)

    batches = await _collect(provider, policy=policy, stats=stats)

    assert [len(b) for b in batches] == [3]
    assert sleeps == [1.0, 2.0]
    assert stats.calls == 3


async def test_gives_up_after_retry_bound(sleeps):
    provider = FakePlacesProvider(search=lambda q, b, t: SearchPage(status="INVALID_REQUEST", places=[]))
    stats = PagingStats()
    policy = PagingPolicy(retry_base_delay_s=1.0, page_delay_s=0.0)

    batches = await _collect(provider, policy=policy, stats=stats)

    assert batches == []
    assert sleeps == [1.0, 2.0, 4.0]
    assert stats.calls == 4
    assert stats.stop_reason == "retries_exhausted"
    assert stats.error == "INVALID_REQUEST"


async def test_retry_exhaustion_keeps_earlier_pages():
    serve = paged([places("a", 20), places("b", 20)])

    def search(q, b, token):
        if token:
            return SearchPage(status="INVALID_REQUEST", places=[])
        return serve(token)

    provider = FakePlacesProvider(search=search)
    batches = await _collect(provider)

    assert [len(b) for b in batches] == [20]


@pytest.mark.parametrize("status", ["ZERO_RESULTS", "OVER_QUERY_LIMIT", "REQUEST_DENIED"])
async def test_non_retryable_status_stops_without_raising(status):
    provider = FakePlacesProvider(search=lambda q, b, t: SearchPage(status=status, places=[]))
    stats = PagingStats()

    assert await _collect(provider, stats=stats) == []
    assert stats.calls == 1
    assert stats.stop_reason == status


async def test_transport_error_stops_walk():
    provider = FakePlacesProvider(search=lambda q, b, t: UpstreamError("timeout"))
    stats = PagingStats()

    assert await _collect(provider, stats=stats) == []
    assert stats.stop_reason == "transport_error"
    assert stats.error == "timeout"


async def test_retry_while_returns_first_accepted_value():
    calls = []

    async def call():
        calls.append(1)
        return len(calls)

    outcome = await backoff.retry_while(call, lambda v: v < 2, max_retries=5, base_delay_s=0.0)

    assert outcome.value == 2
    assert outcome.attempts == 2
    assert outcome.exhausted is False
