import asyncio
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import respx
from httpx import Response

from hn_quality.client import AlgoliaClient
from hn_quality.constants import ALGOLIA_BASE
from hn_quality.errors import (
    FetchFailedError,
    MalformedResponseError,
    NotFoundError,
    RequestTimeoutError,
)
from hn_quality.scoring import calculate_quality_score
from hn_quality.stories import StoryAggregator, dedupe_stories
from factories import NOW, envelope, make_hit, make_story

SEARCH_URL = f"{ALGOLIA_BASE}/search"
SEARCH_BY_DATE_URL = f"{ALGOLIA_BASE}/search_by_date"


@pytest.fixture
def aggregator(cache):
    return StoryAggregator(AlgoliaClient(), cache, clock=lambda: NOW)


def fake_client(popular=None, recent=None):
    """Client stand-in whose search() runs the given coroutine functions."""

    async def search(params, deadline=0, by_date=False):
        handler = recent if by_date else popular
        return await handler(params)

    client = MagicMock()
    client.search = search
    return client


# =============================================================================
# dedupe_stories
# =============================================================================


def test_dedupe_keeps_first_occurrence():
    first = make_story("1", points=10, title="Popular version")
    dup = make_story("1", points=9999, title="Recent version")
    other = make_story("2")

    merged = dedupe_stories([first, other, dup])
    assert [s.id for s in merged] == ["1", "2"]
    assert merged[0].title == "Popular version"


# =============================================================================
# list_page
# =============================================================================


@pytest.mark.asyncio
@respx.mock
async def test_list_page_query_parameters(aggregator):
    popular = respx.get(SEARCH_URL).mock(return_value=Response(200, json=envelope([])))
    recent = respx.get(SEARCH_BY_DATE_URL).mock(
        return_value=Response(200, json=envelope([]))
    )

    await aggregator.list_page(2, 20)

    p = popular.calls.last.request.url.params
    assert p["tags"] == "story"
    assert p["page"] == "2"
    assert p["hitsPerPage"] == "14"

    r = recent.calls.last.request.url.params
    cutoff = int((NOW - timedelta(hours=72)).timestamp())
    assert r["tags"] == "story"
    assert r["numericFilters"] == f"created_at_i>{cutoff}"
    assert r["hitsPerPage"] == "6"


@pytest.mark.asyncio
@respx.mock
async def test_list_page_rounds_shares_up(aggregator):
    popular = respx.get(SEARCH_URL).mock(return_value=Response(200, json=envelope([])))
    recent = respx.get(SEARCH_BY_DATE_URL).mock(
        return_value=Response(200, json=envelope([]))
    )

    await aggregator.list_page(0, 3)

    assert popular.calls.last.request.url.params["hitsPerPage"] == "3"
    assert recent.calls.last.request.url.params["hitsPerPage"] == "1"


@pytest.mark.asyncio
@respx.mock
async def test_list_page_merges_dedupes_and_sorts(aggregator):
    respx.get(SEARCH_URL).mock(
        return_value=Response(
            200,
            json=envelope(
                [
                    make_hit("old", points=30, num_comments=2, hours_ago=300),
                    make_hit("shared", points=50, num_comments=10, hours_ago=5, title="Popular"),
                    make_hit("big", points=800, num_comments=300, hours_ago=40),
                ],
                nb_pages=50,
                nb_hits=1000,
            ),
        )
    )
    respx.get(SEARCH_BY_DATE_URL).mock(
        return_value=Response(
            200,
            json=envelope(
                [
                    make_hit("shared", points=9999, num_comments=9999, hours_ago=5, title="Recent"),
                    make_hit("fresh", points=3, num_comments=0, hours_ago=0.2),
                ],
                nb_hits=120,
            ),
        )
    )

    page = await aggregator.list_page(0, 20)

    ids = [s.id for s in page.hits]
    assert sorted(ids) == ["big", "fresh", "old", "shared"]
    shared = next(s for s in page.hits if s.id == "shared")
    assert shared.title == "Popular"
    assert shared.points == 50

    totals = [calculate_quality_score(s, NOW).total for s in page.hits]
    assert totals == sorted(totals, reverse=True)
    assert ids[0] == "big"

    assert page.nb_pages == 50
    assert page.nb_hits == 1120
    assert page.page == 0
    assert page.hits_per_page == 20


@pytest.mark.asyncio
@respx.mock
async def test_list_page_truncates_to_page_size(aggregator):
    respx.get(SEARCH_URL).mock(
        return_value=Response(
            200, json=envelope([make_hit(str(i), points=i * 10) for i in range(1, 4)])
        )
    )
    respx.get(SEARCH_BY_DATE_URL).mock(
        return_value=Response(200, json=envelope([make_hit("9", points=1)]))
    )

    page = await aggregator.list_page(0, 3)
    assert [s.id for s in page.hits] == ["3", "2", "1"]


@pytest.mark.asyncio
@respx.mock
async def test_list_page_cache_hit_skips_fetch(aggregator, cache):
    popular = respx.get(SEARCH_URL).mock(
        return_value=Response(200, json=envelope([make_hit("1")]))
    )
    recent = respx.get(SEARCH_BY_DATE_URL).mock(
        return_value=Response(200, json=envelope([make_hit("2")]))
    )

    first = await aggregator.list_page(0, 10)
    second = await aggregator.list_page(0, 10)

    assert second == first
    assert popular.call_count == 1
    assert recent.call_count == 1
    assert cache.size() == 1


@pytest.mark.asyncio
@respx.mock
async def test_list_page_refetches_after_ttl(aggregator, clock):
    popular = respx.get(SEARCH_URL).mock(
        return_value=Response(200, json=envelope([make_hit("1")]))
    )
    respx.get(SEARCH_BY_DATE_URL).mock(return_value=Response(200, json=envelope([])))

    await aggregator.list_page(0, 10)
    clock.advance(61)
    await aggregator.list_page(0, 10)

    assert popular.call_count == 2


@pytest.mark.asyncio
@respx.mock
async def test_list_page_keys_by_page_and_size(aggregator):
    popular = respx.get(SEARCH_URL).mock(return_value=Response(200, json=envelope([])))
    respx.get(SEARCH_BY_DATE_URL).mock(return_value=Response(200, json=envelope([])))

    await aggregator.list_page(0, 10)
    await aggregator.list_page(1, 10)
    await aggregator.list_page(0, 20)

    assert popular.call_count == 3
    assert aggregator.cache_size() == 3


@pytest.mark.asyncio
async def test_list_page_timeout_writes_no_cache(cache):
    cancelled = []

    async def hang(params):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(params)
            raise

    aggregator = StoryAggregator(
        fake_client(popular=hang, recent=hang), cache, list_deadline=0.05, clock=lambda: NOW
    )

    with pytest.raises(RequestTimeoutError):
        await aggregator.list_page(0, 20)

    assert len(cancelled) == 2
    assert cache.size() == 0


@pytest.mark.asyncio
async def test_list_page_one_failure_cancels_the_other(cache):
    cancelled = asyncio.Event()

    async def hang(params):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    async def fail(params):
        raise FetchFailedError("boom", status_code=500)

    aggregator = StoryAggregator(
        fake_client(popular=hang, recent=fail), cache, list_deadline=5, clock=lambda: NOW
    )

    with pytest.raises(FetchFailedError) as exc_info:
        await aggregator.list_page(0, 20)

    assert not isinstance(exc_info.value, RequestTimeoutError)
    assert exc_info.value.status_code == 500
    assert cancelled.is_set()
    assert cache.size() == 0


@pytest.mark.asyncio
@respx.mock
async def test_list_page_http_failure(aggregator, cache):
    respx.get(SEARCH_URL).mock(return_value=Response(200, json=envelope([make_hit("1")])))
    respx.get(SEARCH_BY_DATE_URL).mock(return_value=Response(500))

    with pytest.raises(FetchFailedError):
        await aggregator.list_page(0, 20)
    assert cache.size() == 0


@pytest.mark.asyncio
@respx.mock
async def test_list_page_malformed_hit(aggregator, cache):
    respx.get(SEARCH_URL).mock(
        return_value=Response(200, json=envelope([{"title": "no id"}]))
    )
    respx.get(SEARCH_BY_DATE_URL).mock(return_value=Response(200, json=envelope([])))

    with pytest.raises(MalformedResponseError):
        await aggregator.list_page(0, 20)
    assert cache.size() == 0


@pytest.mark.asyncio
async def test_list_page_rejects_bad_arguments(aggregator):
    with pytest.raises(ValueError):
        await aggregator.list_page(-1, 20)
    with pytest.raises(ValueError):
        await aggregator.list_page(0, 0)


# =============================================================================
# get_by_id
# =============================================================================


@pytest.mark.asyncio
@respx.mock
async def test_get_by_id(aggregator):
    route = respx.get(SEARCH_URL).mock(
        return_value=Response(200, json=envelope([make_hit("42", points=77)]))
    )

    story = await aggregator.get_by_id("42")
    again = await aggregator.get_by_id("42")

    assert story.id == "42"
    assert story.points == 77
    assert again is story
    assert route.call_count == 1
    params = route.calls.last.request.url.params
    assert params["tags"] == "story"
    assert params["filters"] == "objectID:42"


@pytest.mark.asyncio
@respx.mock
async def test_get_by_id_not_found(aggregator, cache):
    respx.get(SEARCH_URL).mock(return_value=Response(200, json=envelope([])))

    with pytest.raises(NotFoundError):
        await aggregator.get_by_id("999")
    assert cache.size() == 0


@pytest.mark.asyncio
@respx.mock
@pytest.mark.parametrize("story_id", ["1 OR objectID:2", "42,author_x", "abc", "", "\u00b2"])
async def test_get_by_id_rejects_non_numeric_ids(aggregator, cache, story_id):
    route = respx.get(SEARCH_URL).mock(
        return_value=Response(200, json=envelope([make_hit("2")]))
    )

    with pytest.raises(NotFoundError):
        await aggregator.get_by_id(story_id)
    with pytest.raises(NotFoundError):
        await aggregator.get_comments(story_id)

    assert route.call_count == 0
    assert cache.size() == 0


@pytest.mark.asyncio
@respx.mock
async def test_get_by_id_ignores_hits_for_other_ids(aggregator, cache):
    respx.get(SEARCH_URL).mock(
        side_effect=[
            Response(200, json=envelope([make_hit("2"), make_hit("1")])),
            Response(200, json=envelope([make_hit("2")])),
        ]
    )

    story = await aggregator.get_by_id("1")
    assert story.id == "1"

    aggregator.clear_cache()
    with pytest.raises(NotFoundError):
        await aggregator.get_by_id("1")
    assert cache.size() == 0


@pytest.mark.asyncio
async def test_get_by_id_timeout(cache):
    async def slow_get(*args, **kwargs):
        await asyncio.sleep(10)

    http = MagicMock()
    http.get = slow_get
    aggregator = StoryAggregator(AlgoliaClient(client=http), cache, item_deadline=0.05)

    with pytest.raises(RequestTimeoutError):
        await aggregator.get_by_id("42")
    assert cache.size() == 0


# =============================================================================
# get_comments
# =============================================================================


@pytest.mark.asyncio
@respx.mock
async def test_get_comments(aggregator):
    hits = [
        {
            "objectID": str(100 + i),
            "author": f"user{i}",
            "created_at": "2024-06-01T11:00:00.000Z",
            "comment_text": f"<p>comment {i}</p>",
            "parent_id": 42,
            "story_id": 42,
        }
        for i in range(5)
    ]
    route = respx.get(SEARCH_URL).mock(return_value=Response(200, json=envelope(hits)))

    comments = await aggregator.get_comments("42")

    assert [c.id for c in comments] == ["100", "101", "102", "103", "104"]
    assert comments[0].comment_text == "<p>comment 0</p>"
    params = route.calls.last.request.url.params
    assert params["tags"] == "comment,story_42"
    assert params["hitsPerPage"] == "5"


@pytest.mark.asyncio
@respx.mock
async def test_get_comments_empty_is_cached(aggregator):
    route = respx.get(SEARCH_URL).mock(return_value=Response(200, json=envelope([])))

    assert await aggregator.get_comments("42") == ()
    assert await aggregator.get_comments("42") == ()
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_get_comments_failure(aggregator, cache):
    respx.get(SEARCH_URL).mock(return_value=Response(502))

    with pytest.raises(FetchFailedError):
        await aggregator.get_comments("42")
    assert cache.size() == 0


# =============================================================================
# Cache management
# =============================================================================


@pytest.mark.asyncio
@respx.mock
async def test_clear_cache(aggregator):
    respx.get(SEARCH_URL).mock(return_value=Response(200, json=envelope([make_hit("42")])))

    await aggregator.get_by_id("42")
    assert aggregator.cache_size() == 1
    assert aggregator.clear_cache() == 1
    assert aggregator.cache_size() == 0
