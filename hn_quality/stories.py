from __future__ import annotations

import asyncio
import math
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from hn_quality.cache_utils import TimedCache
from hn_quality.client import AlgoliaClient
from hn_quality.constants import (
    COMMENTS_DEADLINE,
    COMMENTS_PREVIEW_LIMIT,
    ITEM_DEADLINE,
    LIST_DEADLINE,
    POPULAR_SHARE,
    RECENT_SHARE,
    RECENT_WINDOW_HOURS,
)
from hn_quality.errors import MalformedResponseError, NotFoundError, RequestTimeoutError
from hn_quality.logging_config import get_logger
from hn_quality.models import AlgoliaSearchResponse, Comment, Story, StoryPage
from hn_quality.scoring import sort_stories_by_quality

logger = get_logger(__name__)


def dedupe_stories(stories: Iterable[Story]) -> list[Story]:
    """Drop repeated ids, keeping the first occurrence and the input order."""
    seen: set[str] = set()
    unique: list[Story] = []
    for story in stories:
        if story.id in seen:
            continue
        seen.add(story.id)
        unique.append(story)
    return unique


def _check_story_id(story_id: str) -> None:
    # Ids are spliced into Algolia filter syntax, so only plain HN ids pass.
    if not (story_id.isascii() and story_id.isdigit()):
        raise NotFoundError(f"Story {story_id!r} not found")


def _int_field(data: AlgoliaSearchResponse, key: str, default: int = 0) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedResponseError(f"Search response field {key!r} is not an integer")
    return value


class StoryAggregator:
    """Builds ranked story pages and cached detail lookups on top of Algolia.

    The cache is passed in so one instance can be shared per process (or
    created fresh per test).
    """

    def __init__(
        self,
        client: AlgoliaClient,
        cache: TimedCache[Any],
        list_deadline: float = LIST_DEADLINE,
        item_deadline: float = ITEM_DEADLINE,
        comments_deadline: float = COMMENTS_DEADLINE,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.client = client
        self.cache = cache
        self.list_deadline = list_deadline
        self.item_deadline = item_deadline
        self.comments_deadline = comments_deadline
        self._clock = clock

    async def list_page(self, page: int, page_size: int) -> StoryPage:
        if page < 0:
            raise ValueError("page must be >= 0")
        if page_size < 1:
            raise ValueError("page_size must be >= 1")

        cache_key = f"stories-{page}-{page_size}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("cache_hit", key=cache_key)
            return cached
        logger.info("cache_miss", key=cache_key)

        now = self._clock()
        recent_cutoff = int((now - timedelta(hours=RECENT_WINDOW_HOURS)).timestamp())
        popular_params: dict[str, Any] = {
            "tags": "story",
            "page": page,
            "hitsPerPage": math.ceil(page_size * POPULAR_SHARE),
        }
        recent_params: dict[str, Any] = {
            "tags": "story",
            "numericFilters": f"created_at_i>{recent_cutoff}",
            "hitsPerPage": math.ceil(page_size * RECENT_SHARE),
        }

        popular_data, recent_data = await self._fetch_both(popular_params, recent_params)

        merged = dedupe_stories(
            [Story.from_hit(h) for h in popular_data["hits"]]
            + [Story.from_hit(h) for h in recent_data["hits"]]
        )
        ranked = sort_stories_by_quality(merged, now)

        result = StoryPage(
            hits=tuple(ranked[:page_size]),
            page=_int_field(popular_data, "page", page),
            nb_pages=_int_field(popular_data, "nbPages"),
            hits_per_page=page_size,
            nb_hits=_int_field(popular_data, "nbHits") + _int_field(recent_data, "nbHits"),
        )
        self.cache.put(cache_key, result)
        logger.info(
            "page_built",
            key=cache_key,
            popular=len(popular_data["hits"]),
            recent=len(recent_data["hits"]),
            merged=len(merged),
            returned=len(result.hits),
        )
        return result

    async def _fetch_both(
        self, popular_params: dict[str, Any], recent_params: dict[str, Any]
    ) -> tuple[AlgoliaSearchResponse, AlgoliaSearchResponse]:
        """Fetch the popular and recent sets under one shared deadline.

        Both must succeed. On timeout or on either failure the other request
        is cancelled.
        """
        deadline = self.list_deadline
        tasks = [
            asyncio.create_task(
                self.client.search(popular_params, deadline=deadline)
            ),
            asyncio.create_task(
                self.client.search(recent_params, deadline=deadline, by_date=True)
            ),
        ]
        try:
            async with asyncio.timeout(deadline):
                popular_data, recent_data = await asyncio.gather(*tasks)
        except RequestTimeoutError:
            raise
        except TimeoutError as e:
            logger.warning("fetch_timeout", deadline=deadline, what="story_list")
            raise RequestTimeoutError(
                f"Story list request timed out after {deadline}s", deadline=deadline
            ) from e
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            # Reap cancelled tasks so their exceptions are not left unretrieved.
            await asyncio.gather(*tasks, return_exceptions=True)
        return popular_data, recent_data

    async def get_by_id(self, story_id: str) -> Story:
        _check_story_id(story_id)
        cache_key = f"story-{story_id}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("cache_hit", key=cache_key)
            return cached

        data = await self.client.search(
            {"tags": "story", "filters": f"objectID:{story_id}"},
            deadline=self.item_deadline,
        )
        matches = [h for h in data["hits"] if str(h.get("objectID")) == story_id]
        if not matches:
            raise NotFoundError(f"Story {story_id} not found")

        story = Story.from_hit(matches[0])
        self.cache.put(cache_key, story)
        return story

    async def get_comments(self, story_id: str) -> tuple[Comment, ...]:
        """Up to five comments for a story. No comments is not an error."""
        _check_story_id(story_id)
        cache_key = f"comments-{story_id}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("cache_hit", key=cache_key)
            return cached

        data = await self.client.search(
            {"tags": f"comment,story_{story_id}", "hitsPerPage": COMMENTS_PREVIEW_LIMIT},
            deadline=self.comments_deadline,
        )
        comments = tuple(Comment.from_hit(h) for h in data["hits"])
        self.cache.put(cache_key, comments)
        return comments

    def clear_cache(self) -> int:
        return self.cache.clear()

    def cache_size(self) -> int:
        return self.cache.size()
