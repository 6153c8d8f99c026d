from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from hn_quality.cache_utils import TimedCache
from hn_quality.client import AlgoliaClient
from hn_quality.config import get_settings
from hn_quality.errors import HNAPIError, NotFoundError, RequestTimeoutError
from hn_quality.logging_config import configure_logging, get_logger
from hn_quality.models import Story
from hn_quality.recency import format_time_ago, get_recency_status
from hn_quality.scoring import calculate_quality_score
from hn_quality.stories import StoryAggregator
from hn_quality.url_utils import extract_domain

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level)
    client = AlgoliaClient(base_url=settings.base_url)
    app.state.settings = settings
    app.state.aggregator = StoryAggregator(
        client,
        TimedCache(settings.cache_ttl),
        list_deadline=settings.list_deadline,
        item_deadline=settings.item_deadline,
        comments_deadline=settings.comments_deadline,
    )
    try:
        yield
    finally:
        await client.close()


app = FastAPI(title="HN Quality API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "DELETE"],
    allow_headers=["*"],
)


class StoriesResponse(BaseModel):
    stories: list[dict[str, Any]]
    currentPage: int
    totalPages: int


class ItemResponse(BaseModel):
    story: dict[str, Any]
    qualityScore: dict[str, Any]
    recency: dict[str, Any]
    comments: list[dict[str, Any]]


def get_aggregator(request: Request) -> StoryAggregator:
    return request.app.state.aggregator


def get_page_size(request: Request) -> int:
    return request.app.state.settings.page_size


def _to_http_error(e: HNAPIError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, RequestTimeoutError):
        return HTTPException(
            status_code=504, detail="Request timeout - please try again"
        )
    return HTTPException(status_code=502, detail=f"Failed to fetch stories: {e}")


def _present(story: Story, now: datetime) -> dict[str, Any]:
    out: dict[str, Any] = dict(story.to_dict())
    out["qualityScore"] = calculate_quality_score(story, now).to_dict()
    out["recency"] = get_recency_status(story, now).to_dict()
    out["domain"] = extract_domain(story.url)
    out["timeAgo"] = format_time_ago(story.created_at, now)
    return out


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/api/stories", response_model=StoriesResponse)
async def stories_route(
    page: str = "1",
    aggregator: StoryAggregator = Depends(get_aggregator),
    page_size: int = Depends(get_page_size),
):
    # Pages are 1-indexed here and 0-indexed upstream.
    try:
        page_number = max(int(page), 1)
    except ValueError:
        page_number = 1

    try:
        data = await aggregator.list_page(page_number - 1, page_size)
    except HNAPIError as e:
        logger.error("stories_failed", page=page_number, error=str(e))
        raise _to_http_error(e) from e

    now = datetime.now(UTC)
    return {
        "stories": [_present(s, now) for s in data.hits],
        "currentPage": page_number,
        "totalPages": data.nb_pages,
    }


@app.get("/api/items/{story_id}", response_model=ItemResponse)
async def item_route(
    story_id: str, aggregator: StoryAggregator = Depends(get_aggregator)
):
    try:
        story = await aggregator.get_by_id(story_id)
        comments = await aggregator.get_comments(story_id)
    except HNAPIError as e:
        logger.error("item_failed", story_id=story_id, error=str(e))
        raise _to_http_error(e) from e

    presented = _present(story, datetime.now(UTC))
    return {
        "story": presented,
        "qualityScore": presented["qualityScore"],
        "recency": presented["recency"],
        "comments": [c.to_dict() for c in comments],
    }


@app.delete("/api/cache")
def clear_cache_route(aggregator: StoryAggregator = Depends(get_aggregator)):
    return {"cleared": aggregator.clear_cache()}
