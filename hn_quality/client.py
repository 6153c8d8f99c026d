from __future__ import annotations

import asyncio
from typing import Any, Optional, cast

import httpx

from hn_quality.constants import (
    ALGOLIA_BASE,
    HTTP_CONNECT_TIMEOUT,
    HTTP_USER_AGENT,
    ITEM_DEADLINE,
)
from hn_quality.errors import (
    FetchFailedError,
    MalformedResponseError,
    RequestTimeoutError,
)
from hn_quality.logging_config import get_logger
from hn_quality.models import AlgoliaSearchResponse

logger = get_logger(__name__)


class AlgoliaClient:
    """Read-only client for the Algolia HN Search API.

    Every request runs under a deadline. Hitting it cancels the request and
    raises RequestTimeoutError; there are no retries.
    """

    def __init__(
        self,
        base_url: str = ALGOLIA_BASE,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client: httpx.AsyncClient = client or httpx.AsyncClient(
            headers={"Accept": "application/json", "User-Agent": HTTP_USER_AGENT},
            timeout=httpx.Timeout(None, connect=HTTP_CONNECT_TIMEOUT),
        )

    async def get_json(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
        deadline: float = ITEM_DEADLINE,
    ) -> dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            async with asyncio.timeout(deadline):
                resp: httpx.Response = await self.client.get(url, params=params)
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.warning("fetch_timeout", url=url, deadline=deadline)
            raise RequestTimeoutError(
                f"Request to {path} timed out after {deadline}s", deadline=deadline
            ) from e
        except httpx.HTTPError as e:
            logger.warning("fetch_failed", url=url, error=str(e))
            raise FetchFailedError(f"Request to {path} failed: {e}") from e

        if resp.status_code != 200:
            logger.warning("fetch_failed", url=url, status=resp.status_code)
            raise FetchFailedError(
                f"Request to {path} failed with HTTP {resp.status_code}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Response from {path} is not valid JSON", status_code=resp.status_code
            ) from e
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Response from {path} is not a JSON object", status_code=resp.status_code
            )
        return data

    async def search(
        self,
        params: dict[str, Any],
        deadline: float = ITEM_DEADLINE,
        by_date: bool = False,
    ) -> AlgoliaSearchResponse:
        """Run /search (relevance) or /search_by_date and validate the envelope."""
        path = "search_by_date" if by_date else "search"
        data = await self.get_json(path, params=params, deadline=deadline)
        hits = data.get("hits")
        if not isinstance(hits, list):
            raise MalformedResponseError(f"Response from {path} has no hits list")
        return cast(AlgoliaSearchResponse, data)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> AlgoliaClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
