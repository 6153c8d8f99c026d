"""Typed failures raised by the Algolia fetch layer."""

from __future__ import annotations


class HNAPIError(RuntimeError):
    """Base class for every failure surfaced by the fetch layer."""


class RequestTimeoutError(HNAPIError, TimeoutError):
    """Raised when a request (or a group of requests) exceeds its deadline."""

    def __init__(self, message: str, deadline: float | None = None) -> None:
        super().__init__(message)
        self.deadline = deadline


class FetchFailedError(HNAPIError):
    """Raised for transport errors and non-200 upstream responses."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(FetchFailedError):
    """Raised when the upstream payload is missing fields we rely on."""


class NotFoundError(HNAPIError):
    """Raised when a lookup by identifier matches nothing upstream."""
