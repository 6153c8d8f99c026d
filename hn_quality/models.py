"""Typed data models for HN quality ranking."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Optional, TypedDict

from hn_quality.errors import MalformedResponseError


class AlgoliaStoryHit(TypedDict, total=False):
    """A story hit as returned by the Algolia search endpoints."""

    objectID: str
    title: str
    url: Optional[str]
    author: str
    created_at: str
    created_at_i: int
    points: Optional[int]
    num_comments: Optional[int]
    story_text: Optional[str]
    _tags: list[str]


class AlgoliaCommentHit(TypedDict, total=False):
    objectID: str
    author: str
    created_at: str
    created_at_i: int
    comment_text: str
    parent_id: int
    story_id: int


class AlgoliaSearchResponse(TypedDict, total=False):
    hits: list[dict]
    page: int
    nbPages: int
    hitsPerPage: int
    nbHits: int


class StoryDict(TypedDict):
    """Serialized Story payload for the JSON surface."""

    id: str
    title: str
    url: Optional[str]
    author: str
    created_at: str
    points: int
    num_comments: int
    story_text: Optional[str]
    tags: list[str]


class CommentDict(TypedDict):
    id: str
    author: str
    created_at: str
    comment_text: str
    parent_id: Optional[int]
    story_id: Optional[int]


def _parse_created_at(hit: dict) -> datetime:
    """Read the creation instant from an Algolia hit as an aware UTC datetime."""
    raw = hit.get("created_at")
    if isinstance(raw, str) and raw:
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is None:
                return parsed.replace(tzinfo=UTC)
            return parsed.astimezone(UTC)

    epoch = hit.get("created_at_i")
    if isinstance(epoch, (int, float)) and not isinstance(epoch, bool):
        return datetime.fromtimestamp(epoch, tz=UTC)

    raise MalformedResponseError(
        f"Hit {hit.get('objectID')!r} has no usable creation time"
    )


def _object_id(hit: dict) -> str:
    oid = hit.get("objectID")
    if oid is None or oid == "":
        raise MalformedResponseError("Hit is missing objectID")
    return str(oid)


def _optional_int(value: object) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


@dataclass(frozen=True)
class Story:
    """A Hacker News story snapshot as returned by the search API."""

    id: str
    title: str
    url: Optional[str]
    author: str
    created_at: datetime
    points: Optional[int] = None
    num_comments: Optional[int] = None
    story_text: Optional[str] = None  # untrusted HTML, never rendered here
    tags: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_hit(cls, hit: AlgoliaStoryHit | dict) -> Story:
        """Create Story from an Algolia search hit."""
        if not isinstance(hit, dict):
            raise MalformedResponseError(f"Expected a story object, got {type(hit).__name__}")
        return cls(
            id=_object_id(hit),
            title=str(hit.get("title") or ""),
            url=hit.get("url") or None,
            author=str(hit.get("author") or ""),
            created_at=_parse_created_at(hit),
            points=_optional_int(hit.get("points")),
            num_comments=_optional_int(hit.get("num_comments")),
            story_text=hit.get("story_text") or None,
            tags=tuple(hit.get("_tags") or ()),
        )

    def to_dict(self) -> StoryDict:
        """Serialize for the JSON surface. Absent counts are shown as 0."""
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "author": self.author,
            "created_at": self.created_at.isoformat(),
            "points": self.points or 0,
            "num_comments": self.num_comments or 0,
            "story_text": self.story_text,
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class Comment:
    """A single comment hit. Parent and story ids are lookup references only."""

    id: str
    author: str
    created_at: datetime
    comment_text: str
    parent_id: Optional[int] = None
    story_id: Optional[int] = None

    @classmethod
    def from_hit(cls, hit: AlgoliaCommentHit | dict) -> Comment:
        if not isinstance(hit, dict):
            raise MalformedResponseError(f"Expected a comment object, got {type(hit).__name__}")
        return cls(
            id=_object_id(hit),
            author=str(hit.get("author") or ""),
            created_at=_parse_created_at(hit),
            comment_text=str(hit.get("comment_text") or ""),
            parent_id=_optional_int(hit.get("parent_id")),
            story_id=_optional_int(hit.get("story_id")),
        )

    def to_dict(self) -> CommentDict:
        return {
            "id": self.id,
            "author": self.author,
            "created_at": self.created_at.isoformat(),
            "comment_text": self.comment_text,
            "parent_id": self.parent_id,
            "story_id": self.story_id,
        }


@dataclass(frozen=True)
class ScoreBreakdown:
    points: float
    comments: float
    recency: float


@dataclass(frozen=True)
class QualityScore:
    """Quality score evaluated at one instant. Not persisted."""

    total: float
    breakdown: ScoreBreakdown

    def to_dict(self) -> dict[str, object]:
        return {
            "score": self.total,
            "breakdown": {
                "points": self.breakdown.points,
                "comments": self.breakdown.comments,
                "recency": self.breakdown.recency,
            },
        }


class Status(StrEnum):
    HOT = "hot"
    TRENDING = "trending"
    RECENT = "recent"
    AGING = "aging"
    CLASSIC = "classic"
    VIRAL = "viral"
    ARCHIVE = "archive"


@dataclass(frozen=True)
class RecencyStatus:
    """Freshness classification for display."""

    status: Status
    label: str
    icon: str
    color_class: str
    description: str
    priority: int  # lower = more prominent

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status.value,
            "label": self.label,
            "icon": self.icon,
            "color": self.color_class,
            "description": self.description,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class StoryPage:
    """One ranked page of stories plus paging metadata."""

    hits: tuple[Story, ...]
    page: int
    nb_pages: int
    hits_per_page: int
    nb_hits: int
