"""
Quality score for Hacker News stories.

Score = (points^0.8 * 2) + (comments^0.6 * 1.5) + recency boost

The recency boost is tiered by age:
  * up to 2 hours: 60 (hot)
  * up to 6 hours: 40 (trending)
  * up to 24 hours: exponential decay, 40 * e^(-(h-6)/12) + 10
  * up to 72 hours: linear decay from 10 to 0
  * older: 0

The tiers are not continuous. Just past 6 hours the boost jumps from 40 to
about 50, and just past 24 hours it drops from about 18.9 to 10.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Optional

from hn_quality.constants import (
    AGING_BOOST,
    AGING_DECAY_HOURS,
    AGING_HOURS,
    COMMENTS_EXP,
    COMMENTS_WEIGHT,
    HOT_BOOST,
    HOT_HOURS,
    POINTS_EXP,
    POINTS_WEIGHT,
    RECENT_DECAY_HOURS,
    RECENT_DECAY_SCALE,
    RECENT_FLOOR,
    RECENT_HOURS,
    TRENDING_BOOST,
    TRENDING_HOURS,
)
from hn_quality.models import QualityScore, ScoreBreakdown, Story


def round1(value: float) -> float:
    """Round half up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def hours_since(created_at: datetime, now: Optional[datetime] = None) -> float:
    """Age in hours at `now`. Negative when the clock is behind `created_at`."""
    if now is None:
        now = datetime.now(UTC)
    return (now - created_at).total_seconds() / 3600.0


def points_component(points: Optional[int]) -> float:
    return max(points or 0, 1) ** POINTS_EXP * POINTS_WEIGHT


def comments_component(num_comments: Optional[int]) -> float:
    return max(num_comments or 0, 1) ** COMMENTS_EXP * COMMENTS_WEIGHT


def recency_component(hours_ago: float) -> float:
    hours_ago = max(hours_ago, 0.0)
    if hours_ago <= HOT_HOURS:
        return HOT_BOOST
    if hours_ago <= TRENDING_HOURS:
        return TRENDING_BOOST
    if hours_ago <= RECENT_HOURS:
        return (
            RECENT_DECAY_SCALE * math.exp(-(hours_ago - TRENDING_HOURS) / RECENT_DECAY_HOURS)
            + RECENT_FLOOR
        )
    if hours_ago <= AGING_HOURS:
        return max(0.0, AGING_BOOST * (1 - (hours_ago - RECENT_HOURS) / AGING_DECAY_HOURS))
    return 0.0


def quality_score(
    points: Optional[int], num_comments: Optional[int], hours_ago: float
) -> QualityScore:
    pts = points_component(points)
    cmt = comments_component(num_comments)
    rec = recency_component(hours_ago)
    return QualityScore(
        total=round1(pts + cmt + rec),
        breakdown=ScoreBreakdown(
            points=round1(pts), comments=round1(cmt), recency=round1(rec)
        ),
    )


def calculate_quality_score(
    story: Story, now: Optional[datetime] = None
) -> QualityScore:
    return quality_score(
        story.points, story.num_comments, hours_since(story.created_at, now)
    )


def sort_stories_by_quality(
    stories: Iterable[Story], now: Optional[datetime] = None
) -> list[Story]:
    """Sort descending by quality score, all stories scored at the same instant.

    The sort is stable, so ties keep their input order.
    """
    if now is None:
        now = datetime.now(UTC)
    scored = [(calculate_quality_score(s, now).total, s) for s in stories]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [s for _, s in scored]
