from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional

from hn_quality.constants import (
    AGING_HOURS,
    CLASSIC_MIN_COMMENTS,
    CLASSIC_MIN_POINTS,
    HOT_HOURS,
    RECENT_HOURS,
    TRENDING_HOURS,
    VIRAL_MIN_COMMENTS,
    VIRAL_MIN_POINTS,
)
from hn_quality.models import RecencyStatus, Status, Story
from hn_quality.scoring import hours_since

STATUSES: dict[Status, RecencyStatus] = {
    Status.HOT: RecencyStatus(
        status=Status.HOT,
        label="HOT",
        icon="🔥",
        color_class="text-red-600 bg-red-50 border-red-300",
        description="Breaking news! Posted within the last 2 hours",
        priority=0,
    ),
    Status.TRENDING: RecencyStatus(
        status=Status.TRENDING,
        label="TRENDING",
        icon="📈",
        color_class="text-orange-600 bg-orange-50 border-orange-300",
        description="Trending story from the last 6 hours",
        priority=1,
    ),
    Status.RECENT: RecencyStatus(
        status=Status.RECENT,
        label="RECENT",
        icon="⏰",
        color_class="text-blue-600 bg-blue-50 border-blue-300",
        description="Fresh story from today",
        priority=3,
    ),
    Status.AGING: RecencyStatus(
        status=Status.AGING,
        label="AGING",
        icon="📰",
        color_class="text-gray-600 bg-gray-50 border-gray-200",
        description="Story from the last few days",
        priority=4,
    ),
    Status.VIRAL: RecencyStatus(
        status=Status.VIRAL,
        label="VIRAL",
        icon="🚀",
        color_class="text-purple-600 bg-purple-50 border-purple-300",
        description="Legendary viral story with massive engagement",
        priority=1,
    ),
    Status.CLASSIC: RecencyStatus(
        status=Status.CLASSIC,
        label="CLASSIC",
        icon="⭐",
        color_class="text-yellow-600 bg-yellow-50 border-yellow-300",
        description="Classic story with significant historical engagement",
        priority=2,
    ),
    Status.ARCHIVE: RecencyStatus(
        status=Status.ARCHIVE,
        label="ARCHIVE",
        icon="📜",
        color_class="text-gray-500 bg-gray-50 border-gray-200",
        description="Archived story from more than 3 days ago",
        priority=6,
    ),
}


def classify_recency(hours_ago: float, points: int, num_comments: int) -> RecencyStatus:
    """
    Map a story's age and engagement to one of seven statuses.

    Past the 72-hour mark engagement decides (viral, classic, archive);
    before it only age does. The first matching rule wins.
    """
    if hours_ago > AGING_HOURS:
        if points >= VIRAL_MIN_POINTS or num_comments >= VIRAL_MIN_COMMENTS:
            return STATUSES[Status.VIRAL]
        if points >= CLASSIC_MIN_POINTS or num_comments >= CLASSIC_MIN_COMMENTS:
            return STATUSES[Status.CLASSIC]
        return STATUSES[Status.ARCHIVE]

    if hours_ago <= HOT_HOURS:
        return STATUSES[Status.HOT]
    if hours_ago <= TRENDING_HOURS:
        return STATUSES[Status.TRENDING]
    if hours_ago <= RECENT_HOURS:
        return STATUSES[Status.RECENT]
    return STATUSES[Status.AGING]


def get_recency_status(story: Story, now: Optional[datetime] = None) -> RecencyStatus:
    return classify_recency(
        hours_since(story.created_at, now),
        story.points or 0,
        story.num_comments or 0,
    )


def format_time_ago(created_at: datetime, now: Optional[datetime] = None) -> str:
    if now is None:
        now = datetime.now(UTC)
    elapsed = int((now - created_at).total_seconds())

    days = elapsed // 86400
    hours = elapsed // 3600
    minutes = elapsed // 60

    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes > 0:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    return "Just now"
