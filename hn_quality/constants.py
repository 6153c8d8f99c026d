"""
Constants and configuration values for HN quality ranking.
"""

# Upstream
ALGOLIA_BASE = "https://hn.algolia.com/api/v1"
HTTP_USER_AGENT = "hn-quality/0.1 (+https://hn.algolia.com)"
HTTP_CONNECT_TIMEOUT = 2.0

# Response Cache
CACHE_TTL_SECONDS = 60.0  # 1 minute

# Deadlines (seconds)
LIST_DEADLINE = 3.0  # shared by the popular + recent fan-out
ITEM_DEADLINE = 2.0
COMMENTS_DEADLINE = 2.0

# Page Mix
DEFAULT_PAGE_SIZE = 20
POPULAR_SHARE = 0.7
RECENT_SHARE = 0.3
RECENT_WINDOW_HOURS = 72
COMMENTS_PREVIEW_LIMIT = 5

# Quality Score
POINTS_EXP = 0.8
POINTS_WEIGHT = 2.0
COMMENTS_EXP = 0.6
COMMENTS_WEIGHT = 1.5

# Recency Tiers (hours, inclusive upper bounds)
HOT_HOURS = 2
TRENDING_HOURS = 6
RECENT_HOURS = 24
AGING_HOURS = 72

# Recency Boost
HOT_BOOST = 60.0
TRENDING_BOOST = 40.0
RECENT_DECAY_SCALE = 40.0
RECENT_DECAY_HOURS = 12.0
RECENT_FLOOR = 10.0
AGING_BOOST = 10.0
AGING_DECAY_HOURS = AGING_HOURS - RECENT_HOURS

# Engagement overrides for stories older than AGING_HOURS
VIRAL_MIN_POINTS = 5000
VIRAL_MIN_COMMENTS = 2000
CLASSIC_MIN_POINTS = 1000
CLASSIC_MIN_COMMENTS = 500
