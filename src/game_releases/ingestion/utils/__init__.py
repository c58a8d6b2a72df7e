"""
Utility modules for ingestion.

Provides request pacing and the shared follower count cache.
"""

from game_releases.ingestion.utils.followers_cache import (
    FollowersCache,
    FollowersCacheEntry,
)
from game_releases.ingestion.utils.rate_limiter import (
    RateLimiter,
    RateLimiterConfig,
)

__all__ = [
    "FollowersCache",
    "FollowersCacheEntry",
    "RateLimiter",
    "RateLimiterConfig",
]
