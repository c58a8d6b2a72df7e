"""
Storefront extractors.

The search crawler, app details resolver and followers resolver
share a common base with retry logic, rate limiting and structured
logging.
"""

from game_releases.ingestion.extractors.base import (
    APIError,
    BaseExtractor,
    ExtractionError,
    ExtractionResult,
    RateLimitError,
    TransientError,
    ValidationError,
)
from game_releases.ingestion.extractors.details import DetailResolver
from game_releases.ingestion.extractors.followers import (
    BrowserFollowersStrategy,
    FollowersResolver,
    FollowersStrategy,
    HtmlFollowersStrategy,
    create_followers_strategy,
)
from game_releases.ingestion.extractors.search import CrawlStopReason, SearchCrawler

__all__ = [
    # Base classes and errors
    "APIError",
    "BaseExtractor",
    "ExtractionError",
    "ExtractionResult",
    "RateLimitError",
    "TransientError",
    "ValidationError",
    # Extractors
    "BrowserFollowersStrategy",
    "CrawlStopReason",
    "DetailResolver",
    "FollowersResolver",
    "FollowersStrategy",
    "HtmlFollowersStrategy",
    "SearchCrawler",
    "create_followers_strategy",
]
