"""
Game catalog.

Domain records, storage collaborators and month reports.
"""

from game_releases.catalog.models import CatalogItem, ResolvedDetail, SearchHit
from game_releases.catalog.reports import (
    CalendarDay,
    GenreStats,
    release_calendar,
    releases_for_month,
    top_genres,
)
from game_releases.catalog.store import (
    AnalyticsSink,
    GameStore,
    InMemoryAnalyticsSink,
    InMemoryGameStore,
    JsonFileGameStore,
    JsonlAnalyticsSink,
    StoreError,
)

__all__ = [
    "AnalyticsSink",
    "CalendarDay",
    "CatalogItem",
    "GameStore",
    "GenreStats",
    "InMemoryAnalyticsSink",
    "InMemoryGameStore",
    "JsonFileGameStore",
    "JsonlAnalyticsSink",
    "ResolvedDetail",
    "SearchHit",
    "StoreError",
    "release_calendar",
    "releases_for_month",
    "top_genres",
]
