"""
Read-side reports over the catalog.

All reports take a calendar month in ``yyyy-MM`` form and read
through ``GameStore.query_by_date_range``.
"""

import re
from collections import Counter, defaultdict
from datetime import date, datetime, timedelta, timezone

from pydantic import BaseModel, Field

from game_releases.catalog.models import CatalogItem
from game_releases.catalog.store import GameStore

_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


class CalendarDay(BaseModel):
    """Number of releases on one day."""

    day: date
    count: int = Field(ge=0)


class GenreStats(BaseModel):
    """Release count and average popularity for one genre."""

    genre: str
    games_count: int = Field(ge=0)
    avg_followers: float = Field(ge=0)


def month_bounds(month: str) -> tuple[datetime, datetime]:
    """
    Inclusive UTC bounds of a ``yyyy-MM`` month.

    Raises:
        ValueError: If ``month`` is not a valid ``yyyy-MM`` string
    """
    match = _MONTH_PATTERN.match(month.strip())
    if not match:
        raise ValueError(f"month must be in format yyyy-MM, got {month!r}")

    year, month_number = int(match.group(1)), int(match.group(2))
    if not 1 <= month_number <= 12:
        raise ValueError(f"month must be in format yyyy-MM, got {month!r}")

    start = datetime(year, month_number, 1, tzinfo=timezone.utc)
    if month_number == 12:
        next_start = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        next_start = datetime(year, month_number + 1, 1, tzinfo=timezone.utc)
    return start, next_start - timedelta(microseconds=1)


def _contains(values: set[str], wanted: str) -> bool:
    wanted = wanted.casefold()
    return any(v.casefold() == wanted for v in values)


async def releases_for_month(
    store: GameStore,
    month: str,
    platform: str | None = None,
    genre: str | None = None,
) -> list[CatalogItem]:
    """Games releasing in ``month``, optionally filtered (case-insensitive)."""
    start, end = month_bounds(month)
    items = await store.query_by_date_range(start, end)
    if platform:
        items = [i for i in items if _contains(i.platforms, platform)]
    if genre:
        items = [i for i in items if _contains(i.genres, genre)]
    return items


async def release_calendar(store: GameStore, month: str) -> list[CalendarDay]:
    """Per-day release counts for ``month``, ordered by date."""
    start, end = month_bounds(month)
    items = await store.query_by_date_range(start, end)
    counts = Counter(i.release_date.date() for i in items if i.release_date is not None)
    return [CalendarDay(day=day, count=counts[day]) for day in sorted(counts)]


async def top_genres(store: GameStore, month: str, limit: int = 5) -> list[GenreStats]:
    """
    Most common genres among ``month``'s releases.

    Ordered by game count, then average followers, then name.
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")

    start, end = month_bounds(month)
    items = await store.query_by_date_range(start, end)

    followers_by_genre: dict[str, list[int]] = defaultdict(list)
    for item in items:
        for genre in item.genres:
            followers_by_genre[genre].append(item.followers)

    stats = [
        GenreStats(
            genre=genre,
            games_count=len(followers),
            avg_followers=round(sum(followers) / len(followers), 2),
        )
        for genre, followers in followers_by_genre.items()
    ]
    stats.sort(key=lambda s: (-s.games_count, -s.avg_followers, s.genre))
    return stats[:limit]
