"""Tests for month reports over the catalog."""

from datetime import date, datetime, timezone

import pytest

from game_releases.catalog import (
    CatalogItem,
    InMemoryGameStore,
    release_calendar,
    releases_for_month,
    top_genres,
)
from game_releases.catalog.reports import month_bounds


def item(
    app_id: int,
    release: datetime,
    genres: set[str],
    platforms: set[str],
    followers: int = 0,
) -> CatalogItem:
    return CatalogItem(
        app_id=app_id,
        name=f"Game {app_id}",
        release_date=release,
        genres=genres,
        platforms=platforms,
        followers=followers,
    )


@pytest.fixture
def store() -> InMemoryGameStore:
    def nov(day: int) -> datetime:
        return datetime(2025, 11, day, tzinfo=timezone.utc)

    return InMemoryGameStore(
        [
            item(1, nov(1), {"Action", "Indie"}, {"Windows", "Linux"}, 1000),
            item(2, nov(1), {"Action"}, {"Windows"}, 3000),
            item(3, nov(14), {"RPG"}, {"Mac"}, 50),
            item(4, nov(30), {"Indie", "RPG"}, {"Windows"}, 0),
            item(5, datetime(2025, 12, 1, tzinfo=timezone.utc), {"Action"}, {"Windows"}, 99999),
            item(6, datetime(2025, 10, 31, 23, 59, tzinfo=timezone.utc), {"Action"}, {"Linux"}, 7),
        ]
    )


class TestMonthBounds:
    def test_bounds(self) -> None:
        start, end = month_bounds("2025-12")

        assert start == datetime(2025, 12, 1, tzinfo=timezone.utc)
        assert end.date() == date(2025, 12, 31)
        assert end.year == 2025

    @pytest.mark.parametrize("month", ["2025-13", "2025-1", "11-2025", "2025/11", "", "Nov 2025"])
    def test_invalid(self, month: str) -> None:
        with pytest.raises(ValueError, match="yyyy-MM"):
            month_bounds(month)


class TestReleasesForMonth:
    """Tests for releases_for_month."""

    @pytest.mark.asyncio
    async def test_whole_month(self, store: InMemoryGameStore) -> None:
        items = await releases_for_month(store, "2025-11")

        assert [i.app_id for i in items] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_platform_filter_case_insensitive(self, store: InMemoryGameStore) -> None:
        items = await releases_for_month(store, "2025-11", platform="linux")

        assert [i.app_id for i in items] == [1]

    @pytest.mark.asyncio
    async def test_genre_filter(self, store: InMemoryGameStore) -> None:
        items = await releases_for_month(store, "2025-11", genre="RPG")

        assert [i.app_id for i in items] == [3, 4]


class TestReleaseCalendar:
    @pytest.mark.asyncio
    async def test_daily_counts(self, store: InMemoryGameStore) -> None:
        days = await release_calendar(store, "2025-11")

        assert [(d.day, d.count) for d in days] == [
            (date(2025, 11, 1), 2),
            (date(2025, 11, 14), 1),
            (date(2025, 11, 30), 1),
        ]

    @pytest.mark.asyncio
    async def test_empty_month(self, store: InMemoryGameStore) -> None:
        assert await release_calendar(store, "2026-02") == []


class TestTopGenres:
    @pytest.mark.asyncio
    async def test_ranking(self, store: InMemoryGameStore) -> None:
        stats = await top_genres(store, "2025-11")

        assert [(s.genre, s.games_count, s.avg_followers) for s in stats] == [
            ("Action", 2, 2000.0),
            ("Indie", 2, 500.0),
            ("RPG", 2, 25.0),
        ]

    @pytest.mark.asyncio
    async def test_limit(self, store: InMemoryGameStore) -> None:
        stats = await top_genres(store, "2025-11", limit=1)

        assert [s.genre for s in stats] == ["Action"]

    @pytest.mark.asyncio
    async def test_invalid_limit(self, store: InMemoryGameStore) -> None:
        with pytest.raises(ValueError):
            await top_genres(store, "2025-11", limit=0)
