"""Integration tests for the search crawler with mocked HTTP responses."""

from collections.abc import Callable
from datetime import datetime, timezone

import httpx
import pytest
import respx

from game_releases.config import Settings
from game_releases.ingestion.extractors import CrawlStopReason, SearchCrawler

NOV_START = datetime(2025, 11, 1, tzinfo=timezone.utc)
NOV_END = datetime(2025, 11, 30, 23, 59, 59, tzinfo=timezone.utc)


def search_page(*rows: tuple[int, str]) -> str:
    """Minimal search results page with the given (app_id, release text) rows."""
    anchors = "".join(
        f'<a class="search_result_row" data-ds-appid="{app_id}" '
        f'href="https://store.steampowered.com/app/{app_id}/">'
        f'<div class="col search_released">{text}</div></a>'
        for app_id, text in rows
    )
    return f'<html><body><div id="search_resultsRows">{anchors}</div></body></html>'


def mock_pages(settings: Settings, pages: dict[int, httpx.Response]) -> respx.Route:
    """Route every search page request to ``pages`` by its page number."""
    base = settings.store.search_url.split("?")[0]

    def respond(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        return pages.get(page, httpx.Response(200, text=search_page()))

    return respx.get(url__startswith=base).mock(side_effect=respond)


class TestSearchCrawler:
    """Tests for SearchCrawler pagination and stop conditions."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_stops_when_window_passed(
        self,
        settings: Settings,
        load_html: Callable[[str], str],
    ) -> None:
        route = mock_pages(
            settings,
            {
                1: httpx.Response(200, text=load_html("search_page.html")),
                2: httpx.Response(200, text=search_page((60, "Oct 2025"), (70, "Sep 2025"))),
                3: httpx.Response(200, text=search_page((80, "Nov 2025"))),
            },
        )

        async with SearchCrawler(settings=settings) as crawler:
            hits = await crawler.collect(NOV_START, NOV_END)

        assert [h.app_id for h in hits] == [10, 20]
        assert hits[0].release_date == NOV_START
        assert hits[0].raw_date_text == "Nov 2025"
        assert hits[1].release_date == datetime(2025, 11, 15, tzinfo=timezone.utc)
        assert crawler.stop_reason == CrawlStopReason.WINDOW_PASSED
        assert crawler.pages_fetched == 2
        assert route.call_count == 2

    @respx.mock
    @pytest.mark.asyncio
    async def test_window_before_all_rows(
        self,
        settings: Settings,
        load_html: Callable[[str], str],
    ) -> None:
        """A window wholly before every row stops after the first page."""
        route = mock_pages(settings, {1: httpx.Response(200, text=load_html("search_page.html"))})

        async with SearchCrawler(settings=settings) as crawler:
            hits = await crawler.collect(
                datetime(2020, 1, 1, tzinfo=timezone.utc),
                datetime(2020, 12, 31, tzinfo=timezone.utc),
            )

        assert hits == []
        assert crawler.stop_reason == CrawlStopReason.WINDOW_PASSED
        assert route.call_count == 1

    @respx.mock
    @pytest.mark.asyncio
    async def test_no_rows(self, settings: Settings, load_html: Callable[[str], str]) -> None:
        """An empty first page is a normal "nothing found" outcome."""
        mock_pages(settings, {1: httpx.Response(200, text=load_html("search_page_empty.html"))})

        async with SearchCrawler(settings=settings) as crawler:
            hits = await crawler.collect(NOV_START, NOV_END)

        assert hits == []
        assert crawler.stop_reason == CrawlStopReason.NO_ROWS

    @respx.mock
    @pytest.mark.asyncio
    async def test_page_limit(self, settings: Settings) -> None:
        route = mock_pages(
            settings,
            {page: httpx.Response(200, text=search_page((page * 100, "Nov 2025"))) for page in range(1, 6)},
        )

        async with SearchCrawler(settings=settings, max_pages=2) as crawler:
            hits = await crawler.collect(NOV_START, NOV_END)

        assert [h.app_id for h in hits] == [100, 200]
        assert crawler.stop_reason == CrawlStopReason.PAGE_LIMIT
        assert route.call_count == 2

    @respx.mock
    @pytest.mark.asyncio
    async def test_duplicates_across_pages(self, settings: Settings) -> None:
        """Results shifting between pages must not yield an app twice."""
        mock_pages(
            settings,
            {
                1: httpx.Response(200, text=search_page((10, "Nov 2025"), (20, "Nov 2025"))),
                2: httpx.Response(200, text=search_page((20, "Nov 2025"), (30, "Nov 2025"))),
            },
        )

        async with SearchCrawler(settings=settings) as crawler:
            hits = await crawler.collect(NOV_START, NOV_END)

        assert [h.app_id for h in hits] == [10, 20, 30]

    @respx.mock
    @pytest.mark.asyncio
    async def test_fetch_failure_ends_crawl(self, settings: Settings) -> None:
        route = mock_pages(settings, {1: httpx.Response(502)})

        async with SearchCrawler(settings=settings) as crawler:
            hits = await crawler.collect(NOV_START, NOV_END)

        assert hits == []
        assert crawler.stop_reason == CrawlStopReason.FETCH_FAILED
        assert route.call_count == settings.retry.max_attempts

    @respx.mock
    @pytest.mark.asyncio
    async def test_lazy_pagination(self, settings: Settings) -> None:
        """Consumers that stop early do not trigger further page fetches."""
        route = mock_pages(
            settings,
            {page: httpx.Response(200, text=search_page((page, "Nov 2025"))) for page in range(1, 6)},
        )

        async with SearchCrawler(settings=settings) as crawler:
            async for hit in crawler.crawl(NOV_START, NOV_END):
                assert hit.app_id == 1
                break

        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_inverted_window(self, settings: Settings) -> None:
        async with SearchCrawler(settings=settings) as crawler:
            with pytest.raises(ValueError):
                await crawler.collect(NOV_END, NOV_START)
