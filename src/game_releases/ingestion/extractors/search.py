"""
Steam Store search crawler.

Walks the "upcoming" search results page by page and yields the
apps whose release date falls inside a window. Results are sorted
by release date, so the first page with rows but no in-window hit
means the crawl has moved past the window.
"""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from bs4 import BeautifulSoup

from game_releases.catalog.models import SearchHit
from game_releases.ingestion.dates import parse_release_date
from game_releases.ingestion.extractors.base import BaseExtractor, ExtractionError


class CrawlStopReason(str, Enum):
    """Why a crawl stopped paginating."""

    WINDOW_PASSED = "window_passed"  # rows present, none in window
    NO_ROWS = "no_rows"  # end of results or markup mismatch
    PAGE_LIMIT = "page_limit"
    FETCH_FAILED = "fetch_failed"


@dataclass(frozen=True)
class SearchRow:
    """One parsed search result row."""

    app_id: int | None
    release_text: str


def parse_search_rows(html: str) -> list[SearchRow]:
    """
    Extract (app id, release text) pairs from a search results page.

    ``data-ds-appid`` holds a comma separated list for bundles; the
    first id is used. Rows without a numeric id get ``app_id=None``.
    """
    soup = BeautifulSoup(html, "html.parser")
    rows: list[SearchRow] = []
    for anchor in soup.select("a.search_result_row"):
        raw_ids = str(anchor.get("data-ds-appid") or "")
        first_id = raw_ids.split(",")[0].strip()
        app_id = int(first_id) if first_id.isdigit() and int(first_id) > 0 else None

        released = anchor.select_one("div.search_released")
        release_text = released.get_text(" ", strip=True) if released else ""
        rows.append(SearchRow(app_id=app_id, release_text=release_text))
    return rows


class SearchCrawler(BaseExtractor):
    """
    Crawler for the Steam Store upcoming-games search.

    Pages are fetched sequentially; each fetch waits for the
    crawler's rate limiter and is followed by a politeness delay.

    Example:
        >>> async with SearchCrawler(rate_limiter=limiter) as crawler:
        ...     async for hit in crawler.crawl(start, end):
        ...         print(hit.app_id, hit.release_date)
        ...     print(crawler.stop_reason)
    """

    def __init__(
        self,
        *,
        max_pages: int | None = None,
        page_delay_seconds: float | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the crawler.

        Args:
            max_pages: Page cap per crawl (uses settings if None)
            page_delay_seconds: Pause after each page (uses settings if None)
            **kwargs: Arguments passed to BaseExtractor
        """
        super().__init__(**kwargs)
        crawl = self._settings.crawl
        self._max_pages = max_pages if max_pages is not None else crawl.max_pages
        self._page_delay = (
            page_delay_seconds if page_delay_seconds is not None else crawl.page_delay_seconds
        )
        self._year_window = crawl.year_window
        self.stop_reason: CrawlStopReason | None = None
        self.pages_fetched = 0

    @property
    def source_name(self) -> str:
        """Return source identifier."""
        return "steam_store_search"

    def _build_url(self, page: int) -> str:
        return self._settings.store.search_url.format(page=page)

    async def _fetch_page(self, page: int) -> str:
        response = await self._make_request("GET", self._build_url(page))
        self.pages_fetched += 1
        if self._page_delay > 0:
            await asyncio.sleep(self._page_delay)
        return response.text

    async def crawl(self, start: datetime, end: datetime) -> AsyncIterator[SearchHit]:
        """
        Yield apps releasing within ``[start, end]``, page by page.

        Rows without an id or with an unknown release date are
        skipped. Fetch failures end the crawl; they are logged and
        recorded in ``stop_reason``, never raised.

        Args:
            start: Window start (inclusive, timezone-aware)
            end: Window end (inclusive, timezone-aware)
        """
        if start > end:
            raise ValueError("crawl window start must not be after its end")

        self.stop_reason = None
        self.pages_fetched = 0
        seen: set[int] = set()
        total_hits = 0

        self._logger.info(
            "Starting search crawl",
            window_start=start.isoformat(),
            window_end=end.isoformat(),
            max_pages=self._max_pages,
        )

        for page in range(1, self._max_pages + 1):
            try:
                html = await self._fetch_page(page)
            except ExtractionError as e:
                self._logger.error("Search page fetch failed", page=page, error=str(e))
                self.stop_reason = CrawlStopReason.FETCH_FAILED
                break

            rows = parse_search_rows(html)
            if not rows:
                self._logger.info(
                    "Search page has no result rows",
                    page=page,
                    nothing_found=total_hits == 0,
                )
                self.stop_reason = CrawlStopReason.NO_ROWS
                break

            page_hits = 0
            for row in rows:
                if row.app_id is None:
                    continue
                release_date = parse_release_date(row.release_text, year_window=self._year_window)
                if release_date is None:
                    continue
                if not start <= release_date <= end:
                    continue
                page_hits += 1
                if row.app_id in seen:
                    continue
                seen.add(row.app_id)
                total_hits += 1
                yield SearchHit(
                    app_id=row.app_id,
                    release_date=release_date,
                    raw_date_text=row.release_text,
                )

            self._logger.debug("Processed search page", page=page, rows=len(rows), hits=page_hits)

            if page_hits == 0:
                self._logger.info("Crawl moved past the date window", page=page)
                self.stop_reason = CrawlStopReason.WINDOW_PASSED
                break
        else:
            self.stop_reason = CrawlStopReason.PAGE_LIMIT

        self._logger.info(
            "Search crawl complete",
            hits=total_hits,
            pages=self.pages_fetched,
            stop_reason=self.stop_reason.value if self.stop_reason else None,
        )

    async def collect(self, start: datetime, end: datetime) -> list[SearchHit]:
        """Run ``crawl`` to completion and return the hits in discovery order."""
        return [hit async for hit in self.crawl(start, end)]
