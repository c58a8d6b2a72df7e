"""
Follower count resolution.

Popularity is only available by scraping: the Steam Community
group search shows a member count in the row of the app's group.
The count is pulled out by a pluggable strategy:

- ``HtmlFollowersStrategy``: plain HTTP, regex first, DOM fallback
- ``BrowserFollowersStrategy``: headless Chromium via Playwright

``FollowersResolver`` wraps a strategy with the shared cache and a
rate limiter. A failed lookup yields None (unknown), never 0.
"""

import asyncio
import re
from collections.abc import Iterable
from typing import Any, Protocol

from bs4 import BeautifulSoup

from game_releases.config import Settings, get_settings
from game_releases.ingestion.extractors.base import BaseExtractor, ExtractionError
from game_releases.ingestion.utils.followers_cache import FollowersCache
from game_releases.ingestion.utils.rate_limiter import RateLimiter
from game_releases.logger import get_logger

# "12,345 Members", "1 234 followers", "98.765 members"
_COUNT_PATTERN = re.compile(
    r"(\d{1,3}(?:[,.\s ]\d{3})+|\d+)\s*(?:</span>\s*)?(?:members|followers)\b",
    re.IGNORECASE,
)
_NUMBER_PATTERN = re.compile(r"\d{1,3}(?:[,.\s ]\d{3})+|\d+")
_ROW_START = re.compile(r"<div\b[^>]*\bclass=[\"'][^\"']*\bsearch_row\b", re.IGNORECASE)
_HREF_PATTERN = re.compile(r"href=[\"']([^\"']*)[\"']", re.IGNORECASE)


def links_to_app(href: str, app_id: int) -> bool:
    """True if ``href`` has ``app_id`` as a whole path segment."""
    return re.search(rf"/{app_id}(?:[/?#]|$)", href) is not None


def parse_count(text: str) -> int | None:
    """
    Parse a displayed count, tolerating group separators.

    Returns:
        int | None: The number, None if ``text`` holds no digits
    """
    match = _NUMBER_PATTERN.search(text.strip())
    if not match:
        return None
    digits = re.sub(r"\D", "", match.group(0))
    return int(digits) if digits else None


def split_search_rows(html: str) -> list[str]:
    """Raw markup of each ``div.search_row``, up to the next row."""
    starts = [m.start() for m in _ROW_START.finditer(html)]
    return [html[a:b] for a, b in zip(starts, starts[1:] + [len(html)])]


def extract_count_by_pattern(html: str, app_id: int) -> int | None:
    """Fast path: "<n> Members" / "<n> followers" inside the row linking to ``app_id``."""
    for row in split_search_rows(html):
        if not any(links_to_app(href, app_id) for href in _HREF_PATTERN.findall(row)):
            continue
        match = _COUNT_PATTERN.search(row)
        if match:
            return parse_count(match.group(1))
    return None


def extract_count_from_dom(html: str, app_id: int) -> int | None:
    """
    Slow path: locate the search row linking to ``app_id`` and read its count.

    Tries the persona info span first, then any number in the row text.
    """
    soup = BeautifulSoup(html, "html.parser")
    for row in soup.select("div.search_row"):
        if not any(links_to_app(str(a.get("href", "")), app_id) for a in row.find_all("a")):
            continue

        for span in row.select("div.searchPersonaInfo span"):
            count = parse_count(span.get_text(" ", strip=True))
            if count is not None:
                return count

        text = row.get_text(" ", strip=True).replace(str(app_id), " ")
        count = parse_count(text)
        if count is not None:
            return count
    return None


def extract_count(html: str, app_id: int) -> int | None:
    """Regex fast path, then DOM fallback. Both only read the app's own row."""
    count = extract_count_by_pattern(html, app_id)
    if count is not None:
        return count
    return extract_count_from_dom(html, app_id)


class FollowersStrategy(Protocol):
    """Backend that fetches and extracts a follower count."""

    async def fetch_count(self, app_id: int) -> int | None: ...

    async def close(self) -> None: ...


class HtmlFollowersStrategy(BaseExtractor):
    """
    Scrapes the follower count from a page fetched over plain HTTP.

    Transport failures are retried by the base extractor; markup
    that yields no count is not retried.
    """

    def __init__(self, *, url_template: str | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._url_template = url_template or self._settings.followers.url_template

    @property
    def source_name(self) -> str:
        """Return source identifier."""
        return "steam_community_followers"

    async def fetch_count(self, app_id: int) -> int | None:
        url = self._url_template.format(app_id=app_id)
        try:
            response = await self._make_request("GET", url)
        except ExtractionError as e:
            self._logger.warning("Followers page fetch failed", app_id=app_id, error=str(e))
            return None

        html = response.text
        if not html.strip():
            self._logger.warning("Empty followers page", app_id=app_id)
            return None

        count = extract_count_by_pattern(html, app_id)
        if count is not None:
            return count

        self._logger.debug("Pattern match failed, falling back to DOM", app_id=app_id)
        count = extract_count_from_dom(html, app_id)
        if count is None:
            self._logger.warning("Followers not found in page", app_id=app_id, html_length=len(html))
        return count


class BrowserFollowersStrategy:
    """
    Reads the follower count from a page rendered in headless Chromium.

    Slower than ``HtmlFollowersStrategy`` but tolerant of markup that
    only appears after scripts run. Playwright is imported on first
    use; install with ``pip install game-releases[browser]`` and
    ``playwright install chromium``.
    """

    ROW_SELECTOR = "div.search_row"

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        url_template: str | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._url_template = url_template or self._settings.followers.url_template
        self._timeout_ms = timeout_ms or self._settings.followers.browser_timeout_ms
        self._logger = get_logger(__name__, component="browser_followers")
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None
        self._init_lock = asyncio.Lock()

    async def _ensure_browser(self) -> Any:
        async with self._init_lock:
            if self._context is not None:
                return self._context
            try:
                from playwright.async_api import async_playwright
            except ImportError as e:
                raise RuntimeError(
                    "Playwright not installed. Install with: "
                    "pip install 'game-releases[browser]' && playwright install chromium"
                ) from e

            self._logger.info("Launching headless Chromium")
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=True,
                args=["--no-sandbox", "--disable-gpu", "--disable-dev-shm-usage"],
            )
            self._context = await self._browser.new_context(
                locale="en-US",
                viewport={"width": 1280, "height": 800},
                user_agent=self._settings.store.user_agent,
            )
            return self._context

    async def fetch_count(self, app_id: int) -> int | None:
        from playwright.async_api import Error as PlaywrightError

        context = await self._ensure_browser()
        url = self._url_template.format(app_id=app_id)
        page = await context.new_page()
        try:
            try:
                await page.goto(url, wait_until="networkidle", timeout=self._timeout_ms)
                await page.wait_for_selector(self.ROW_SELECTOR, timeout=self._timeout_ms)
            except PlaywrightError as e:
                self._logger.warning("Browser followers lookup failed", app_id=app_id, error=str(e))
            html = await self._page_content(page)
        finally:
            await page.close()

        if not html:
            return None
        count = extract_count(html, app_id)
        if count is None:
            self._logger.warning("Followers not found in rendered page", app_id=app_id)
        return count

    async def _page_content(self, page: Any) -> str:
        from playwright.async_api import Error as PlaywrightError

        try:
            return await page.content()
        except PlaywrightError:
            return ""

    async def close(self) -> None:
        """Close browser and Playwright instance."""
        if self._context is not None:
            await self._context.close()
            self._context = None
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None


def create_followers_strategy(
    settings: Settings,
    **kwargs: Any,
) -> FollowersStrategy:
    """
    Build the strategy selected by ``FOLLOWERS_BACKEND``.

    Args:
        settings: Application settings
        **kwargs: Extra arguments for the HTML strategy (e.g. ``client``)
    """
    if settings.followers.backend == "browser":
        return BrowserFollowersStrategy(settings=settings)
    return HtmlFollowersStrategy(settings=settings, **kwargs)


class FollowersResolver:
    """
    Resolves follower counts through cache, rate limiter and strategy.

    Example:
        >>> resolver = FollowersResolver(strategy, cache=cache, rate_limiter=limiter)
        >>> await resolver.resolve(1091500)
        120000
    """

    def __init__(
        self,
        strategy: FollowersStrategy,
        *,
        cache: FollowersCache,
        rate_limiter: RateLimiter,
    ) -> None:
        self._strategy = strategy
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._logger = get_logger(__name__, component="followers_resolver")

    async def resolve(self, app_id: int) -> int | None:
        """
        Follower count for ``app_id``.

        Returns:
            int | None: The count, None if every extraction path failed
        """
        cached = await self._cache.get(app_id)
        if cached is not None:
            self._logger.debug("Cache hit", app_id=app_id, followers=cached)
            return cached

        async with self._rate_limiter:
            count = await self._strategy.fetch_count(app_id)

        if count is None:
            self._logger.warning("Followers unknown", app_id=app_id)
            return None

        await self._cache.put(app_id, count)
        self._logger.info("Resolved followers", app_id=app_id, followers=count)
        return count

    async def resolve_many(self, app_ids: Iterable[int]) -> dict[int, int | None]:
        """
        Resolve several apps concurrently, bounded by the rate limiter.

        A lookup that raises is logged and reported as unknown.
        """
        ids = list(dict.fromkeys(app_ids))
        results = await asyncio.gather(
            *(self.resolve(app_id) for app_id in ids),
            return_exceptions=True,
        )

        counts: dict[int, int | None] = {}
        for app_id, result in zip(ids, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                self._logger.error("Followers lookup raised", app_id=app_id, error=str(result))
                counts[app_id] = None
            else:
                counts[app_id] = result
        return counts

    async def close(self) -> None:
        await self._strategy.close()
