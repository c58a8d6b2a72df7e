"""
Rate limiter for outbound storefront requests.

Bounds the number of in-flight requests and enforces a fixed
pause after every request. The pause is taken while the slot is
still held, so N slots yield at most N requests per interval.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from game_releases.logger import get_logger


@dataclass
class RateLimiterConfig:
    """Configuration for rate limiter."""

    max_concurrency: int = 1
    min_interval_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if self.min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must not be negative")


@dataclass
class RateLimiter:
    """
    Concurrency gate with a per-call politeness delay.

    Callers beyond ``max_concurrency`` suspend until a slot frees.
    Each call holds its slot for ``min_interval_seconds`` after the
    wrapped work finishes.

    Example:
        >>> limiter = RateLimiter(RateLimiterConfig(max_concurrency=2))
        >>> async with limiter:
        ...     await make_request()
    """

    config: RateLimiterConfig
    name: str = "default"
    _semaphore: asyncio.Semaphore = field(init=False)
    _in_flight: int = field(init=False, default=0)
    _peak_in_flight: int = field(init=False, default=0)
    _logger: Any = field(init=False)

    def __post_init__(self) -> None:
        """Initialize limiter state."""
        self._semaphore = asyncio.Semaphore(self.config.max_concurrency)
        self._logger = get_logger(__name__, component="rate_limiter", limiter=self.name)

    async def acquire(self) -> None:
        """Wait for a free slot."""
        if self._semaphore.locked():
            self._logger.debug(
                "Concurrency limit reached, waiting",
                max_concurrency=self.config.max_concurrency,
            )
        await self._semaphore.acquire()
        self._in_flight += 1
        self._peak_in_flight = max(self._peak_in_flight, self._in_flight)

    async def release(self) -> None:
        """Apply the politeness delay, then free the slot."""
        try:
            if self.config.min_interval_seconds > 0:
                await asyncio.sleep(self.config.min_interval_seconds)
        finally:
            self._in_flight -= 1
            self._semaphore.release()

    async def __aenter__(self) -> "RateLimiter":
        """Acquire slot on context entry."""
        await self.acquire()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Delay and release slot on context exit."""
        await self.release()

    @property
    def in_flight(self) -> int:
        """Calls currently holding a slot (for monitoring)."""
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest concurrent occupancy observed."""
        return self._peak_in_flight
