"""
Base extractor with retry logic, rate limiting, and error handling.

Every outbound storefront request goes through ``_make_request``:
each attempt waits for a rate limiter slot, transient failures are
retried with linearly growing backoff, and everything else fails
fast so the caller can skip the item.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

import httpx
from pydantic import BaseModel, Field
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from game_releases.config import RetryConfig, Settings, get_settings
from game_releases.ingestion.utils.rate_limiter import RateLimiter
from game_releases.logger import get_logger

# Type variable for response models
T = TypeVar("T", bound=BaseModel)


class ExtractionError(Exception):
    """Base exception for extraction errors."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        endpoint: str | None = None,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.source = source
        self.endpoint = endpoint
        self.status_code = status_code
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)


class TransientError(ExtractionError):
    """Server-side failure worth retrying (5xx)."""

    pass


class RateLimitError(TransientError):
    """Raised when the storefront answers 429."""

    pass


class APIError(ExtractionError):
    """Raised for client errors (4xx) that a retry will not fix."""

    pass


class ValidationError(ExtractionError):
    """Raised when a response does not match the expected schema or markup."""

    pass


RETRYABLE_ERRORS = (httpx.TransportError, TransientError)


class ExtractionResult(BaseModel, Generic[T]):
    """
    Wrapper for extraction results with metadata.

    Provides consistent structure for extraction outputs,
    including timing, source tracking, and error information.
    """

    success: bool
    data: T | None = None
    error_message: str | None = None
    extracted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: str
    endpoint: str
    duration_ms: float | None = None
    raw_response: dict[str, Any] | None = None


class BaseExtractor(ABC):
    """
    Abstract base class for storefront extractors.

    Provides common functionality including:
    - HTTP client management
    - Retry logic with linear backoff
    - Per-attempt rate limiting
    - Structured logging

    Subclasses must implement:
    - source_name: Identifier for the data source
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        retry_config: RetryConfig | None = None,
        rate_limiter: RateLimiter | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the extractor.

        Args:
            settings: Application settings (uses cached settings if None)
            retry_config: Custom retry configuration (uses settings if None)
            rate_limiter: Limiter every attempt passes through (unlimited if None)
            client: Shared HTTP client; the extractor closes only clients it created
            timeout: HTTP request timeout in seconds
        """
        self._settings = settings or get_settings()
        self._retry_config = retry_config or self._settings.retry
        self._timeout = timeout or self._settings.store.timeout_seconds
        self._rate_limiter = rate_limiter
        self._client = client
        self._owns_client = client is None
        self._logger = get_logger(
            self.__class__.__name__,
            component="extractor",
            source=self.source_name,
        )

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Return identifier for this data source."""
        ...

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            store = self._settings.store
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                headers={
                    "User-Agent": store.user_agent,
                    "Accept-Language": store.accept_language,
                    "Accept": "text/html,application/json;q=0.9,*/*;q=0.8",
                },
                cookies={"Steam_Language": store.language},
            )
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """Close HTTP client and release resources."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BaseExtractor":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    def _create_retry_decorator(self) -> Any:
        """Create retry decorator with current configuration."""
        base = self._retry_config.base_delay_seconds
        return retry(
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            stop=stop_after_attempt(self._retry_config.max_attempts),
            wait=wait_incrementing(start=base, increment=base),
            before_sleep=self._log_retry_attempt,
            reraise=True,
        )

    def _log_retry_attempt(self, retry_state: Any) -> None:
        """Log retry attempts for observability."""
        self._logger.warning(
            "Retrying request",
            attempt=retry_state.attempt_number,
            wait_seconds=retry_state.next_action.sleep if retry_state.next_action else 0,
            exception=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._rate_limiter is None:
            return await self.client.request(method, url, **kwargs)
        async with self._rate_limiter:
            return await self.client.request(method, url, **kwargs)

    async def _make_request(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Request URL
            **kwargs: Additional arguments passed to httpx

        Returns:
            httpx.Response: Successful response

        Raises:
            APIError: If the storefront answers with a 4xx other than 429
            ExtractionError: If transient failures outlast the retry budget
        """
        retry_decorator = self._create_retry_decorator()

        @retry_decorator
        async def _request() -> httpx.Response:
            self._logger.debug("Making request", method=method, url=url)

            response = await self._send(method, url, **kwargs)

            if response.status_code == 429:
                retry_after = response.headers.get("Retry-After", "60")
                raise RateLimitError(
                    f"Rate limit exceeded. Retry after {retry_after}s",
                    source=self.source_name,
                    endpoint=url,
                    status_code=429,
                )

            if response.status_code >= 500:
                raise TransientError(
                    f"Server error: {response.status_code}",
                    source=self.source_name,
                    endpoint=url,
                    status_code=response.status_code,
                )

            if response.status_code >= 400:
                raise APIError(
                    f"API error: {response.status_code}",
                    source=self.source_name,
                    endpoint=url,
                    status_code=response.status_code,
                )

            return response

        try:
            return await _request()  # type: ignore[no-any-return]
        except RETRYABLE_ERRORS as e:
            self._logger.error(
                "Request failed after retries",
                url=url,
                attempts=self._retry_config.max_attempts,
                error=str(e),
            )
            raise ExtractionError(
                f"Request failed after {self._retry_config.max_attempts} attempts: {e}",
                source=self.source_name,
                endpoint=url,
                status_code=getattr(e, "status_code", None),
                original_error=e,
            ) from e
        except httpx.HTTPError as e:
            raise ExtractionError(
                f"Request failed: {e}",
                source=self.source_name,
                endpoint=url,
                original_error=e,
            ) from e
