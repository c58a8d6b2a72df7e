"""
Steam Store appdetails resolver.

Fetches per-app metadata from the semi-documented appdetails JSON
endpoint and turns it into a ``ResolvedDetail`` the sync pass can
merge into the catalog.
"""

import time
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from game_releases.catalog.models import ResolvedDetail
from game_releases.ingestion.contracts import AppId, StoreAppDetails, StoreAppDetailsEnvelope
from game_releases.ingestion.dates import parse_release_date
from game_releases.ingestion.extractors.base import (
    BaseExtractor,
    ExtractionError,
    ExtractionResult,
    ValidationError,
)


class DetailResolver(BaseExtractor):
    """
    Resolver for Steam Store app details.

    Transient failures are retried by the base extractor; a
    ``success: false`` answer, a 4xx or a payload that fails
    validation yields an unsuccessful result immediately.

    Example:
        >>> async with DetailResolver(rate_limiter=limiter) as resolver:
        ...     detail = await resolver.resolve(1091500, fallback_date=None)
        ...     if detail:
        ...         print(detail.name)
    """

    @property
    def source_name(self) -> str:
        """Return source identifier."""
        return "steam_store_appdetails"

    def _parse_response(self, raw_data: dict[str, Any], app_id: AppId) -> StoreAppDetailsEnvelope:
        """
        Parse and validate the per-app envelope.

        Raises:
            ValidationError: If response doesn't match expected schema
        """
        entry = raw_data.get(str(app_id))
        if not isinstance(entry, dict):
            raise ValidationError(
                f"Response has no entry for app_id={app_id}",
                source=self.source_name,
            )
        try:
            return StoreAppDetailsEnvelope.model_validate(entry)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Response validation failed: {e}",
                source=self.source_name,
            ) from e

    async def extract(self, app_id: AppId) -> ExtractionResult[StoreAppDetails]:
        """
        Fetch and validate app details.

        Args:
            app_id: Steam application ID

        Returns:
            ExtractionResult[StoreAppDetails]: Extraction result with metadata
        """
        store = self._settings.store
        url = store.appdetails_url
        endpoint = f"{url}?appids={app_id}"
        start_time = time.perf_counter()

        self._logger.debug("Fetching app details", app_id=app_id)

        try:
            response = await self._make_request(
                "GET",
                url,
                params={
                    "appids": app_id,
                    "cc": store.country_code,
                    "l": store.language,
                },
            )
            try:
                raw_data = response.json()
            except ValueError as e:
                raise ValidationError(
                    f"Response is not JSON: {e}",
                    source=self.source_name,
                    endpoint=endpoint,
                ) from e
            if not isinstance(raw_data, dict):
                raise ValidationError(
                    "Response is not a JSON object",
                    source=self.source_name,
                    endpoint=endpoint,
                )

            envelope = self._parse_response(raw_data, app_id)
            duration_ms = (time.perf_counter() - start_time) * 1000

            if not envelope.success or envelope.data is None:
                self._logger.warning("Store returned success=false", app_id=app_id)
                return ExtractionResult(
                    success=False,
                    error_message=f"Steam API returned success=false for app_id={app_id}",
                    source=self.source_name,
                    endpoint=endpoint,
                    duration_ms=duration_ms,
                    raw_response=raw_data,
                )

            return ExtractionResult(
                success=True,
                data=envelope.data,
                source=self.source_name,
                endpoint=endpoint,
                duration_ms=duration_ms,
                extracted_at=datetime.now(timezone.utc),
            )

        except ValidationError as e:
            self._logger.error("Validation failed", app_id=app_id, error=str(e))
            return ExtractionResult(
                success=False,
                error_message=str(e),
                source=self.source_name,
                endpoint=endpoint,
                duration_ms=(time.perf_counter() - start_time) * 1000,
            )

        except ExtractionError as e:
            self._logger.error(
                "Extraction failed",
                app_id=app_id,
                error=str(e),
                status_code=e.status_code,
            )
            return ExtractionResult(
                success=False,
                error_message=str(e),
                source=self.source_name,
                endpoint=endpoint,
                duration_ms=(time.perf_counter() - start_time) * 1000,
            )

    async def resolve(
        self,
        app_id: AppId,
        fallback_date: datetime | None = None,
    ) -> ResolvedDetail | None:
        """
        Resolve app details for the catalog.

        The document's own release date wins over ``fallback_date``
        (the crawler's estimate). With neither, the app cannot be
        placed on the calendar and None is returned.

        Args:
            app_id: Steam application ID
            fallback_date: Release date estimated from the search page

        Returns:
            ResolvedDetail | None: Detail ready to merge, None if not found
        """
        result = await self.extract(app_id)
        if not result.success or result.data is None:
            return None

        data = result.data
        precise_date = parse_release_date(
            data.release_date.date,
            year_window=self._settings.crawl.year_window,
        )
        release_date = precise_date or fallback_date
        if release_date is None:
            self._logger.info("Discarding app without release date", app_id=app_id)
            return None

        return ResolvedDetail(
            app_id=app_id,
            name=data.name,
            release_date=release_date,
            genres=frozenset(data.genre_names),
            platforms=frozenset(data.platforms.names),
            short_description=data.short_description,
            poster_url=data.header_image,
            store_url=self._settings.store.app_page_url.format(app_id=app_id),
        )
