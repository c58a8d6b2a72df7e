"""
Sync orchestrator that drives one synchronization pass.

crawl -> resolve details -> resolve followers -> merge -> persist.
Per-item failures are contained and counted as skips; only a
storage failure aborts the pass.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

import httpx

from game_releases.catalog.models import CatalogItem, ResolvedDetail, SearchHit
from game_releases.catalog.store import AnalyticsSink, GameStore, StoreError
from game_releases.config import Settings, get_settings
from game_releases.ingestion.extractors import (
    CrawlStopReason,
    DetailResolver,
    FollowersResolver,
    SearchCrawler,
    create_followers_strategy,
)
from game_releases.ingestion.utils import FollowersCache, RateLimiter, RateLimiterConfig
from game_releases.logger import bound_context, get_logger
from game_releases.sync.merge import MergeAction, merge_item


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SyncError(Exception):
    """Base exception for sync failures."""


class SyncConfigurationError(SyncError):
    """Raised when the orchestrator is wired incorrectly."""


class SyncAbortedError(SyncError):
    """Raised when a pass cannot continue (storage unavailable)."""


class ItemStage(str, Enum):
    """Lifecycle of a discovered item within one pass."""

    DISCOVERED = "discovered"
    DETAIL_RESOLVED = "detail_resolved"
    FOLLOWERS_RESOLVED = "followers_resolved"
    MERGED = "merged"
    PERSISTED = "persisted"
    SKIPPED = "skipped"


@dataclass
class ItemProgress:
    """Tracks a single item through the pass."""

    hit: SearchHit
    stage: ItemStage = ItemStage.DISCOVERED
    detail: ResolvedDetail | None = None
    existing: CatalogItem | None = None
    followers: int | None = None
    skip_reason: str | None = None

    @property
    def app_id(self) -> int:
        return self.hit.app_id


@dataclass
class SyncReport:
    """Result of a complete sync pass."""

    run_id: UUID
    started_at: datetime
    window_start: datetime
    window_end: datetime
    completed_at: datetime | None = None
    processed: int = 0
    added: int = 0
    updated: int = 0
    skipped: int = 0
    followers_unknown: int = 0
    stop_reason: CrawlStopReason | None = None
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        """Get total duration in seconds."""
        end = self.completed_at or utc_now()
        return (end - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": str(self.run_id),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "window_start": self.window_start.isoformat(),
            "window_end": self.window_end.isoformat(),
            "processed": self.processed,
            "added": self.added,
            "updated": self.updated,
            "skipped": self.skipped,
            "followers_unknown": self.followers_unknown,
            "stop_reason": self.stop_reason.value if self.stop_reason else None,
            "duration_seconds": round(self.duration_seconds, 2),
            "errors": self.errors,
        }


class SyncOrchestrator:
    """
    Orchestrates a synchronization pass against the storefront.

    Only one pass runs at a time; concurrent callers of ``run_once``
    wait for the running pass to finish.
    """

    def __init__(
        self,
        *,
        crawler: SearchCrawler,
        detail_resolver: DetailResolver,
        followers_resolver: FollowersResolver,
        store: GameStore | None,
        sink: AnalyticsSink | None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if store is None:
            raise SyncConfigurationError("A GameStore is required")
        if sink is None:
            raise SyncConfigurationError("An AnalyticsSink is required")

        self._settings = settings or get_settings()
        self._crawler = crawler
        self._detail_resolver = detail_resolver
        self._followers_resolver = followers_resolver
        self._store = store
        self._sink = sink
        self._clock = clock
        self._item_delay = self._settings.sync.item_delay_seconds
        self._followers_refresh = timedelta(hours=self._settings.sync.followers_refresh_hours)
        self._run_lock = asyncio.Lock()
        self._logger = get_logger(__name__, component="orchestrator")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        store: GameStore | None,
        sink: AnalyticsSink | None,
        client: httpx.AsyncClient | None = None,
        cache: FollowersCache | None = None,
    ) -> "SyncOrchestrator":
        """
        Composition root: build limiters, cache and extractors from settings.

        Args:
            settings: Application settings
            store: Catalog storage
            sink: Snapshot sink
            client: Optional shared HTTP client (owned by the caller)
            cache: Optional followers cache to share across orchestrators
        """
        crawl_limiter = RateLimiter(
            RateLimiterConfig(
                max_concurrency=settings.crawl.max_concurrency,
                min_interval_seconds=settings.crawl.min_interval_seconds,
            ),
            name="search",
        )
        details_limiter = RateLimiter(
            RateLimiterConfig(
                max_concurrency=settings.details.max_concurrency,
                min_interval_seconds=settings.details.min_interval_seconds,
            ),
            name="details",
        )
        followers_limiter = RateLimiter(
            RateLimiterConfig(
                max_concurrency=settings.followers.max_concurrency,
                min_interval_seconds=settings.followers.min_interval_seconds,
            ),
            name="followers",
        )
        cache = cache or FollowersCache(ttl=timedelta(hours=settings.followers.cache_ttl_hours))

        return cls(
            crawler=SearchCrawler(settings=settings, rate_limiter=crawl_limiter, client=client),
            detail_resolver=DetailResolver(
                settings=settings, rate_limiter=details_limiter, client=client
            ),
            followers_resolver=FollowersResolver(
                create_followers_strategy(settings, client=client),
                cache=cache,
                rate_limiter=followers_limiter,
            ),
            store=store,
            sink=sink,
            settings=settings,
        )

    def default_window(self) -> tuple[datetime, datetime]:
        """Sync window around now, as configured."""
        now = self._clock()
        sync = self._settings.sync
        return (
            now - timedelta(days=sync.window_days_back),
            now + timedelta(days=sync.window_days_ahead),
        )

    async def run_once(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> SyncReport:
        """
        Run one complete synchronization pass.

        Args:
            start: Window start (defaults to the configured window)
            end: Window end (defaults to the configured window)

        Returns:
            SyncReport: Counts of processed, added, updated and skipped items

        Raises:
            SyncAbortedError: If the catalog store failed
        """
        default_start, default_end = self.default_window()
        start = start or default_start
        end = end or default_end

        async with self._run_lock:
            report = SyncReport(
                run_id=uuid4(),
                started_at=self._clock(),
                window_start=start,
                window_end=end,
            )
            with bound_context(run_id=str(report.run_id)):
                self._logger.info(
                    "Starting sync",
                    window_start=start.isoformat(),
                    window_end=end.isoformat(),
                )
                try:
                    await self._run(report, start, end)
                except StoreError as e:
                    self._logger.exception("Sync aborted: catalog store failed", error=str(e))
                    raise SyncAbortedError(f"Catalog store failed: {e}") from e
                finally:
                    report.completed_at = self._clock()

                self._logger.info(
                    "Sync complete",
                    processed=report.processed,
                    added=report.added,
                    updated=report.updated,
                    skipped=report.skipped,
                    followers_unknown=report.followers_unknown,
                    duration_seconds=round(report.duration_seconds, 2),
                )
            return report

    async def _run(self, report: SyncReport, start: datetime, end: datetime) -> None:
        hits = await self._crawler.collect(start, end)
        report.stop_reason = self._crawler.stop_reason
        if not hits:
            self._logger.info("No upcoming games found", stop_reason=report.stop_reason)
            return

        items = [ItemProgress(hit=hit) for hit in hits]
        report.processed = len(items)

        await self._resolve_details(items, report)
        resolved = [p for p in items if p.stage == ItemStage.DETAIL_RESOLVED]

        await self._load_existing(resolved, report)
        resolved = [p for p in resolved if p.stage == ItemStage.DETAIL_RESOLVED]

        collected_at = await self._resolve_followers(resolved, report)

        for progress in resolved:
            await self._merge_and_persist(progress, collected_at, report)

    async def _resolve_details(self, items: list[ItemProgress], report: SyncReport) -> None:
        for index, progress in enumerate(items):
            if index > 0 and self._item_delay > 0:
                await asyncio.sleep(self._item_delay)
            try:
                detail = await self._detail_resolver.resolve(
                    progress.app_id, fallback_date=progress.hit.release_date
                )
            except Exception as e:
                self._skip(progress, report, f"detail lookup raised: {e}")
                continue

            if detail is None:
                self._skip(progress, report, "details not found")
                continue

            progress.detail = detail
            progress.stage = ItemStage.DETAIL_RESOLVED

    async def _load_existing(self, items: list[ItemProgress], report: SyncReport) -> None:
        for progress in items:
            try:
                progress.existing = await self._store.find_by_app_id(progress.app_id)
            except StoreError:
                raise
            except Exception as e:
                self._skip(progress, report, f"store lookup raised: {e}")

    def _needs_followers(self, existing: CatalogItem | None, now: datetime) -> bool:
        """Stored counts that are positive and recent are not refetched."""
        if existing is None or existing.followers == 0:
            return True
        return now - existing.collected_at >= self._followers_refresh

    async def _resolve_followers(self, items: list[ItemProgress], report: SyncReport) -> datetime:
        now = self._clock()
        to_fetch = [p.app_id for p in items if self._needs_followers(p.existing, now)]
        self._logger.info(
            "Resolving followers",
            items=len(items),
            to_fetch=len(to_fetch),
            reused=len(items) - len(to_fetch),
        )

        counts = await self._followers_resolver.resolve_many(to_fetch) if to_fetch else {}
        collected_at = self._clock()

        for progress in items:
            if progress.app_id in counts:
                progress.followers = counts[progress.app_id]
                if progress.followers is None:
                    report.followers_unknown += 1
            progress.stage = ItemStage.FOLLOWERS_RESOLVED
        return collected_at

    async def _merge_and_persist(
        self,
        progress: ItemProgress,
        collected_at: datetime,
        report: SyncReport,
    ) -> None:
        if progress.detail is None:
            self._skip(progress, report, "missing detail")
            return

        try:
            outcome = merge_item(progress.existing, progress.detail, progress.followers, collected_at)
            progress.stage = ItemStage.MERGED
            stored = await self._store.upsert(outcome.item)
            progress.stage = ItemStage.PERSISTED
        except StoreError:
            raise
        except Exception as e:
            self._skip(progress, report, f"merge/persist raised: {e}")
            return

        if outcome.action == MergeAction.INSERTED:
            report.added += 1
            self._logger.info(
                "Added game",
                app_id=stored.app_id,
                name=stored.name,
                followers=stored.followers,
            )
            return

        report.updated += 1
        self._logger.info(
            "Updated game",
            app_id=stored.app_id,
            name=stored.name,
            followers=stored.followers,
            followers_updated=outcome.followers_updated,
        )
        await self._record_snapshot(stored)

    async def _record_snapshot(self, item: CatalogItem) -> None:
        try:
            await self._sink.record_snapshot(item)
        except Exception as e:
            self._logger.warning("Failed to record analytics snapshot", app_id=item.app_id, error=str(e))

    def _skip(self, progress: ItemProgress, report: SyncReport, reason: str) -> None:
        progress.stage = ItemStage.SKIPPED
        progress.skip_reason = reason
        report.skipped += 1
        report.errors.append({"app_id": progress.app_id, "error": reason})
        self._logger.warning("Skipping game", app_id=progress.app_id, reason=reason)

    async def close(self) -> None:
        """Release HTTP clients and browser resources."""
        await self._crawler.close()
        await self._detail_resolver.close()
        await self._followers_resolver.close()

    async def __aenter__(self) -> "SyncOrchestrator":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
