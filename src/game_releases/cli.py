"""
Command-line interface for the upcoming game releases sync engine.

Provides commands to exercise each resolver, run a sync pass
manually, run the periodic scheduler, and query the local catalog.
"""

import asyncio
import json
import sys
from datetime import datetime, timedelta, timezone
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from game_releases.config import Settings, get_settings
from game_releases.logger import get_logger, setup_logging

logger = get_logger(__name__, component="cli")


class CLIOutput(BaseModel):
    """Structured output for CLI commands."""

    success: bool
    command: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: dict[str, Any] | list[Any] | None = None
    error: str | None = None


def print_json(output: CLIOutput) -> None:
    """Print output as formatted JSON."""
    print(json.dumps(output.model_dump(), indent=2, default=str))


def parse_cli_date(value: str) -> datetime:
    """Parse an ISO date argument; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _window_args(args: list[str]) -> tuple[datetime | None, datetime | None]:
    if not args:
        return None, None
    if len(args) != 2:
        raise ValueError("expected both <start> and <end> (ISO dates)")
    return parse_cli_date(args[0]), parse_cli_date(args[1])


def _option(args: list[str], name: str) -> str | None:
    if name in args:
        idx = args.index(name)
        if idx + 1 < len(args):
            return args[idx + 1]
    return None


def _build_stores(settings: Settings) -> tuple[Any, Any]:
    from game_releases.catalog import JsonFileGameStore, JsonlAnalyticsSink

    store = JsonFileGameStore(settings.sync.store_path)
    sink = JsonlAnalyticsSink(
        output_dir=settings.sync.analytics_dir,
        environment=settings.environment,
    )
    return store, sink


async def cmd_test_config() -> None:
    """Test configuration loading."""
    settings = get_settings()

    output = CLIOutput(
        success=True,
        command="test-config",
        data={
            "environment": settings.environment,
            "search_url": settings.store.search_url,
            "appdetails_url": settings.store.appdetails_url,
            "crawl_max_pages": settings.crawl.max_pages,
            "crawl_year_window": list(settings.crawl.year_window),
            "followers_backend": settings.followers.backend,
            "followers_max_concurrency": settings.followers.max_concurrency,
            "followers_cache_ttl_hours": settings.followers.cache_ttl_hours,
            "retry_max_attempts": settings.retry.max_attempts,
            "sync_interval_hours": settings.sync.interval_hours,
            "store_path": str(settings.sync.store_path),
        },
    )
    print_json(output)


async def cmd_parse_date(text: str) -> None:
    """Run the release date heuristics on a single string."""
    from game_releases.ingestion.dates import parse_release_date

    settings = get_settings()
    parsed = parse_release_date(text, year_window=settings.crawl.year_window)

    output = CLIOutput(
        success=parsed is not None,
        command="parse-date",
        data={"text": text, "release_date": parsed.isoformat() if parsed else None},
        error=None if parsed else "unknown release date",
    )
    print_json(output)


async def cmd_crawl(args: list[str]) -> None:
    """List upcoming games found in the search results."""
    from game_releases.ingestion.extractors import SearchCrawler
    from game_releases.ingestion.utils import RateLimiter, RateLimiterConfig

    settings = get_settings()
    start, end = _window_args(args)
    if start is None or end is None:
        now = datetime.now(timezone.utc)
        start = now - timedelta(days=settings.sync.window_days_back)
        end = now + timedelta(days=settings.sync.window_days_ahead)

    limiter = RateLimiter(
        RateLimiterConfig(
            max_concurrency=settings.crawl.max_concurrency,
            min_interval_seconds=settings.crawl.min_interval_seconds,
        ),
        name="search",
    )
    async with SearchCrawler(settings=settings, rate_limiter=limiter) as crawler:
        hits = await crawler.collect(start, end)

    output = CLIOutput(
        success=True,
        command="crawl",
        data={
            "stop_reason": crawler.stop_reason.value if crawler.stop_reason else None,
            "pages": crawler.pages_fetched,
            "hits": [
                {
                    "app_id": hit.app_id,
                    "release_date": hit.release_date.isoformat(),
                    "raw_date_text": hit.raw_date_text,
                }
                for hit in hits
            ],
        },
    )
    print_json(output)


async def cmd_details(app_id: int) -> None:
    """Resolve catalog metadata for one app."""
    from game_releases.ingestion.extractors import DetailResolver

    logger.info("Resolving details", app_id=app_id)

    async with DetailResolver() as resolver:
        detail = await resolver.resolve(app_id)

    output = CLIOutput(
        success=detail is not None,
        command="details",
        data=None
        if detail is None
        else {
            "app_id": detail.app_id,
            "name": detail.name,
            "release_date": detail.release_date.isoformat() if detail.release_date else None,
            "genres": sorted(detail.genres),
            "platforms": sorted(detail.platforms),
            "store_url": detail.store_url,
            "poster_url": detail.poster_url,
        },
        error=None if detail else "details not found",
    )
    print_json(output)


async def cmd_followers(app_id: int) -> None:
    """Resolve the follower count for one app."""
    from game_releases.ingestion.extractors import FollowersResolver, create_followers_strategy
    from game_releases.ingestion.utils import FollowersCache, RateLimiter, RateLimiterConfig

    settings = get_settings()
    logger.info("Resolving followers", app_id=app_id, backend=settings.followers.backend)

    resolver = FollowersResolver(
        create_followers_strategy(settings),
        cache=FollowersCache(ttl=timedelta(hours=settings.followers.cache_ttl_hours)),
        rate_limiter=RateLimiter(
            RateLimiterConfig(
                max_concurrency=settings.followers.max_concurrency,
                min_interval_seconds=settings.followers.min_interval_seconds,
            ),
            name="followers",
        ),
    )
    try:
        count = await resolver.resolve(app_id)
    finally:
        await resolver.close()

    output = CLIOutput(
        success=count is not None,
        command="followers",
        data={"app_id": app_id, "followers": count},
        error=None if count is not None else "followers unknown",
    )
    print_json(output)


async def cmd_sync(args: list[str]) -> None:
    """Run one sync pass now."""
    from game_releases.sync import SyncOrchestrator

    settings = get_settings()
    start, end = _window_args(args)
    store, sink = _build_stores(settings)

    async with SyncOrchestrator.from_settings(settings, store=store, sink=sink) as orchestrator:
        report = await orchestrator.run_once(start, end)

    output = CLIOutput(
        success=True,
        command="sync",
        data=report.to_dict(),
    )
    print_json(output)


async def cmd_schedule() -> None:
    """Run the periodic scheduler until interrupted."""
    from game_releases.sync import SyncOrchestrator, SyncScheduler

    settings = get_settings()
    store, sink = _build_stores(settings)

    async with SyncOrchestrator.from_settings(settings, store=store, sink=sink) as orchestrator:
        scheduler = SyncScheduler(orchestrator, timedelta(hours=settings.sync.interval_hours))
        scheduler.start()
        try:
            await asyncio.Event().wait()
        finally:
            await scheduler.stop()


async def cmd_releases(month: str, platform: str | None, genre: str | None) -> None:
    """List catalog releases for a month."""
    from game_releases.catalog import releases_for_month

    store, _ = _build_stores(get_settings())
    items = await releases_for_month(store, month, platform=platform, genre=genre)

    output = CLIOutput(
        success=True,
        command="releases",
        data=[item.to_dict() for item in items],
    )
    print_json(output)


async def cmd_calendar(month: str) -> None:
    """Per-day release counts for a month."""
    from game_releases.catalog import release_calendar

    store, _ = _build_stores(get_settings())
    days = await release_calendar(store, month)

    output = CLIOutput(
        success=True,
        command="calendar",
        data={"month": month, "days": [d.model_dump(mode="json") for d in days]},
    )
    print_json(output)


async def cmd_top_genres(month: str) -> None:
    """Top genres for a month with average followers."""
    from game_releases.catalog import top_genres

    store, _ = _build_stores(get_settings())
    stats = await top_genres(store, month)

    output = CLIOutput(
        success=True,
        command="top-genres",
        data=[s.model_dump() for s in stats],
    )
    print_json(output)


def print_usage() -> None:
    """Print CLI usage information."""
    usage = """
Game Releases CLI
=================

Usage: game-releases <command> [arguments]

Commands:
  test-config                 Test configuration loading
  parse-date <text>           Parse a storefront release date string
  crawl [start end]           List upcoming games in the search results
  details <app_id>            Resolve catalog metadata for an app
  followers <app_id>          Resolve the follower count for an app
  sync [start end]            Run one sync pass now
  schedule                    Run the periodic sync until interrupted
  releases <yyyy-MM>          List catalog releases for a month
  calendar <yyyy-MM>          Per-day release counts for a month
  top-genres <yyyy-MM>        Top genres with average followers

Options:
  --platform <name>           Filter releases by platform (Windows, Mac, Linux)
  --genre <name>              Filter releases by genre

Examples:
  game-releases sync 2025-11-01 2025-11-30
  game-releases releases 2025-11 --platform Linux
"""
    print(usage)


def _require(args: list[str], name: str) -> str:
    if not args:
        print(f"Error: {name} required")
        sys.exit(1)
    return args[0]


def main() -> None:
    """Main CLI entry point."""
    load_dotenv()
    setup_logging()

    if len(sys.argv) < 2:
        print_usage()
        sys.exit(1)

    command = sys.argv[1]
    args = sys.argv[2:]

    try:
        if command == "test-config":
            asyncio.run(cmd_test_config())

        elif command == "parse-date":
            _require(args, "text")
            asyncio.run(cmd_parse_date(" ".join(args)))

        elif command == "crawl":
            asyncio.run(cmd_crawl(args))

        elif command == "details":
            asyncio.run(cmd_details(int(_require(args, "app_id"))))

        elif command == "followers":
            asyncio.run(cmd_followers(int(_require(args, "app_id"))))

        elif command == "sync":
            asyncio.run(cmd_sync(args))

        elif command == "schedule":
            asyncio.run(cmd_schedule())

        elif command == "releases":
            month = _require(args, "month")
            asyncio.run(
                cmd_releases(month, _option(args, "--platform"), _option(args, "--genre"))
            )

        elif command == "calendar":
            asyncio.run(cmd_calendar(_require(args, "month")))

        elif command == "top-genres":
            asyncio.run(cmd_top_genres(_require(args, "month")))

        elif command in ("help", "--help", "-h"):
            print_usage()

        else:
            print(f"Unknown command: {command}")
            print_usage()
            sys.exit(1)

    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.exception("CLI error", error=str(e))
        output = CLIOutput(
            success=False,
            command=command,
            error=str(e),
        )
        print_json(output)
        sys.exit(1)


if __name__ == "__main__":
    main()
