"""Shared pytest fixtures."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any, cast

import pytest

from game_releases.config import (
    CrawlConfig,
    DetailsConfig,
    FollowersConfig,
    RetryConfig,
    Settings,
    StoreConfig,
    SyncConfig,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"

SEARCH_URL = "https://store.test/search/?page={page}"
APPDETAILS_URL = "https://store.test/api/appdetails"
FOLLOWERS_URL = "https://community.test/search/groups/?text={app_id}"


def _load_json(name: str) -> dict[str, Any]:
    with (FIXTURES_DIR / name).open(encoding="utf-8") as f:
        return cast(dict[str, Any], json.load(f))


def _load_text(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with test endpoints and no politeness delays."""
    return Settings(
        store=StoreConfig(search_url=SEARCH_URL, appdetails_url=APPDETAILS_URL),
        crawl=CrawlConfig(max_pages=5, page_delay_seconds=0.0, min_interval_seconds=0.0),
        details=DetailsConfig(min_interval_seconds=0.0),
        followers=FollowersConfig(url_template=FOLLOWERS_URL, min_interval_seconds=0.0),
        retry=RetryConfig(max_attempts=3, base_delay_seconds=0.0),
        sync=SyncConfig(
            item_delay_seconds=0.0,
            store_path=tmp_path / "catalog.json",
            analytics_dir=tmp_path / "analytics",
        ),
    )


@pytest.fixture
def load_json() -> Callable[[str], dict[str, Any]]:
    """Load a JSON fixture file by name."""
    return _load_json


@pytest.fixture
def load_html() -> Callable[[str], str]:
    """Load an HTML fixture file by name."""
    return _load_text
