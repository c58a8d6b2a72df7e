"""
Merge policy between stored catalog items and fresh scrape results.

Descriptive fields always take the freshly resolved values. The
follower count is freshness-gated: it only moves when the new
observation is known, positive, and collected later than the
stored one. A scrape that failed (None) or returned 0 never erases
a good count.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from game_releases.catalog.models import CatalogItem, ResolvedDetail


class MergeAction(str, Enum):
    """What the merge did to the catalog."""

    INSERTED = "inserted"
    UPDATED = "updated"


@dataclass(frozen=True)
class MergeOutcome:
    """Merged item plus what happened to it."""

    item: CatalogItem
    action: MergeAction
    followers_updated: bool


def should_accept_followers(
    existing: CatalogItem,
    followers: int | None,
    collected_at: datetime,
) -> bool:
    """Freshness gate for the follower count of an existing item."""
    return followers is not None and followers > 0 and collected_at > existing.collected_at


def merge_item(
    existing: CatalogItem | None,
    detail: ResolvedDetail,
    followers: int | None,
    collected_at: datetime,
) -> MergeOutcome:
    """
    Reconcile a resolved detail with the stored item.

    Args:
        existing: Stored item with the same app id, None on first sight
        detail: Freshly resolved metadata
        followers: Fresh follower count, None if unknown
        collected_at: When ``followers`` was observed

    Returns:
        MergeOutcome: New or updated item; ``existing`` is not mutated
    """
    if existing is None:
        item = CatalogItem(
            app_id=detail.app_id,
            name=detail.name,
            release_date=detail.release_date,
            genres=set(detail.genres),
            platforms=set(detail.platforms),
            followers=followers or 0,
            store_url=detail.store_url,
            poster_url=detail.poster_url,
            short_description=detail.short_description,
            collected_at=collected_at,
        )
        return MergeOutcome(item=item, action=MergeAction.INSERTED, followers_updated=True)

    if existing.app_id != detail.app_id:
        raise ValueError(
            f"Cannot merge app_id={detail.app_id} into stored app_id={existing.app_id}"
        )

    item = existing.copy()
    item.name = detail.name
    item.release_date = detail.release_date
    item.genres = set(detail.genres)
    item.platforms = set(detail.platforms)
    item.store_url = detail.store_url
    item.poster_url = detail.poster_url
    item.short_description = detail.short_description

    accepted = should_accept_followers(existing, followers, collected_at)
    if accepted and followers is not None:
        item.followers = followers
        item.collected_at = collected_at

    return MergeOutcome(item=item, action=MergeAction.UPDATED, followers_updated=accepted)
