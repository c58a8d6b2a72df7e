"""Tests for the catalog merge policy."""

from datetime import datetime, timedelta, timezone

import pytest

from game_releases.catalog.models import CatalogItem, ResolvedDetail
from game_releases.sync.merge import MergeAction, merge_item, should_accept_followers

T0 = datetime(2025, 11, 1, 12, 0, tzinfo=timezone.utc)
RELEASE = datetime(2025, 11, 20, tzinfo=timezone.utc)


def make_detail(app_id: int = 10, name: str = "Alpha") -> ResolvedDetail:
    return ResolvedDetail(
        app_id=app_id,
        name=name,
        release_date=RELEASE,
        genres=frozenset({"Action"}),
        platforms=frozenset({"Windows"}),
        short_description="desc",
        poster_url="https://cdn.test/10.jpg",
    )


def make_existing(followers: int = 500, collected_at: datetime = T0) -> CatalogItem:
    return CatalogItem(
        app_id=10,
        name="Old name",
        release_date=datetime(2025, 12, 1, tzinfo=timezone.utc),
        genres={"Indie"},
        platforms={"Mac"},
        followers=followers,
        collected_at=collected_at,
    )


class TestInsert:
    """First sighting of an app."""

    def test_known_followers(self) -> None:
        outcome = merge_item(None, make_detail(), 1000, T0)

        assert outcome.action == MergeAction.INSERTED
        assert outcome.item.followers == 1000
        assert outcome.item.collected_at == T0
        assert outcome.item.store_url == "https://store.steampowered.com/app/10/"

    def test_unknown_followers_become_zero(self) -> None:
        outcome = merge_item(None, make_detail(), None, T0)

        assert outcome.item.followers == 0


class TestUpdate:
    """Reconciling with a stored item."""

    def test_descriptive_fields_overwritten(self) -> None:
        existing = make_existing()
        outcome = merge_item(existing, make_detail(name="Alpha Remastered"), None, T0)

        assert outcome.action == MergeAction.UPDATED
        assert outcome.item.name == "Alpha Remastered"
        assert outcome.item.release_date == RELEASE
        assert outcome.item.genres == {"Action"}
        assert outcome.item.platforms == {"Windows"}

    def test_later_positive_count_accepted(self) -> None:
        later = T0 + timedelta(hours=1)
        outcome = merge_item(make_existing(followers=500), make_detail(), 800, later)

        assert outcome.followers_updated is True
        assert outcome.item.followers == 800
        assert outcome.item.collected_at == later

    def test_lower_positive_count_accepted(self) -> None:
        """A later, positive count wins even when it is smaller."""
        later = T0 + timedelta(hours=1)
        outcome = merge_item(make_existing(followers=500), make_detail(), 100, later)

        assert outcome.item.followers == 100

    @pytest.mark.parametrize("followers", [None, 0])
    def test_unknown_or_zero_never_demotes(self, followers: int | None) -> None:
        later = T0 + timedelta(hours=1)
        outcome = merge_item(make_existing(followers=500), make_detail(), followers, later)

        assert outcome.followers_updated is False
        assert outcome.item.followers == 500
        assert outcome.item.collected_at == T0

    def test_older_observation_ignored(self) -> None:
        earlier = T0 - timedelta(minutes=5)
        outcome = merge_item(make_existing(followers=500), make_detail(), 9000, earlier)

        assert outcome.item.followers == 500

    def test_same_timestamp_ignored(self) -> None:
        assert not should_accept_followers(make_existing(), 9000, T0)

    def test_existing_not_mutated(self) -> None:
        existing = make_existing(followers=500)
        merge_item(existing, make_detail(name="New"), 800, T0 + timedelta(hours=1))

        assert existing.name == "Old name"
        assert existing.followers == 500

    def test_app_id_mismatch(self) -> None:
        with pytest.raises(ValueError, match="app_id"):
            merge_item(make_existing(), make_detail(app_id=11), None, T0)

    def test_idempotent(self) -> None:
        """Merging the same observation twice yields the same item."""
        first = merge_item(make_existing(), make_detail(), 800, T0 + timedelta(hours=1)).item
        second = merge_item(first, make_detail(), 800, T0 + timedelta(hours=1)).item

        assert second.to_dict() == first.to_dict()
