"""
Catalog data model.

``CatalogItem`` is the persisted entity; ``SearchHit`` and
``ResolvedDetail`` only live for the duration of one sync pass.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

STORE_APP_URL = "https://store.steampowered.com/app/{app_id}/"


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class SearchHit:
    """An app id discovered on a search page with its estimated release date."""

    app_id: int
    release_date: datetime
    raw_date_text: str = ""


@dataclass(frozen=True)
class ResolvedDetail:
    """Descriptive metadata for an app, ready to be merged into the catalog."""

    app_id: int
    name: str
    release_date: datetime
    genres: frozenset[str] = frozenset()
    platforms: frozenset[str] = frozenset()
    short_description: str = ""
    poster_url: str = ""
    store_url: str = ""

    def __post_init__(self) -> None:
        if not self.store_url:
            object.__setattr__(self, "store_url", STORE_APP_URL.format(app_id=self.app_id))


@dataclass
class CatalogItem:
    """
    A game in the local release catalog.

    ``app_id`` never changes once created. ``followers`` and
    ``collected_at`` move together: they are only replaced by a
    later, positive observation.
    """

    app_id: int
    name: str
    release_date: datetime | None = None
    genres: set[str] = field(default_factory=set)
    platforms: set[str] = field(default_factory=set)
    followers: int = 0
    store_url: str = ""
    poster_url: str = ""
    short_description: str = ""
    collected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.app_id <= 0:
            raise ValueError(f"app_id must be positive, got {self.app_id}")
        if self.followers < 0:
            raise ValueError(f"followers must not be negative, got {self.followers}")

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "app_id": self.app_id,
            "name": self.name,
            "release_date": self.release_date.isoformat() if self.release_date else None,
            "genres": sorted(self.genres),
            "platforms": sorted(self.platforms),
            "followers": self.followers,
            "store_url": self.store_url,
            "poster_url": self.poster_url,
            "short_description": self.short_description,
            "collected_at": self.collected_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CatalogItem":
        """Rebuild an item from ``to_dict`` output."""
        return cls(
            app_id=int(data["app_id"]),
            name=data.get("name", ""),
            release_date=_parse_timestamp(data.get("release_date")),
            genres=set(data.get("genres", [])),
            platforms=set(data.get("platforms", [])),
            followers=int(data.get("followers", 0)),
            store_url=data.get("store_url", ""),
            poster_url=data.get("poster_url", ""),
            short_description=data.get("short_description", ""),
            collected_at=_parse_timestamp(data.get("collected_at"))
            or datetime.now(timezone.utc),
        )

    def copy(self) -> "CatalogItem":
        """Independent copy, including the tag sets."""
        return CatalogItem.from_dict(self.to_dict())
