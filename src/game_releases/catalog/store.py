"""
Catalog persistence collaborators.

The sync engine talks to storage only through the ``GameStore`` and
``AnalyticsSink`` protocols. Local implementations are provided for
development and tests: an in-memory store, a JSON file store, and an
append-only JSON-lines snapshot sink partitioned by date.
"""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol, runtime_checkable
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from game_releases import __version__
from game_releases.catalog.models import CatalogItem
from game_releases.logger import get_logger


class StoreError(Exception):
    """Raised when a storage collaborator cannot serve a request."""


@runtime_checkable
class GameStore(Protocol):
    """Relational catalog storage, unique by app id."""

    async def find_by_app_id(self, app_id: int) -> CatalogItem | None: ...

    async def upsert(self, item: CatalogItem) -> CatalogItem: ...

    async def query_by_date_range(self, start: datetime, end: datetime) -> list[CatalogItem]: ...


@runtime_checkable
class AnalyticsSink(Protocol):
    """Append-only store of point-in-time catalog snapshots."""

    async def record_snapshot(self, item: CatalogItem) -> None: ...


class InMemoryGameStore:
    """
    Dictionary-backed ``GameStore``.

    Returns copies so callers never mutate stored state in place.
    """

    def __init__(self, items: list[CatalogItem] | None = None) -> None:
        self._items: dict[int, CatalogItem] = {}
        self._lock = asyncio.Lock()
        for item in items or []:
            self._items[item.app_id] = item.copy()

    async def find_by_app_id(self, app_id: int) -> CatalogItem | None:
        async with self._lock:
            item = self._items.get(app_id)
            return item.copy() if item else None

    async def upsert(self, item: CatalogItem) -> CatalogItem:
        async with self._lock:
            previous = self._items.get(item.app_id)
            self._items[item.app_id] = item.copy()
            try:
                self._on_change()
            except StoreError:
                # Keep memory consistent with what was persisted
                if previous is None:
                    del self._items[item.app_id]
                else:
                    self._items[item.app_id] = previous
                raise
            return item.copy()

    async def query_by_date_range(self, start: datetime, end: datetime) -> list[CatalogItem]:
        async with self._lock:
            matches = [
                item.copy()
                for item in self._items.values()
                if item.release_date is not None and start <= item.release_date <= end
            ]
        return sorted(matches, key=lambda i: (i.release_date, i.app_id))

    def all_items(self) -> list[CatalogItem]:
        """Snapshot of every stored item, ordered by app id."""
        return [self._items[k].copy() for k in sorted(self._items)]

    def __len__(self) -> int:
        return len(self._items)

    def _on_change(self) -> None:
        """Hook for subclasses that persist after every write."""


class JsonFileGameStore(InMemoryGameStore):
    """
    ``InMemoryGameStore`` persisted to a single JSON file.

    The whole catalog is rewritten after every upsert, which is fine
    for the few hundred upcoming titles a sync window contains.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._logger = get_logger(__name__, component="game_store", path=str(path))
        super().__init__(self._load())

    def _load(self) -> list[CatalogItem]:
        if not self._path.exists():
            return []
        try:
            with self._path.open(encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read catalog file {self._path}: {e}") from e
        items = [CatalogItem.from_dict(entry) for entry in raw.get("items", [])]
        self._logger.info("Loaded catalog", items=len(items))
        return items

    def _on_change(self) -> None:
        payload = {
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "items": [self._items[k].to_dict() for k in sorted(self._items)],
        }
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            tmp_path.replace(self._path)
        except OSError as e:
            raise StoreError(f"Cannot write catalog file {self._path}: {e}") from e


class SnapshotMetadata(BaseModel):
    """
    Metadata attached to every analytics snapshot.

    Makes snapshots traceable to the run and code version that wrote them.
    """

    snapshot_id: UUID = Field(default_factory=uuid4, description="Unique snapshot identifier")
    recorded_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp of the write",
    )
    environment: str = Field(default="development", description="Deployment environment")
    pipeline_version: str = Field(default=__version__, description="Pipeline code version")


class CatalogSnapshot(BaseModel):
    """A point-in-time copy of a catalog item."""

    metadata: SnapshotMetadata
    item: dict[str, Any] = Field(..., description="CatalogItem.to_dict() output")


class InMemoryAnalyticsSink:
    """Collects snapshots in a list (tests and dry runs)."""

    def __init__(self) -> None:
        self.snapshots: list[CatalogSnapshot] = []

    async def record_snapshot(self, item: CatalogItem) -> None:
        self.snapshots.append(CatalogSnapshot(metadata=SnapshotMetadata(), item=item.to_dict()))


class JsonlAnalyticsSink:
    """
    Writes snapshots to JSON-lines files partitioned by date.

    Layout: ``<output_dir>/game_snapshots/date=YYYY-MM-DD/snapshots.jsonl``.
    Files are only ever appended to.

    Example:
        >>> sink = JsonlAnalyticsSink(output_dir=Path("data/analytics"))
        >>> await sink.record_snapshot(item)
    """

    TABLE_NAME = "game_snapshots"

    def __init__(
        self,
        *,
        output_dir: Path | None = None,
        environment: str = "development",
    ) -> None:
        """
        Initialize the sink.

        Args:
            output_dir: Directory for local output (defaults to ./data/analytics)
            environment: Environment name stamped on every snapshot
        """
        self._output_dir = output_dir or Path("data/analytics")
        self._environment = environment
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__, component="analytics_sink")

        self._output_dir.mkdir(parents=True, exist_ok=True)

    def partition_path(self, recorded_at: datetime) -> Path:
        """Directory holding snapshots recorded on a given day."""
        return self._output_dir / self.TABLE_NAME / f"date={recorded_at.strftime('%Y-%m-%d')}"

    async def record_snapshot(self, item: CatalogItem) -> None:
        """
        Append a snapshot of ``item``.

        Items without genres are skipped: genre analytics cannot use them.
        """
        if not item.genres:
            self._logger.warning("Skipping snapshot without genres", app_id=item.app_id)
            return

        snapshot = CatalogSnapshot(
            metadata=SnapshotMetadata(environment=self._environment),
            item=item.to_dict(),
        )
        partition = self.partition_path(snapshot.metadata.recorded_at)
        output_path = partition / "snapshots.jsonl"

        async with self._lock:
            partition.mkdir(parents=True, exist_ok=True)
            with output_path.open("a", encoding="utf-8") as f:
                f.write(snapshot.model_dump_json() + "\n")

        self._logger.debug(
            "Recorded snapshot",
            app_id=item.app_id,
            snapshot_id=str(snapshot.metadata.snapshot_id),
            output_path=str(output_path),
        )
