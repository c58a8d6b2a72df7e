"""
Catalog synchronization.

Merge policy, the per-run orchestrator, and the periodic scheduler.
"""

from game_releases.sync.merge import MergeAction, MergeOutcome, merge_item, should_accept_followers
from game_releases.sync.orchestrator import (
    ItemStage,
    SyncAbortedError,
    SyncConfigurationError,
    SyncError,
    SyncOrchestrator,
    SyncReport,
)
from game_releases.sync.scheduler import SyncScheduler

__all__ = [
    "ItemStage",
    "MergeAction",
    "MergeOutcome",
    "SyncAbortedError",
    "SyncConfigurationError",
    "SyncError",
    "SyncOrchestrator",
    "SyncReport",
    "SyncScheduler",
    "merge_item",
    "should_accept_followers",
]
