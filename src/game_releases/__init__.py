"""
Game Releases synchronization engine.

Discovers upcoming games on the Steam storefront and keeps a
local catalog of release dates, metadata and follower counts in sync.
"""

from game_releases.config import Settings, get_settings
from game_releases.logger import get_logger, setup_logging

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
