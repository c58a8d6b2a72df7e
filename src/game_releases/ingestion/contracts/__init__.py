"""
Data contracts for Steam Store responses.

Pydantic models describing the expected structure of the
appdetails payload, validated before anything reaches the catalog.
"""

from game_releases.ingestion.contracts.steam_store import (
    AppId,
    Genre,
    Platform,
    ReleaseDate,
    StoreAppDetails,
    StoreAppDetailsEnvelope,
)

__all__ = [
    "AppId",
    "Genre",
    "Platform",
    "ReleaseDate",
    "StoreAppDetails",
    "StoreAppDetailsEnvelope",
]
