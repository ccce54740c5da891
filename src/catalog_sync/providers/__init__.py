"""
Providers module for the catalog sync system.

This module provides the provider classes for the media, catalog and
persistence stages of a reconciliation run.
"""

from .base_provider import BaseProvider
from .catalog_provider import CatalogSyncProvider
from .media_provider import MediaSyncProvider
from .persistence_provider import PersistenceSyncProvider

__all__ = [
    "BaseProvider",
    "CatalogSyncProvider",
    "MediaSyncProvider",
    "PersistenceSyncProvider",
]
