"""
Logging module for the catalog sync system.
"""

from .logger import CatalogSyncLogger

__all__ = ["CatalogSyncLogger"]
