"""
Configuration module for the catalog sync system.
"""

from .loader import ConfigLoader
from .models import SyncSystemConfig

__all__ = ["ConfigLoader", "SyncSystemConfig"]
