"""
Core module for the catalog sync system.
"""

from .base_manager import BaseManager

__all__ = ["BaseManager"]
