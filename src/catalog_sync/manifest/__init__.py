"""
Manifest module for the catalog sync system.

The manifest is the single source of truth for the product catalog. It is
loaded and validated once per run, mutated in memory by the sync stages and
written back when anything changed.
"""

from .models import Manifest, MediaItem, Product, ProductDependency, ProductSpec, Variant
from .store import ManifestStore

__all__ = [
    "Manifest",
    "ManifestStore",
    "MediaItem",
    "Product",
    "ProductDependency",
    "ProductSpec",
    "Variant",
]
