"""
Catalog synchronization system.

Reconciles a declarative product manifest and its local media tree with a
media CDN, a payment-provider catalog and a relational database.
"""

__version__ = "1.0.0"

__all__ = [
    "__version__",
]
