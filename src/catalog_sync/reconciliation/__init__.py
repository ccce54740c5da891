"""
Reconciliation module for the catalog sync system.
"""

from .reconciliation_manager import ReconciliationManager

__all__ = ["ReconciliationManager"]
