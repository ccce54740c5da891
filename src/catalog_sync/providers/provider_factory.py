"""
Provider factory for the catalog sync system.

This module builds the remote collaborators from configuration, resolving
their secrets, and wires them into a ReconciliationManager.
"""

from typing import Optional

from ..audit.logger import CatalogSyncLogger
from ..catalog_operations import CatalogOperations, StripeCatalogOperations
from ..config.models import SyncSystemConfig
from ..database_operations import DatabaseOperations
from ..media_operations import CloudinaryOperations, MediaOperations
from ..reconciliation.reconciliation_manager import ReconciliationManager


class ProviderFactory:
    """Factory for the collaborators used by a reconciliation run."""

    def __init__(self, config: SyncSystemConfig, logger: CatalogSyncLogger):
        """
        Initialize the provider factory.

        Args:
            config: System configuration
            logger: Logger instance
        """
        self.config = config
        self.logger = logger

    def check_secrets(self) -> None:
        """Fail before any remote call if a service secret is missing."""
        for secret in (
            self.config.cdn.cloud_name,
            self.config.cdn.api_key,
            self.config.cdn.api_secret,
            self.config.payments.api_key,
            self.config.database.url,
        ):
            secret.resolve()

    def create_media_operations(self) -> MediaOperations:
        return CloudinaryOperations(self.config.cdn)

    def create_catalog_operations(self) -> CatalogOperations:
        return StripeCatalogOperations(self.config.payments)

    def create_database_operations(self) -> DatabaseOperations:
        """Connect to the relational store and make sure the tables exist."""
        db_ops = DatabaseOperations.from_url(
            self.config.database.url.resolve(), echo=self.config.database.echo
        )
        db_ops.create_tables()
        return db_ops

    def create_reconciliation_manager(
        self, run_id: Optional[str] = None
    ) -> ReconciliationManager:
        """
        Create a ReconciliationManager backed by the configured services.

        Raises:
            ConfigurationError: If a required secret is not set
        """
        self.check_secrets()
        return ReconciliationManager(
            self.config,
            self.logger,
            media_ops=self.create_media_operations(),
            catalog_ops=self.create_catalog_operations(),
            db_ops=self.create_database_operations(),
            run_id=run_id,
        )
