"""
Reconciliation manager that drives a full catalog sync run.

A run loads the manifest, reconciles media with the CDN, converges the
payment catalog, writes the manifest back when it changed and finally
persists the catalog into the relational store. Stages run strictly in that
order; failures inside a stage are recorded per entity and never stop the
run. Only a manifest that cannot be loaded or written aborts it.
"""

from datetime import datetime, timezone
from typing import List, Optional

from ..audit.logger import CatalogSyncLogger
from ..catalog_operations import CatalogOperations
from ..config.models import RunResult, SyncReport, SyncSystemConfig
from ..core.base_manager import BaseManager
from ..database_operations import DatabaseOperations
from ..exceptions import ManifestError
from ..manifest.models import Manifest
from ..manifest.store import ManifestStore
from ..media_operations import MediaOperations
from ..providers.catalog_provider import CatalogSyncProvider
from ..providers.media_provider import MediaSyncProvider
from ..providers.persistence_provider import PersistenceSyncProvider


class ReconciliationManager(BaseManager):
    """Manager for coordinating a reconciliation run across all subsystems."""

    def __init__(
        self,
        config: SyncSystemConfig,
        logger: CatalogSyncLogger,
        media_ops: MediaOperations,
        catalog_ops: CatalogOperations,
        db_ops: DatabaseOperations,
        run_id: Optional[str] = None,
        manifest_store: Optional[ManifestStore] = None,
    ):
        """
        Initialize the reconciliation manager.

        Args:
            config: System configuration
            logger: Logger instance
            media_ops: CDN operations
            catalog_ops: Payment catalog operations
            db_ops: Relational store operations
            run_id: Optional run identifier
            manifest_store: Store for the manifest; defaults to config.manifest_path
        """
        super().__init__(config, logger, run_id)
        self.manifest_store = manifest_store or ManifestStore(
            config.manifest_path, logger
        )

        provider_args = {
            "logger": logger,
            "run_id": self.run_id,
            "retry": config.retry,
            "max_workers": config.concurrency.max_workers,
            "timeout_seconds": config.concurrency.timeout_seconds,
        }
        self.media_provider = MediaSyncProvider(
            media_ops, config.media_dir, config.cdn.folder, **provider_args
        )
        self.catalog_provider = CatalogSyncProvider(catalog_ops, **provider_args)
        self.persistence_provider = PersistenceSyncProvider(
            db_ops, config.persistence, **provider_args
        )

    def run_reconciliation(self) -> SyncReport:
        """
        Run every stage of a reconciliation.

        Returns:
            SyncReport with per-subsystem counts and errors

        Raises:
            ManifestError: If the manifest cannot be loaded or written back
        """
        start_time = datetime.now(timezone.utc)
        self.logger.info(
            f"Starting reconciliation (run_id: {self.run_id})",
            extra={"run_id": self.run_id},
        )

        manifest = self.manifest_store.load()

        results: List[RunResult] = []
        results.extend(self._sync_media(manifest))
        results.extend(self._sync_catalog(manifest))
        manifest_written = self._save_manifest(manifest)
        results.extend(self._persist(manifest))

        report = self.create_report(start_time, results, manifest_written)
        self.log_run_results(results)
        self.log_report(report)
        return report

    def _sync_media(self, manifest: Manifest) -> List[RunResult]:
        results = []
        results.extend(self.media_provider.upload_media(manifest.products))
        results.extend(self.media_provider.upload_media(manifest.variants))
        results.extend(self.media_provider.tombstone_media(manifest.products))
        results.extend(self.media_provider.tombstone_media(manifest.variants))
        return results

    def _sync_catalog(self, manifest: Manifest) -> List[RunResult]:
        results = self.catalog_provider.sync_products(manifest)
        stamped = self.catalog_provider.stamp_last_synced(manifest.products, results)
        self.logger.debug(
            f"Stamped last_synced_at on {stamped} products",
            extra={"run_id": self.run_id},
        )
        return results

    def _save_manifest(self, manifest: Manifest) -> bool:
        try:
            return self.manifest_store.save(manifest)
        except OSError as e:
            # Remote ids assigned in this run exist only in memory now.
            self.logger.error(
                f"Failed to write manifest: {e}",
                extra={"run_id": self.run_id},
                exc_info=True,
            )
            raise ManifestError(
                f"Cannot write manifest {self.manifest_store.manifest_path}: {e}",
                self.manifest_store.manifest_path,
            ) from e

    def _persist(self, manifest: Manifest) -> List[RunResult]:
        provider = self.persistence_provider
        results = []
        results.extend(provider.persist_products(manifest.products))
        results.extend(provider.persist_variants(manifest.variants))
        results.extend(provider.persist_specs(manifest.products))
        results.extend(provider.persist_dependencies(manifest.dependencies))
        results.extend(provider.sweep_deleted_products(manifest.product_ids()))
        return results
