"""
Persistence provider implementation for the catalog sync system.

This module writes the reconciled manifest into the relational store:
products and variants are upserted by primary key, specs and dependencies
are inserted when absent, and products that left the manifest are marked
inactive rather than deleted so order history keeps its references.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from ..audit.logger import CatalogSyncLogger
from ..config.models import OperationType, PersistenceConfig, RetryConfig, RunResult
from ..database_operations import DatabaseOperations
from ..manifest.models import MediaItem, Product, ProductDependency, Variant
from ..utils import retry_with_logging
from .base_provider import BaseProvider

SWEEP_ENTITY_ID = "products"


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _media_values(media: Sequence[MediaItem]) -> List[Dict[str, Any]]:
    """Live media items as stored in the JSON column."""
    return [
        item.model_dump(mode="json", exclude_none=True, exclude={"deleted"})
        for item in media
        if not item.is_tombstoned
    ]


def product_values(product: Product) -> Dict[str, Any]:
    """Column values for a product row. sold_quantity is never included."""
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "category": product.category,
        "dev_status": product.dev_status,
        "base_price": product.base_price,
        "is_active": True,
        "requires_assembly": product.requires_assembly,
        "has_variants": product.has_variants,
        "max_quantity": product.max_quantity,
        "is_live": product.is_active,
        "cost_cents": product.cost_cents,
        "wholesale_price_cents": product.wholesale_price_cents,
        "sell_status": product.sell_status.value,
        "sell_status_note": product.sell_status_note,
        "last_synced_at": _parse_timestamp(product.last_synced_at),
        "media": _media_values(product.media),
        "stripe_product_id": product.remote_catalog_id,
        "stripe_price_id": product.remote_price_id,
        "show_on_portfolio_page": product.show_on_portfolio_page,
        "portfolio_copy": product.portfolio_copy,
        "is_featured": product.is_featured,
    }


def variant_values(variant: Variant) -> Dict[str, Any]:
    """Column values for a variant row. sold_quantity is never included."""
    return {
        "id": variant.id,
        "product_id": variant.product_id,
        "stripe_product_id": variant.remote_catalog_parent_id,
        "stripe_price_id": variant.remote_price_id,
        "variant_type": variant.variant_type,
        "variant_value": variant.variant_value,
        "price_modifier": variant.price_modifier,
        "is_limited_edition": variant.is_limited_edition,
        "max_quantity": variant.max_quantity,
        "media": _media_values(variant.media),
    }


class PersistenceSyncProvider(BaseProvider):
    """Provider for relational store writes."""

    def __init__(
        self,
        db_ops: DatabaseOperations,
        persistence_config: PersistenceConfig,
        logger: CatalogSyncLogger,
        run_id: str,
        retry: Optional[RetryConfig] = None,
        max_workers: int = 1,
        timeout_seconds: int = 600,
    ):
        """
        Initialize the persistence provider.

        Args:
            db_ops: Database operations helper
            persistence_config: Persistence behaviour settings
            logger: Logger instance
            run_id: Unique run identifier
            retry: Retry configuration
            max_workers: Maximum number of concurrent workers
            timeout_seconds: Timeout for a single entity task
        """
        super().__init__(logger, run_id, retry, max_workers, timeout_seconds)
        self.db_ops = db_ops
        self.persistence_config = persistence_config

    def get_operation_name(self) -> OperationType:
        return OperationType.PERSISTENCE

    def _write(self, entity_id: str, write, description: str) -> RunResult:
        start_time = datetime.now(timezone.utc)

        @retry_with_logging(self.retry, self.logger)
        def write_operation():
            return write()

        changed, error, attempt, max_attempts = write_operation()
        if error is not None:
            error_msg = f"{description} failed: {error}"
            self.logger.error(error_msg, extra=self.log_extra(entity_id=entity_id))
            return self._create_failed_result(
                entity_id, error_msg, start_time, None, attempt, max_attempts
            )

        return self._create_result(
            entity_id,
            "persisted" if changed else "unchanged",
            start_time,
            details={"write": description},
            attempt_number=attempt,
            max_attempts=max_attempts,
        )

    def persist_products(self, products: Sequence[Product]) -> List[RunResult]:
        """Upsert every product row."""
        return self.process_concurrently(
            products,
            lambda product: [
                self._write(
                    product.id,
                    lambda: self.db_ops.upsert_product(product_values(product)),
                    "Product upsert",
                )
            ],
            "product persistence",
        )

    def persist_variants(self, variants: Sequence[Variant]) -> List[RunResult]:
        """Upsert every variant row."""
        return self.process_concurrently(
            variants,
            lambda variant: [
                self._write(
                    variant.id,
                    lambda: self.db_ops.upsert_variant(variant_values(variant)),
                    "Variant upsert",
                )
            ],
            "variant persistence",
        )

    def _persist_product_specs(self, product: Product) -> List[RunResult]:
        results = []
        for spec in product.specs:
            values = {
                "product_id": product.id,
                "spec_key": spec.key,
                "spec_value": spec.value,
                "spec_unit": spec.unit,
                "display_order": spec.display_order,
            }
            results.append(
                self._write(
                    product.id,
                    lambda values=values: self.db_ops.insert_spec(values),
                    f"Spec {spec.key} insert",
                )
            )
        return results

    def persist_specs(self, products: Sequence[Product]) -> List[RunResult]:
        """Insert specs that are not stored yet. Existing specs are left as is."""
        return self.process_concurrently(
            [product for product in products if product.specs],
            self._persist_product_specs,
            "spec persistence",
        )

    def persist_dependencies(
        self, dependencies: Sequence[ProductDependency]
    ) -> List[RunResult]:
        """Insert dependency rules that are not stored yet."""
        results = []
        for dependency in dependencies:
            values = {
                "product_id": dependency.product_id,
                "depends_on_product_id": dependency.depends_on_product_id,
                "dependency_type": dependency.dependency_type.value,
                "message": dependency.message,
            }
            results.append(
                self._write(
                    dependency.product_id,
                    lambda values=values: self.db_ops.insert_dependency(values),
                    f"Dependency {dependency.key} insert",
                )
            )
        return results

    def sweep_deleted_products(self, product_ids: Sequence[str]) -> List[RunResult]:
        """
        Mark products that are no longer in the manifest as inactive.

        An empty manifest deactivates every product unless
        persistence.sweep_on_empty_manifest is disabled, in which case the
        sweep is refused and reported as an error.

        Args:
            product_ids: Ids of every product in the manifest

        Returns:
            A single RunResult carrying the number of rows deactivated
        """
        start_time = datetime.now(timezone.utc)

        if not product_ids:
            if not self.persistence_config.sweep_on_empty_manifest:
                error_msg = (
                    "Refusing to deactivate every product: the manifest has no "
                    "products and persistence.sweep_on_empty_manifest is disabled"
                )
                self.logger.error(error_msg, extra=self.log_extra())
                return [self._create_failed_result(SWEEP_ENTITY_ID, error_msg, start_time)]
            self.logger.warning(
                "Manifest has no products; marking every product inactive",
                extra=self.log_extra(),
            )

        @retry_with_logging(self.retry, self.logger)
        def sweep_operation():
            return self.db_ops.mark_inactive_except(product_ids)

        count, error, attempt, max_attempts = sweep_operation()
        if error is not None:
            error_msg = f"Failed to mark deleted products inactive: {error}"
            self.logger.error(error_msg, extra=self.log_extra())
            return [
                self._create_failed_result(
                    SWEEP_ENTITY_ID, error_msg, start_time, None, attempt, max_attempts
                )
            ]

        if count:
            self.logger.info(
                f"Marked {count} deleted products as inactive", extra=self.log_extra()
            )
        return [
            self._create_result(
                SWEEP_ENTITY_ID,
                "deactivated",
                start_time,
                details={"count": count},
                attempt_number=attempt,
                max_attempts=max_attempts,
            )
        ]
