"""
Catalog provider implementation for the catalog sync system.

This module converges every manifest product onto the payment-provider
catalog. A product with variants becomes one remote entity with one price
per variant; a product without variants becomes one entity with a single
price. Remote identifiers are written back onto the manifest only after the
remote call succeeded, and all of them at once.
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from ..audit.logger import CatalogSyncLogger
from ..catalog_operations import (
    CatalogAction,
    CatalogEntityState,
    CatalogOperations,
    CatalogSyncResult,
    DesiredPrice,
)
from ..config.models import OperationType, RetryConfig, RunResult
from ..exceptions import PartialCreateError
from ..manifest.models import Manifest, Product, Variant
from ..utils import retry_with_logging, utc_now_iso
from .base_provider import BaseProvider


def uses_variant_prices(product: Product, variants: Sequence[Variant]) -> bool:
    """Whether the product is priced per variant."""
    return product.has_variants and len(variants) > 0


def build_desired_state(
    product: Product, variants: Sequence[Variant]
) -> CatalogEntityState:
    """
    Desired remote entity for a product and its variants.

    Args:
        product: Manifest product
        variants: Variants that belong to the product

    Returns:
        CatalogEntityState with one price per variant, or a single price
    """
    if uses_variant_prices(product, variants):
        prices = [
            DesiredPrice(
                key=variant.id,
                amount=product.base_price + variant.price_modifier,
                existing_price_id=variant.remote_price_id,
                nickname=f"{variant.variant_type}: {variant.variant_value}",
                metadata={
                    "variant_id": variant.id,
                    "variant_type": variant.variant_type,
                    "variant_value": variant.variant_value,
                },
            )
            for variant in variants
        ]
        single_price = False
    else:
        prices = [
            DesiredPrice(
                key=product.id,
                amount=product.base_price,
                existing_price_id=product.remote_price_id,
            )
        ]
        single_price = True

    return CatalogEntityState(
        local_id=product.id,
        name=product.name,
        description=product.description,
        active=product.is_active,
        sell_status=product.sell_status.value,
        prices=prices,
        single_price=single_price,
    )


def _assign(record, field: str, value) -> None:
    # Assigning an equal value would still mark the field as set and change
    # the serialized manifest.
    if getattr(record, field) != value:
        setattr(record, field, value)


class CatalogSyncProvider(BaseProvider):
    """Provider for payment-catalog create, update and archive operations."""

    def __init__(
        self,
        catalog_ops: CatalogOperations,
        logger: CatalogSyncLogger,
        run_id: str,
        retry: Optional[RetryConfig] = None,
        max_workers: int = 1,
        timeout_seconds: int = 600,
    ):
        """
        Initialize the catalog provider.

        Args:
            catalog_ops: Payment catalog operations
            logger: Logger instance
            run_id: Unique run identifier
            retry: Retry configuration
            max_workers: Maximum number of concurrent workers
            timeout_seconds: Timeout for a single product task
        """
        super().__init__(logger, run_id, retry, max_workers, timeout_seconds)
        self.catalog_ops = catalog_ops

    def get_operation_name(self) -> OperationType:
        return OperationType.CATALOG

    def sync_products(self, manifest: Manifest) -> List[RunResult]:
        """
        Sync every product in the manifest.

        Args:
            manifest: Manifest to sync; remote ids are written back onto it

        Returns:
            One RunResult per product
        """
        return self.process_concurrently(
            manifest.products,
            lambda product: [
                self._sync_product(product, manifest.variants_for(product.id))
            ],
            "catalog sync",
        )

    def _sync_product(self, product: Product, variants: List[Variant]) -> RunResult:
        start_time = datetime.now(timezone.utc)
        details = {"remote_catalog_id": product.remote_catalog_id}

        try:
            desired = build_desired_state(product, variants)
        except ValueError as e:
            error_msg = f"Invalid catalog state: {e}"
            self.logger.error(error_msg, extra=self.log_extra(entity_id=product.id))
            return self._create_failed_result(product.id, error_msg, start_time, details)

        # Entity created by a failed attempt; later attempts finish it instead
        # of creating another one.
        half_created: List[str] = []

        @retry_with_logging(self.retry, self.logger)
        def sync_operation():
            if not half_created:
                try:
                    return self.catalog_ops.sync_entity(
                        desired, product.remote_catalog_id
                    )
                except PartialCreateError as e:
                    half_created.append(e.remote_id)
                    raise
            result = self.catalog_ops.sync_entity(desired, half_created[0])
            return result.model_copy(update={"action": CatalogAction.CREATED})

        result, error, attempt, max_attempts = sync_operation()
        if error is not None and half_created:
            self._archive_half_created(product.id, half_created[0])
        if error is None and result.error:
            error = result.error
        if error is not None:
            error_msg = f"Catalog sync failed: {error}"
            self.logger.error(error_msg, extra=self.log_extra(entity_id=product.id))
            return self._create_failed_result(
                product.id, error_msg, start_time, details, attempt, max_attempts
            )

        self._apply_result(product, variants, desired, result)

        if result.action != CatalogAction.UNCHANGED:
            self.logger.info(
                f"Catalog entity {result.action.value}",
                extra=self.log_extra(entity_id=product.id, remote_id=result.remote_id),
            )
        return self._create_result(
            product.id,
            result.action.value,
            start_time,
            details={"remote_catalog_id": product.remote_catalog_id},
            attempt_number=attempt,
            max_attempts=max_attempts,
        )

    def _archive_half_created(self, entity_id: str, remote_id: str) -> None:
        """Archive an entity whose prices never got created, so it cannot be sold."""
        try:
            self.catalog_ops.archive_entity(remote_id)
        except Exception as e:
            self.logger.error(
                f"Could not archive partially created entity {remote_id}: {e}",
                extra=self.log_extra(entity_id=entity_id, remote_id=remote_id),
                exc_info=True,
            )
            return
        self.logger.warning(
            f"Archived partially created entity {remote_id}",
            extra=self.log_extra(entity_id=entity_id, remote_id=remote_id),
        )

    @staticmethod
    def _apply_result(
        product: Product,
        variants: Sequence[Variant],
        desired: CatalogEntityState,
        result: CatalogSyncResult,
    ) -> None:
        """Write the remote identifiers from a successful sync onto the manifest."""
        if result.action == CatalogAction.SKIPPED:
            return

        if result.action == CatalogAction.ARCHIVED:
            _assign(product, "remote_catalog_id", None)
            _assign(product, "remote_price_id", None)
            if not desired.single_price:
                for variant in variants:
                    _assign(variant, "remote_catalog_parent_id", None)
                    _assign(variant, "remote_price_id", None)
            return

        _assign(product, "remote_catalog_id", result.remote_id)
        if desired.single_price:
            _assign(
                product,
                "remote_price_id",
                result.remote_price_ids.get(product.id, product.remote_price_id),
            )
            return

        for variant in variants:
            _assign(variant, "remote_catalog_parent_id", result.remote_id)
            _assign(
                variant,
                "remote_price_id",
                result.remote_price_ids.get(variant.id, variant.remote_price_id),
            )

    def stamp_last_synced(
        self, products: Sequence[Product], results: Sequence[RunResult]
    ) -> int:
        """
        Stamp last_synced_at on every product that synced without error.

        Returns:
            Number of products stamped
        """
        failed = {r.entity_id for r in results if r.status == "failed"}
        now = utc_now_iso()
        stamped = 0
        for product in products:
            if product.id not in failed:
                product.last_synced_at = now
                stamped += 1
        return stamped
