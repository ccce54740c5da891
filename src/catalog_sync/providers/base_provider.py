"""
Base provider class for catalog sync operations.

This module provides shared functionality that can be reused across the
media, catalog and persistence providers: per-entity fan-out with an
optional worker pool, and consistent RunResult construction.
"""

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, TypeVar

from ..audit.logger import CatalogSyncLogger
from ..config.models import OperationType, RetryConfig, RunResult

EntityT = TypeVar("EntityT")


class BaseProvider(ABC):
    """Base provider class with shared functionality for sync operations."""

    def __init__(
        self,
        logger: CatalogSyncLogger,
        run_id: str,
        retry: Optional[RetryConfig] = None,
        max_workers: int = 1,
        timeout_seconds: int = 600,
    ):
        """
        Initialize the base provider.

        Args:
            logger: Logger instance
            run_id: Unique run identifier
            retry: Retry configuration
            max_workers: Maximum number of concurrent workers
            timeout_seconds: Timeout for a single entity task
        """
        self.logger = logger
        self.run_id = run_id
        self.retry = (
            retry if retry else RetryConfig(max_attempts=1, retry_delay_seconds=0)
        )
        self.max_workers = max_workers
        self.timeout_seconds = timeout_seconds

    @abstractmethod
    def get_operation_name(self) -> OperationType:
        """
        Get the operation type for results and logging.
        Must be implemented by subclasses.
        """

    def log_extra(self, **fields) -> dict:
        return {"run_id": self.run_id, "operation": self.get_operation_name().value, **fields}

    def process_concurrently(
        self,
        entities: Sequence[EntityT],
        process_entity: Callable[[EntityT], List[RunResult]],
        stage: str,
    ) -> List[RunResult]:
        """
        Run process_entity once per entity and merge the results.

        Each entity is handled by exactly one task, so two operations on the
        same entity never overlap. With a single worker everything runs in
        the calling thread, in manifest order.

        Args:
            entities: Products or variants to process
            process_entity: Callable returning the results for one entity
            stage: Stage name for logging

        Returns:
            List of RunResult objects for every entity
        """
        results: List[RunResult] = []
        if not entities:
            self.logger.debug(f"No entities for {stage}", extra=self.log_extra())
            return results

        self.logger.info(
            f"Starting {stage} of {len(entities)} entities using "
            f"{self.max_workers} workers",
            extra=self.log_extra(),
        )

        if self.max_workers <= 1:
            for entity in entities:
                results.extend(self._process_entity_safely(entity, process_entity))
            return results

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_entity = {
                executor.submit(self._process_entity_safely, entity, process_entity): entity
                for entity in entities
            }

            for future in as_completed(future_to_entity):
                entity = future_to_entity[future]
                try:
                    results.extend(future.result(timeout=self.timeout_seconds))
                except Exception as e:
                    error_msg = f"{stage} failed: {str(e)}"
                    self.logger.error(error_msg, extra=self.log_extra(), exc_info=True)
                    results.append(
                        self._create_failed_result(self._entity_id(entity), error_msg)
                    )

        return results

    def _process_entity_safely(
        self, entity: EntityT, process_entity: Callable[[EntityT], List[RunResult]]
    ) -> List[RunResult]:
        start_time = datetime.now(timezone.utc)
        try:
            return process_entity(entity)
        except Exception as e:
            entity_id = self._entity_id(entity)
            error_msg = str(e) or e.__class__.__name__
            self.logger.error(
                f"Unexpected failure processing {entity_id}: {error_msg}",
                extra=self.log_extra(entity_id=entity_id),
                exc_info=True,
            )
            return [self._create_failed_result(entity_id, error_msg, start_time)]

    @staticmethod
    def _entity_id(entity) -> str:
        return str(getattr(entity, "id", entity))

    def _create_result(
        self,
        entity_id: str,
        action: str,
        start_time: datetime,
        details: Optional[dict] = None,
        attempt_number: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ) -> RunResult:
        """Create a successful RunResult."""
        return RunResult(
            operation_type=self.get_operation_name(),
            entity_id=entity_id,
            action=action,
            status="success",
            start_time=start_time.isoformat(),
            end_time=datetime.now(timezone.utc).isoformat(),
            details=details,
            attempt_number=attempt_number,
            max_attempts=max_attempts,
        )

    def _create_failed_result(
        self,
        entity_id: str,
        error_msg: str = "",
        start_time: Optional[datetime] = None,
        details: Optional[dict] = None,
        attempt_number: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ) -> RunResult:
        """
        Create a failed RunResult object with consistent structure.

        Args:
            entity_id: Id of the manifest entity that owns the failure
            error_msg: Error message
            start_time: Operation start time
            details: Additional details
            attempt_number: Attempts made
            max_attempts: Attempts allowed

        Returns:
            RunResult object with failed status
        """
        if start_time is None:
            start_time = datetime.now(timezone.utc)

        return RunResult(
            operation_type=self.get_operation_name(),
            entity_id=entity_id,
            action="failed",
            status="failed",
            start_time=start_time.isoformat(),
            end_time=datetime.now(timezone.utc).isoformat(),
            error_message=error_msg,
            details=details,
            attempt_number=attempt_number,
            max_attempts=max_attempts,
        )
