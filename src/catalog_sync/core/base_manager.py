"""
Base manager class with common functionality for catalog sync operations.

This module provides shared functionality for turning the RunResult lists
produced by providers into a SyncReport and writing them to the run log.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from ..audit.logger import CatalogSyncLogger
from ..config.models import RunResult, SyncReport, SyncSystemConfig


class BaseManager:
    """Base manager class with common functionality for catalog sync operations."""

    def __init__(
        self,
        config: SyncSystemConfig,
        logger: CatalogSyncLogger,
        run_id: Optional[str] = None,
    ):
        """
        Initialize the base manager.

        Args:
            config: System configuration
            logger: Logger instance
            run_id: Optional run identifier
        """
        self.config = config
        self.logger = logger
        self.run_id = run_id or str(uuid.uuid4())

    def log_run_result(self, result: RunResult) -> None:
        """
        Write a RunResult to the run log.

        Args:
            result: RunResult object to log
        """
        start_dt = datetime.fromisoformat(result.start_time.replace("Z", "+00:00"))
        end_dt = datetime.fromisoformat(result.end_time.replace("Z", "+00:00"))
        extra = {
            "run_id": self.run_id,
            "operation": result.operation_type.value,
            "entity_id": result.entity_id,
            "action": result.action,
            "status": result.status,
            "duration_seconds": round((end_dt - start_dt).total_seconds(), 3),
            "attempt_number": result.attempt_number or 1,
            "max_attempts": result.max_attempts or 1,
        }
        if result.error_message:
            extra["error_message"] = result.error_message
        self.logger.debug("Run result", extra=extra)

    def log_run_results(self, results: List[RunResult]) -> None:
        """
        Write multiple RunResult objects to the run log.

        Args:
            results: List of RunResult objects to log
        """
        for result in results:
            self.log_run_result(result)

    def create_report(
        self,
        start_time: datetime,
        results: List[RunResult],
        manifest_written: bool = False,
    ) -> SyncReport:
        """
        Create a run report from every result of the run.

        Args:
            start_time: Run start time
            results: List of operation results across all stages
            manifest_written: Whether the manifest file was rewritten
        """
        end_time = datetime.now(timezone.utc)
        report = SyncReport(
            run_id=self.run_id,
            start_time=start_time.isoformat(),
            end_time=end_time.isoformat(),
            duration=(end_time - start_time).total_seconds(),
            manifest_written=manifest_written,
        )
        for result in results:
            report.record(result)
        return report

    def log_report(self, report: SyncReport) -> None:
        """
        Log the run report counters.

        Args:
            report: Report to log
        """
        extra = report.model_dump(
            exclude={"media_errors", "catalog_errors", "persistence_errors"}
        )
        extra["errors"] = len(report.errors)

        if report.has_errors:
            self.logger.warning(
                f"Reconciliation completed with {len(report.errors)} errors "
                f"in {report.duration:.1f}s",
                extra=extra,
            )
        else:
            self.logger.info(
                f"Reconciliation completed in {report.duration:.1f}s", extra=extra
            )
