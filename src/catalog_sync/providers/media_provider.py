"""
Media provider implementation for the catalog sync system.

This module reconciles the media files referenced by the manifest with the
CDN: new files are uploaded, files that vanished from disk after a
successful upload are deleted remotely and tombstoned in the manifest.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from ..audit.logger import CatalogSyncLogger
from ..config.models import OperationType, RetryConfig, RunResult
from ..exceptions import MediaFileMissingError
from ..manifest.models import MediaItem, MediaOwner, MediaType
from ..media_operations import (
    MediaOperations,
    media_type_for,
    public_id_for,
    resource_type_for,
)
from ..utils import retry_with_logging, utc_now_iso
from .base_provider import BaseProvider


class MediaSyncProvider(BaseProvider):
    """Provider for media upload and tombstone operations."""

    def __init__(
        self,
        media_ops: MediaOperations,
        media_dir: Union[str, Path],
        folder: str,
        logger: CatalogSyncLogger,
        run_id: str,
        retry: Optional[RetryConfig] = None,
        max_workers: int = 1,
        timeout_seconds: int = 600,
    ):
        """
        Initialize the media provider.

        Args:
            media_ops: CDN operations
            media_dir: Directory that manifest media paths are relative to
            folder: CDN folder prefix for remote keys
            logger: Logger instance
            run_id: Unique run identifier
            retry: Retry configuration
            max_workers: Maximum number of concurrent workers
            timeout_seconds: Timeout for a single entity task
        """
        super().__init__(logger, run_id, retry, max_workers, timeout_seconds)
        self.media_ops = media_ops
        self.media_dir = Path(media_dir)
        self.folder = folder

    def get_operation_name(self) -> OperationType:
        return OperationType.MEDIA

    def upload_media(self, owners: Sequence[MediaOwner]) -> List[RunResult]:
        """
        Upload every media item that has a local file but no remote asset.

        Args:
            owners: Products or variants whose media to process

        Returns:
            One RunResult per live media item
        """
        return self.process_concurrently(owners, self._upload_owner_media, "media upload")

    def tombstone_media(self, owners: Sequence[MediaOwner]) -> List[RunResult]:
        """
        Delete and tombstone uploaded media whose local file is gone.

        Args:
            owners: Products or variants whose media to process

        Returns:
            One RunResult per media item that was (or failed to be) removed
        """
        return self.process_concurrently(
            owners, self._tombstone_owner_media, "media cleanup"
        )

    def _upload_owner_media(self, owner: MediaOwner) -> List[RunResult]:
        results = []
        for item in owner.media:
            if item.is_tombstoned:
                continue
            if item.remote_asset_id:
                results.append(
                    self._create_result(
                        owner.id,
                        "skipped",
                        datetime.now(timezone.utc),
                        details={"local_path": item.local_path},
                    )
                )
                continue
            results.append(
                self._process_item_safely(owner.id, item, self._upload_item)
            )
        return results

    def _process_item_safely(
        self,
        entity_id: str,
        item: MediaItem,
        process_item: Callable[[str, MediaItem], Optional[RunResult]],
    ) -> Optional[RunResult]:
        """Run one item's step; an unexpected failure is recorded for that item only."""
        start_time = datetime.now(timezone.utc)
        try:
            return process_item(entity_id, item)
        except Exception as e:
            reason = str(e) or e.__class__.__name__
            error_msg = f"Media {item.local_path} failed: {reason}"
            self.logger.error(
                error_msg, extra=self.log_extra(entity_id=entity_id), exc_info=True
            )
            return self._create_failed_result(
                entity_id, error_msg, start_time, {"local_path": item.local_path}
            )

    def _upload_item(self, entity_id: str, item: MediaItem) -> RunResult:
        start_time = datetime.now(timezone.utc)
        details = {"local_path": item.local_path}
        full_path = self.media_dir / item.local_path

        if not full_path.is_file():
            error = MediaFileMissingError(item.local_path)
            self.logger.warning(
                str(error), extra=self.log_extra(entity_id=entity_id, **details)
            )
            return self._create_failed_result(entity_id, str(error), start_time, details)

        public_id = public_id_for(item.local_path, self.folder)
        resource_type = resource_type_for(item.local_path)

        @retry_with_logging(self.retry, self.logger)
        def upload_operation():
            return self.media_ops.upload(str(full_path), public_id, resource_type)

        upload, error, attempt, max_attempts = upload_operation()
        if error is not None:
            error_msg = f"Upload of {item.local_path} failed: {error}"
            self.logger.error(error_msg, extra=self.log_extra(entity_id=entity_id))
            return self._create_failed_result(
                entity_id, error_msg, start_time, details, attempt, max_attempts
            )

        item.remote_asset_id = upload.public_id
        item.uploaded_at = utc_now_iso()
        if item.type is None:
            item.type = MediaType(media_type_for(upload.format))
        if not item.mime_type:
            item.mime_type = f"{upload.resource_type}/{upload.format}"

        self.logger.info(
            "Media uploaded",
            extra=self.log_extra(
                entity_id=entity_id, local_path=item.local_path, public_id=upload.public_id
            ),
        )
        return self._create_result(
            entity_id,
            "uploaded",
            start_time,
            details={**details, "public_id": upload.public_id},
            attempt_number=attempt,
            max_attempts=max_attempts,
        )

    def _tombstone_owner_media(self, owner: MediaOwner) -> List[RunResult]:
        results = []
        for item in owner.media:
            if item.is_tombstoned or not item.remote_asset_id or not item.local_path:
                continue
            result = self._process_item_safely(owner.id, item, self._tombstone_if_gone)
            if result is not None:
                results.append(result)
        return results

    def _tombstone_if_gone(
        self, entity_id: str, item: MediaItem
    ) -> Optional[RunResult]:
        if (self.media_dir / item.local_path).exists():
            return None
        return self._tombstone_item(entity_id, item)

    def _tombstone_item(self, entity_id: str, item: MediaItem) -> RunResult:
        start_time = datetime.now(timezone.utc)
        public_id = item.remote_asset_id
        details = {"local_path": item.local_path, "public_id": public_id}

        @retry_with_logging(self.retry, self.logger)
        def delete_operation():
            self.media_ops.delete(public_id, resource_type_for(item.local_path))

        _, error, attempt, max_attempts = delete_operation()
        if error is not None:
            error_msg = f"Cleanup failed for {item.local_path}: {error}"
            self.logger.error(error_msg, extra=self.log_extra(entity_id=entity_id))
            return self._create_failed_result(
                entity_id, error_msg, start_time, details, attempt, max_attempts
            )

        item.tombstone(utc_now_iso())
        self.logger.info(
            "Media marked as deleted", extra=self.log_extra(entity_id=entity_id, **details)
        )
        return self._create_result(
            entity_id,
            "deleted",
            start_time,
            details=details,
            attempt_number=attempt,
            max_attempts=max_attempts,
        )
