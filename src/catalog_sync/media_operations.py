"""
Media CDN operations for uploading and deleting product media.

MediaOperations is the interface the media provider depends on;
CloudinaryOperations implements it with the Cloudinary SDK.
"""

from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import NamedTuple

import cloudinary
import cloudinary.uploader

from .config.models import CdnConfig
from .exceptions import RemoteOperationError

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp", "svg"}
VIDEO_EXTENSIONS = {"mp4", "mov", "avi", "webm"}


class UploadResult(NamedTuple):
    """Result of a successful upload."""

    public_id: str
    format: str
    resource_type: str


def resource_type_for(path: str) -> str:
    """CDN resource kind (image, video or raw) for a file path."""
    ext = PurePosixPath(path).suffix.lstrip(".").lower()
    if ext in IMAGE_EXTENSIONS:
        return "image"
    if ext in VIDEO_EXTENSIONS:
        return "video"
    return "raw"


def media_type_for(file_format: str) -> str:
    """Manifest media type for a CDN format (file extension)."""
    file_format = (file_format or "").lower()
    if file_format in IMAGE_EXTENSIONS:
        return "image"
    if file_format in VIDEO_EXTENSIONS:
        return "video"
    if file_format == "pdf":
        return "pdf"
    return "other"


def public_id_for(local_path: str, folder: str) -> str:
    """
    Deterministic remote key for a media file.

    The key mirrors the manifest-relative path without its extension, so the
    same file always maps to the same asset across runs.
    """
    relative = PurePosixPath(local_path.replace("\\", "/").lstrip("/"))
    stem = str(relative.with_suffix(""))
    return f"{folder}/{stem}" if folder else stem


class MediaOperations(ABC):
    """Interface to the media CDN."""

    @abstractmethod
    def upload(self, local_path: str, public_id: str, resource_type: str) -> UploadResult:
        """
        Upload a local file.

        Args:
            local_path: Full path of the file on disk
            public_id: Desired remote key
            resource_type: image, video or raw

        Returns:
            UploadResult describing the stored asset
        """

    @abstractmethod
    def delete(self, public_id: str, resource_type: str = "image") -> None:
        """
        Delete a remote asset. Deleting an asset that no longer exists is not
        an error.
        """


class CloudinaryOperations(MediaOperations):
    """Cloudinary implementation of the media CDN interface."""

    def __init__(self, cdn_config: CdnConfig):
        self.cdn_config = cdn_config
        self._configured = False

    def _ensure_configured(self) -> None:
        # Credentials are resolved lazily so validation-only runs need none.
        if not self._configured:
            cloudinary.config(
                cloud_name=self.cdn_config.cloud_name.resolve(),
                api_key=self.cdn_config.api_key.resolve(),
                api_secret=self.cdn_config.api_secret.resolve(),
                secure=True,
            )
            self._configured = True

    def upload(self, local_path: str, public_id: str, resource_type: str) -> UploadResult:
        self._ensure_configured()
        result = cloudinary.uploader.upload(
            local_path,
            public_id=public_id,
            resource_type=resource_type,
            overwrite=False,
        )
        if not result or "public_id" not in result:
            raise RemoteOperationError(f"Upload of {local_path} returned no public_id")

        return UploadResult(
            public_id=result["public_id"],
            format=result.get("format") or PurePosixPath(local_path).suffix.lstrip("."),
            resource_type=result.get("resource_type", resource_type),
        )

    def delete(self, public_id: str, resource_type: str = "image") -> None:
        self._ensure_configured()
        result = cloudinary.uploader.destroy(
            public_id, resource_type=resource_type, invalidate=True
        )
        outcome = (result or {}).get("result")
        if outcome not in ("ok", "not found"):
            raise RemoteOperationError(f"Delete of {public_id} failed: {outcome}")
