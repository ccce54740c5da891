"""
Exceptions raised by the catalog synchronization system.

Fatal errors (configuration and manifest problems) propagate to the entry
point and stop the run. Everything else is caught at the entity boundary and
recorded in the run report.
"""


class CatalogSyncError(Exception):
    """Base class for all catalog sync errors."""


class ConfigurationError(CatalogSyncError):
    """Raised when the configuration file or its secrets are invalid."""


class ManifestError(CatalogSyncError):
    """Raised when the manifest is missing, unparsable or fails validation."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class MediaFileMissingError(CatalogSyncError):
    """Raised when a media file referenced by the manifest was never found on disk."""

    def __init__(self, local_path: str):
        super().__init__(f"File not found at {local_path}")
        self.local_path = local_path


class RemoteOperationError(CatalogSyncError):
    """Raised by a remote collaborator when a call fails or returns bad data."""


class PartialCreateError(RemoteOperationError):
    """Raised when a remote entity was created but some of its prices were not."""

    def __init__(self, message: str, remote_id: str):
        super().__init__(message)
        self.remote_id = remote_id
