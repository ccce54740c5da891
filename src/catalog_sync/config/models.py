"""
Configuration models for the catalog sync system using Pydantic.

This module defines the configuration models that validate and parse the
YAML configuration file, plus the result and report models produced by a
reconciliation run.
"""

import os
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..exceptions import ConfigurationError


class OperationType(str, Enum):
    """Subsystems that produce run results."""

    MEDIA = "media"
    CATALOG = "catalog"
    PERSISTENCE = "persistence"


class SecretConfig(BaseModel):
    """Secret value read from an environment variable."""

    env_var: str

    def resolve(self) -> str:
        """Return the secret value, failing if the variable is unset."""
        value = os.environ.get(self.env_var)
        if not value:
            raise ConfigurationError(
                f"Environment variable {self.env_var} is not set"
            )
        return value


class CdnConfig(BaseModel):
    """Configuration for the media CDN (Cloudinary)."""

    cloud_name: SecretConfig = Field(
        default_factory=lambda: SecretConfig(env_var="CLOUDINARY_CLOUD_NAME")
    )
    api_key: SecretConfig = Field(
        default_factory=lambda: SecretConfig(env_var="CLOUDINARY_API_KEY")
    )
    api_secret: SecretConfig = Field(
        default_factory=lambda: SecretConfig(env_var="CLOUDINARY_API_SECRET")
    )
    folder: str = "media/products"

    @field_validator("folder")
    @classmethod
    def validate_folder(cls, v):
        """Strip surrounding slashes so keys are joined consistently."""
        return v.strip("/")


class PaymentsConfig(BaseModel):
    """Configuration for the payment-provider catalog (Stripe)."""

    api_key: SecretConfig = Field(
        default_factory=lambda: SecretConfig(env_var="STRIPE_SECRET_KEY")
    )
    currency: str = "usd"

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v):
        """Currencies are three-letter ISO codes in lower case."""
        if len(v) != 3 or not v.isalpha():
            raise ValueError(f"Invalid currency code: {v}")
        return v.lower()


class DatabaseConfig(BaseModel):
    """Configuration for the relational store."""

    url: SecretConfig = Field(
        default_factory=lambda: SecretConfig(env_var="DATABASE_URL")
    )
    echo: bool = False


class PersistenceConfig(BaseModel):
    """Configuration for database persistence behaviour."""

    sweep_on_empty_manifest: bool = True


class ConcurrencyConfig(BaseModel):
    """Configuration for concurrency settings."""

    max_workers: int = Field(default=1, ge=1, le=32)
    timeout_seconds: int = Field(default=600, ge=1)


class LoggingConfig(BaseModel):
    """Configuration for logging settings."""

    level: str = Field(default="INFO")
    format: str = Field(default="text")  # "text" or "json"
    log_to_file: bool = Field(default=False)
    log_file_path: Optional[str] = None

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        """Validate logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(
                f"Invalid logging level: {v}. Must be one of {valid_levels}"
            )
        return v.upper()

    @field_validator("format")
    @classmethod
    def validate_format(cls, v):
        """Validate logging format."""
        valid_formats = ["text", "json"]
        if v.lower() not in valid_formats:
            raise ValueError(
                f"Invalid logging format: {v}. Must be one of {valid_formats}"
            )
        return v.lower()


class RetryConfig(BaseModel):
    """Configuration for retry settings."""

    max_attempts: int = Field(default=3, ge=1, le=10)
    retry_delay_seconds: float = Field(default=1.0, ge=0)


class SyncSystemConfig(BaseModel):
    """Root configuration model for the catalog sync system."""

    version: str = "1.0"
    manifest_path: str = "config/content/products.json"
    media_dir: str = "config/content/media"
    cdn: CdnConfig = Field(default_factory=CdnConfig)
    payments: PaymentsConfig = Field(default_factory=PaymentsConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v):
        """Validate configuration version."""
        if v != "1.0":
            raise ValueError(f"Unsupported configuration version: {v}")
        return v


class RunResult(BaseModel):
    """Outcome of a single per-entity operation."""

    operation_type: OperationType
    entity_id: str
    action: str  # uploaded, skipped, deleted, created, updated, ...
    status: str  # success, failed
    start_time: str
    end_time: str
    error_message: Optional[str] = None
    details: Optional[dict] = None
    attempt_number: Optional[int] = None
    max_attempts: Optional[int] = None


class EntityError(BaseModel):
    """An error attributed to the manifest entity that owns it."""

    entity_id: str
    message: str

    def __str__(self) -> str:
        return f"{self.entity_id}: {self.message}"


# (operation, action) -> SyncReport counter
REPORT_COUNTERS: Dict[tuple, str] = {
    (OperationType.MEDIA, "uploaded"): "media_uploaded",
    (OperationType.MEDIA, "skipped"): "media_skipped",
    (OperationType.MEDIA, "deleted"): "media_deleted",
    (OperationType.CATALOG, "created"): "catalog_created",
    (OperationType.CATALOG, "updated"): "catalog_updated",
    (OperationType.CATALOG, "archived"): "catalog_archived",
    (OperationType.CATALOG, "unchanged"): "catalog_unchanged",
    (OperationType.CATALOG, "skipped"): "catalog_skipped",
    (OperationType.PERSISTENCE, "persisted"): "persisted",
    (OperationType.PERSISTENCE, "unchanged"): "persistence_unchanged",
    (OperationType.PERSISTENCE, "deactivated"): "products_deactivated",
}


class SyncReport(BaseModel):
    """Aggregated outcome of a reconciliation run."""

    run_id: str
    start_time: str
    end_time: Optional[str] = None
    duration: Optional[float] = None
    manifest_written: bool = False

    media_uploaded: int = 0
    media_skipped: int = 0
    media_deleted: int = 0
    media_errors: List[EntityError] = Field(default_factory=list)

    catalog_created: int = 0
    catalog_updated: int = 0
    catalog_archived: int = 0
    catalog_unchanged: int = 0
    catalog_skipped: int = 0
    catalog_errors: List[EntityError] = Field(default_factory=list)

    persisted: int = 0
    persistence_unchanged: int = 0
    products_deactivated: int = 0
    persistence_errors: List[EntityError] = Field(default_factory=list)

    def record(self, result: RunResult) -> None:
        """Fold a single run result into the counters and error lists."""
        if result.status == "failed":
            errors = getattr(self, f"{result.operation_type.value}_errors")
            errors.append(
                EntityError(
                    entity_id=result.entity_id,
                    message=result.error_message or "Unknown error",
                )
            )
            return

        counter = REPORT_COUNTERS.get((result.operation_type, result.action))
        if counter is None:
            return
        if result.action == "deactivated":
            increment = int((result.details or {}).get("count", 0))
        else:
            increment = 1
        setattr(self, counter, getattr(self, counter) + increment)

    @property
    def errors(self) -> List[EntityError]:
        """All errors across subsystems."""
        return self.media_errors + self.catalog_errors + self.persistence_errors

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def errors_for(self, entity_id: str) -> List[EntityError]:
        """Errors recorded against a single entity."""
        return [error for error in self.errors if error.entity_id == entity_id]
