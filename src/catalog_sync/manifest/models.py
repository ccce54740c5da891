"""
Manifest models for the catalog sync system using Pydantic.

The manifest is the declarative product catalog: products, their variants,
specs and dependencies, and the media files attached to each. Remote
identifiers written back by reconciliation live on the same records.

Media and identifier fields have gone by several names over time
(``cloudinary_public_id``, camelCase keys, ``stripe_product_id``). Legacy
keys are migrated to the canonical names before validation; any other
unknown media key is rejected.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SUPPORTED_MAJOR_VERSION = "1"

ACTIVE_SELL_STATUSES = ("pre-order", "for-sale")


class SellStatus(str, Enum):
    """Commercial status of a product."""

    INTERNAL = "internal"
    PRE_ORDER = "pre-order"
    FOR_SALE = "for-sale"
    SOLD_OUT = "sold-out"
    DISCONTINUED = "discontinued"


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    PDF = "pdf"
    OTHER = "other"


class MediaCategory(str, Enum):
    MAIN = "main"
    DETAIL = "detail"
    LIFESTYLE = "lifestyle"
    DIMENSION = "dimension"
    SPEC = "spec"
    HERO = "hero"


class DependencyType(str, Enum):
    REQUIRES = "requires"
    SUGGESTS = "suggests"
    INCOMPATIBLE = "incompatible"
    VOLTAGE_MATCH = "voltage_match"


# legacy key -> canonical key
MEDIA_KEY_MIGRATIONS = {
    "localPath": "local_path",
    "cloudinary_public_id": "remote_asset_id",
    "cloudinaryPublicId": "remote_asset_id",
    "remoteAssetId": "remote_asset_id",
    "mimeType": "mime_type",
    "uploadedAt": "uploaded_at",
    "deletedAt": "deleted_at",
}

PRODUCT_KEY_MIGRATIONS = {
    "stripe_product_id": "remote_catalog_id",
    "stripe_price_id": "remote_price_id",
    "showOnPortfolioPage": "show_on_portfolio_page",
    "portfolioCopy": "portfolio_copy",
    "isFeatured": "is_featured",
}

VARIANT_KEY_MIGRATIONS = {
    "stripe_product_id": "remote_catalog_parent_id",
    "stripe_price_id": "remote_price_id",
}


def migrate_keys(data: Any, migrations: Dict[str, str]) -> Any:
    """
    Rename legacy keys in a raw record to their canonical names.

    When both a legacy and a canonical key are present the canonical one
    wins.
    """
    if not isinstance(data, dict):
        return data
    migrated = {}
    for key, value in data.items():
        target = migrations.get(key, key)
        if target != key and target in data:
            continue
        migrated[target] = value
    return migrated


class MediaItem(BaseModel):
    """A media file attached to a product or variant."""

    model_config = ConfigDict(extra="forbid")

    local_path: Optional[str] = None
    remote_asset_id: Optional[str] = None
    type: Optional[MediaType] = None
    mime_type: Optional[str] = None
    alt: str = ""
    category: MediaCategory = MediaCategory.MAIN
    order: int = Field(default=1, ge=0)
    uploaded_at: Optional[str] = None
    deleted: bool = False
    deleted_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def migrate_legacy_shape(cls, data):
        """Normalize legacy key names. The old tombstone format blanked fields with ""."""
        data = migrate_keys(data, MEDIA_KEY_MIGRATIONS)
        if isinstance(data, dict):
            for key in ("local_path", "remote_asset_id", "mime_type"):
                if data.get(key) == "":
                    data[key] = None
        return data

    @model_validator(mode="after")
    def validate_lifecycle(self):
        """Live items need a local path; tombstones need a deletion time."""
        if self.deleted:
            if self.deleted_at is None:
                raise ValueError("Deleted media items must have deleted_at")
        elif not self.local_path:
            raise ValueError("Media items must have a local_path unless deleted")
        return self

    @property
    def is_tombstoned(self) -> bool:
        return self.deleted

    def tombstone(self, deleted_at: str) -> None:
        """Mark the item deleted, dropping its local and remote references."""
        self.local_path = None
        self.remote_asset_id = None
        self.deleted = True
        self.deleted_at = deleted_at


class ProductSpec(BaseModel):
    """Technical specification line for a product."""

    key: str = Field(min_length=1)
    value: str = Field(min_length=1)
    unit: Optional[str] = None
    display_order: int = Field(default=0, ge=0)


class Product(BaseModel):
    """A product in the manifest."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    long_description: Optional[str] = None
    category: str = Field(min_length=1)
    dev_status: int = Field(default=0, ge=0, le=5)
    base_price: int = Field(gt=0)
    has_variants: bool = False
    requires_assembly: bool = False
    max_quantity: Optional[int] = Field(default=None, gt=0)
    sell_status: SellStatus = SellStatus.INTERNAL
    sell_status_note: Optional[str] = None
    cost_cents: Optional[int] = Field(default=None, gt=0)
    wholesale_price_cents: Optional[int] = Field(default=None, gt=0)
    show_on_portfolio_page: bool = False
    portfolio_copy: Optional[str] = Field(default=None, max_length=2000)
    is_featured: bool = False
    media: List[MediaItem] = Field(default_factory=list)
    specs: List[ProductSpec] = Field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None
    remote_catalog_id: Optional[str] = None
    remote_price_id: Optional[str] = None
    last_synced_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def migrate_legacy_keys(cls, data):
        return migrate_keys(data, PRODUCT_KEY_MIGRATIONS)

    @property
    def is_active(self) -> bool:
        """Whether the product should be purchasable."""
        return self.sell_status.value in ACTIVE_SELL_STATUSES


class Variant(BaseModel):
    """A purchasable variant (colour, voltage, size...) of a product."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    product_id: str = Field(min_length=1)
    variant_type: str = Field(min_length=1)
    variant_value: str = Field(min_length=1)
    price_modifier: int = 0
    is_limited_edition: bool = False
    max_quantity: Optional[int] = Field(default=None, gt=0)
    media: List[MediaItem] = Field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None
    remote_catalog_parent_id: Optional[str] = None
    remote_price_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def migrate_legacy_keys(cls, data):
        data = migrate_keys(data, VARIANT_KEY_MIGRATIONS)
        if isinstance(data, dict) and data.get("price_modifier") is None:
            data.pop("price_modifier", None)
        return data


class ProductDependency(BaseModel):
    """Compatibility rule between two products."""

    product_id: str = Field(min_length=1)
    depends_on_product_id: str = Field(min_length=1)
    dependency_type: DependencyType
    message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def key(self) -> str:
        return (
            f"{self.product_id}/dep/{self.depends_on_product_id}"
            f"/{self.dependency_type.value}"
        )


MediaOwner = Union[Product, Variant]


class Manifest(BaseModel):
    """Root manifest document."""

    model_config = ConfigDict(extra="allow")

    version: str = "1.0"
    products: List[Product]
    variants: List[Variant] = Field(default_factory=list)
    dependencies: List[ProductDependency] = Field(default_factory=list)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v):
        """Only manifests with a supported major version are accepted."""
        if v.split(".")[0] != SUPPORTED_MAJOR_VERSION:
            raise ValueError(f"Unsupported manifest version: {v}")
        return v

    @field_validator("variants", "dependencies", mode="before")
    @classmethod
    def default_null_lists(cls, v):
        return [] if v is None else v

    @model_validator(mode="after")
    def validate_references(self):
        """Ids are unique and every variant belongs to a listed product."""
        product_ids = [product.id for product in self.products]
        duplicates = sorted({pid for pid in product_ids if product_ids.count(pid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate product ids: {duplicates}")

        variant_ids = [variant.id for variant in self.variants]
        duplicates = sorted({vid for vid in variant_ids if variant_ids.count(vid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate variant ids: {duplicates}")

        known = set(product_ids)
        orphans = sorted(v.id for v in self.variants if v.product_id not in known)
        if orphans:
            raise ValueError(f"Variants reference unknown products: {orphans}")
        return self

    def variants_for(self, product_id: str) -> List[Variant]:
        return [variant for variant in self.variants if variant.product_id == product_id]

    def product_ids(self) -> List[str]:
        return [product.id for product in self.products]
