import pytest
from pydantic import ValidationError

from catalog_sync.manifest.models import Manifest, MediaItem, Product, Variant

from conftest import make_product


class TestMediaItem:
    def test_camel_case_keys_are_migrated(self):
        item = MediaItem.model_validate(
            {
                "localPath": "kit/main.jpg",
                "remoteAssetId": "media/products/kit/main",
                "mimeType": "image/jpeg",
                "uploadedAt": "2025-01-01T00:00:00Z",
            }
        )

        assert item.local_path == "kit/main.jpg"
        assert item.remote_asset_id == "media/products/kit/main"
        assert item.mime_type == "image/jpeg"
        assert item.uploaded_at == "2025-01-01T00:00:00Z"

    def test_canonical_key_wins_over_legacy(self):
        item = MediaItem.model_validate(
            {
                "local_path": "kit/main.jpg",
                "remote_asset_id": "new-id",
                "cloudinary_public_id": "old-id",
            }
        )

        assert item.remote_asset_id == "new-id"

    def test_legacy_blank_tombstone_is_normalized(self):
        item = MediaItem.model_validate(
            {
                "localPath": "",
                "cloudinaryPublicId": "",
                "deleted": True,
                "deletedAt": "2025-02-01T00:00:00Z",
            }
        )

        assert item.is_tombstoned
        assert item.local_path is None
        assert item.remote_asset_id is None

    def test_live_item_requires_local_path(self):
        with pytest.raises(ValidationError):
            MediaItem.model_validate({"remote_asset_id": "x"})

    def test_tombstone_requires_deleted_at(self):
        with pytest.raises(ValidationError):
            MediaItem.model_validate({"deleted": True})

    def test_tombstone_clears_references(self):
        item = MediaItem(local_path="kit/main.jpg", remote_asset_id="media/kit/main")

        item.tombstone("2025-03-01T00:00:00.000Z")

        assert item.local_path is None
        assert item.remote_asset_id is None
        assert item.deleted is True
        assert item.deleted_at == "2025-03-01T00:00:00.000Z"


class TestProduct:
    @pytest.mark.parametrize(
        "sell_status,active",
        [
            ("internal", False),
            ("pre-order", True),
            ("for-sale", True),
            ("sold-out", False),
            ("discontinued", False),
        ],
    )
    def test_is_active_follows_sell_status(self, sell_status, active):
        product = Product.model_validate(make_product(sell_status=sell_status))
        assert product.is_active is active

    def test_legacy_identifier_keys(self):
        product = Product.model_validate(
            make_product(stripe_product_id="prod_1", stripe_price_id="price_1")
        )

        assert product.remote_catalog_id == "prod_1"
        assert product.remote_price_id == "price_1"

    def test_unknown_sell_status_is_rejected(self):
        with pytest.raises(ValidationError):
            Product.model_validate(make_product(sell_status="archived"))

    def test_variant_legacy_keys(self):
        variant = Variant.model_validate(
            {
                "id": "v-1",
                "product_id": "prod-a",
                "variant_type": "color",
                "variant_value": "Red",
                "price_modifier": None,
                "stripe_product_id": "prod_1",
                "stripe_price_id": "price_9",
            }
        )

        assert variant.price_modifier == 0
        assert variant.remote_catalog_parent_id == "prod_1"
        assert variant.remote_price_id == "price_9"


class TestManifest:
    def test_duplicate_product_ids_are_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate product ids"):
            Manifest.model_validate(
                {"products": [make_product("prod-a"), make_product("prod-a")]}
            )

    def test_orphan_variant_is_rejected(self):
        with pytest.raises(ValidationError, match="unknown products"):
            Manifest.model_validate(
                {
                    "products": [make_product("prod-a")],
                    "variants": [
                        {
                            "id": "v-1",
                            "product_id": "prod-missing",
                            "variant_type": "color",
                            "variant_value": "Red",
                        }
                    ],
                }
            )

    def test_unsupported_major_version(self):
        with pytest.raises(ValidationError, match="Unsupported manifest version"):
            Manifest.model_validate({"version": "2.0", "products": []})

    def test_null_lists_become_empty(self):
        manifest = Manifest.model_validate(
            {"products": [], "variants": None, "dependencies": None}
        )

        assert manifest.variants == []
        assert manifest.dependencies == []

    def test_variants_for(self):
        manifest = Manifest.model_validate(
            {
                "products": [make_product("prod-a"), make_product("prod-b")],
                "variants": [
                    {
                        "id": "v-1",
                        "product_id": "prod-b",
                        "variant_type": "color",
                        "variant_value": "Red",
                    }
                ],
            }
        )

        assert manifest.variants_for("prod-a") == []
        assert [v.id for v in manifest.variants_for("prod-b")] == ["v-1"]
