import pytest

from catalog_sync.exceptions import ManifestError

from conftest import make_product


def touch(media_dir, relative):
    path = media_dir / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"data")
    return path


def kit_manifest(write_manifest):
    return write_manifest(
        [
            make_product(
                "kit-a",
                has_variants=True,
                media=[{"local_path": "kit-a/main.jpg"}],
                specs=[{"key": "voltage", "value": "12", "unit": "V"}],
            ),
            make_product("kit-b", media=[{"local_path": "kit-b/main.png"}]),
            make_product("proto-c", sell_status="internal"),
        ],
        variants=[
            {
                "id": "kit-a-red",
                "product_id": "kit-a",
                "variant_type": "color",
                "variant_value": "Red",
            },
            {
                "id": "kit-a-blue",
                "product_id": "kit-a",
                "variant_type": "color",
                "variant_value": "Blue",
                "price_modifier": 500,
            },
        ],
        dependencies=[
            {
                "product_id": "kit-a",
                "depends_on_product_id": "kit-b",
                "dependency_type": "suggests",
            }
        ],
    )


def test_single_product_create_scenario(
    write_manifest, media_dir, make_manager, media_ops, db_ops, read_manifest
):
    write_manifest(
        [make_product("prod-a", media=[{"local_path": "prod-a/main.jpg"}])]
    )
    touch(media_dir, "prod-a/main.jpg")

    report = make_manager().run_reconciliation()

    assert report.media_uploaded == 1
    assert report.catalog_created == 1
    assert report.persisted == 1
    assert report.has_errors is False
    assert report.manifest_written is True

    product = read_manifest()["products"][0]
    assert product["remote_catalog_id"]
    assert product["remote_price_id"]
    assert product["last_synced_at"]
    assert product["media"][0]["remote_asset_id"] == "media/products/prod-a/main"

    row = db_ops.get_product("prod-a")
    assert row["stripe_product_id"] == product["remote_catalog_id"]
    assert row["stripe_price_id"] == product["remote_price_id"]
    assert row["media"][0]["remote_asset_id"] == "media/products/prod-a/main"
    assert row["is_active"] is True


def test_second_run_is_idempotent(
    write_manifest, media_dir, make_manager, media_ops, catalog_ops
):
    kit_manifest(write_manifest)
    touch(media_dir, "kit-a/main.jpg")
    touch(media_dir, "kit-b/main.png")

    first = make_manager().run_reconciliation()
    calls_after_first = list(catalog_ops.calls)
    second = make_manager().run_reconciliation()

    assert first.media_uploaded == 2
    assert first.catalog_created == 2
    assert first.catalog_skipped == 1
    assert first.persisted == 3 + 2 + 1 + 1

    assert second.media_uploaded == 0
    assert second.media_skipped == 2
    assert second.catalog_created == 0
    assert second.catalog_updated == 0
    assert second.catalog_unchanged == 2
    assert second.catalog_skipped == 1
    assert second.persisted == 0
    assert second.persistence_unchanged == 3 + 2 + 1 + 1
    assert second.products_deactivated == 0
    assert second.errors == []
    assert media_ops.uploads == [
        "media/products/kit-a/main",
        "media/products/kit-b/main",
    ]
    assert [call for call in catalog_ops.calls if call[0] == "create"] == [
        call for call in calls_after_first if call[0] == "create"
    ]


def test_variant_with_price_id_gets_no_new_price(
    write_manifest, make_manager, catalog_ops, read_manifest
):
    kit_manifest(write_manifest)
    make_manager().run_reconciliation()
    prices_before = {v["id"]: v["remote_price_id"] for v in read_manifest()["variants"]}
    entity = catalog_ops.entity_for("kit-a")
    remote_prices_before = dict(entity["prices"])

    make_manager().run_reconciliation()

    prices_after = {v["id"]: v["remote_price_id"] for v in read_manifest()["variants"]}
    assert prices_after == prices_before
    assert entity["prices"] == remote_prices_before


def test_removed_media_file_is_tombstoned_once(
    write_manifest, media_dir, make_manager, media_ops, read_manifest
):
    write_manifest([make_product("prod-a", media=[{"local_path": "prod-a/main.jpg"}])])
    image = touch(media_dir, "prod-a/main.jpg")
    make_manager().run_reconciliation()

    image.unlink()
    report = make_manager().run_reconciliation()
    again = make_manager().run_reconciliation()

    item = read_manifest()["products"][0]["media"][0]
    assert report.media_deleted == 1
    assert again.media_deleted == 0
    assert media_ops.deletes == ["media/products/prod-a/main"]
    assert item["deleted"] is True
    assert item["deleted_at"]
    assert item.get("local_path") is None
    assert item.get("remote_asset_id") is None


def test_removed_product_is_soft_deleted(
    write_manifest, make_manager, db_ops, read_manifest
):
    from sqlalchemy import update

    from catalog_sync.db_models import ProductRow

    write_manifest([make_product("prod-a"), make_product("prod-b")])
    make_manager().run_reconciliation()
    table = ProductRow.__table__
    with db_ops.engine.begin() as conn:
        conn.execute(update(table).where(table.c.id == "prod-b").values(sold_quantity=3))

    manifest = read_manifest()
    write_manifest([manifest["products"][0]])
    report = make_manager().run_reconciliation()

    assert report.products_deactivated == 1
    row = db_ops.get_product("prod-b")
    assert row["is_active"] is False
    assert row["sold_quantity"] == 3


def test_empty_products_scenario(write_manifest, make_manager, db_ops, catalog_ops):
    write_manifest([make_product("prod-a"), make_product("prod-b")])
    make_manager().run_reconciliation()

    write_manifest([])
    report = make_manager().run_reconciliation()

    assert report.products_deactivated == 2
    assert report.catalog_created == 0
    assert report.has_errors is False
    assert db_ops.get_product("prod-a")["is_active"] is False
    assert db_ops.get_product("prod-b")["is_active"] is False


def test_catalog_failure_is_isolated(
    write_manifest, make_manager, catalog_ops, db_ops, read_manifest
):
    catalog_ops.fail_for.add("prod-b")
    write_manifest([make_product("prod-a"), make_product("prod-b"), make_product("prod-c")])

    report = make_manager().run_reconciliation()

    assert report.catalog_created == 2
    assert [str(e) for e in report.catalog_errors] == [
        "prod-b: Catalog sync failed: catalog rejected prod-b"
    ]
    products = {p["id"]: p for p in read_manifest()["products"]}
    assert products["prod-a"]["remote_catalog_id"]
    assert "remote_catalog_id" not in products["prod-b"]
    assert "last_synced_at" not in products["prod-b"]
    assert products["prod-c"]["remote_catalog_id"]
    # The product row is still written, without remote ids.
    assert db_ops.get_product("prod-b")["stripe_product_id"] is None


def test_missing_media_file_is_reported_not_fatal(
    write_manifest, make_manager, media_ops
):
    write_manifest([make_product("prod-a", media=[{"local_path": "prod-a/missing.jpg"}])])

    report = make_manager().run_reconciliation()

    assert report.errors_for("prod-a")[0].message == "File not found at prod-a/missing.jpg"
    assert report.catalog_created == 1
    assert media_ops.uploads == []


def test_invalid_manifest_aborts_before_remote_calls(
    write_manifest, make_manager, media_ops, catalog_ops, db_ops
):
    write_manifest([make_product("prod-a", base_price=-5)])

    with pytest.raises(ManifestError):
        make_manager().run_reconciliation()

    assert media_ops.uploads == []
    assert catalog_ops.calls == []
    assert db_ops.get_product("prod-a") is None


def test_archived_product_keeps_database_row(
    write_manifest, make_manager, catalog_ops, db_ops, read_manifest
):
    write_manifest([make_product("prod-a")])
    make_manager().run_reconciliation()

    product = read_manifest()["products"][0]
    product["sell_status"] = "sold-out"
    write_manifest([product])
    report = make_manager().run_reconciliation()

    assert report.catalog_archived == 1
    assert read_manifest()["products"][0].get("remote_catalog_id") is None
    row = db_ops.get_product("prod-a")
    assert row["is_active"] is True
    assert row["is_live"] is False
    assert row["sell_status"] == "sold-out"
    assert row["stripe_product_id"] is None
