import pytest

from catalog_sync.manifest.models import Manifest, MediaType
from catalog_sync.providers import media_provider
from catalog_sync.providers.media_provider import MediaSyncProvider

from conftest import make_product


@pytest.fixture
def provider(media_ops, media_dir, logger):
    return MediaSyncProvider(media_ops, media_dir, "media/products", logger, "run-1")


def touch(media_dir, relative):
    path = media_dir / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"data")
    return path


def manifest_with_media(*media):
    return Manifest.model_validate(
        {"products": [make_product("prod-a", media=list(media))]}
    )


def test_upload_new_file(provider, media_ops, media_dir):
    touch(media_dir, "kit/main.jpg")
    manifest = manifest_with_media({"local_path": "kit/main.jpg"})

    results = provider.upload_media(manifest.products)

    item = manifest.products[0].media[0]
    assert [r.action for r in results] == ["uploaded"]
    assert media_ops.uploads == ["media/products/kit/main"]
    assert item.remote_asset_id == "media/products/kit/main"
    assert item.type == MediaType.IMAGE
    assert item.mime_type == "image/jpg"
    assert item.uploaded_at.endswith("Z")


def test_uploaded_item_is_skipped(provider, media_ops, media_dir):
    touch(media_dir, "kit/main.jpg")
    manifest = manifest_with_media(
        {"local_path": "kit/main.jpg", "remote_asset_id": "media/products/kit/main"}
    )

    results = provider.upload_media(manifest.products)

    assert [r.action for r in results] == ["skipped"]
    assert media_ops.uploads == []


def test_missing_file_is_an_integrity_error(provider, media_ops):
    manifest = manifest_with_media({"local_path": "kit/gone.jpg"})

    results = provider.upload_media(manifest.products)

    assert results[0].status == "failed"
    assert results[0].entity_id == "prod-a"
    assert "File not found at kit/gone.jpg" in results[0].error_message
    assert manifest.products[0].media[0].remote_asset_id is None
    assert manifest.products[0].media[0].is_tombstoned is False
    assert media_ops.uploads == []


def test_upload_failure_does_not_stop_other_items(provider, media_ops, media_dir):
    touch(media_dir, "kit/a.jpg")
    touch(media_dir, "kit/b.mp4")
    media_ops.fail_uploads.add("a.jpg")
    manifest = manifest_with_media(
        {"local_path": "kit/a.jpg"}, {"local_path": "kit/b.mp4"}
    )

    results = provider.upload_media(manifest.products)

    assert [r.status for r in results] == ["failed", "success"]
    assert manifest.products[0].media[0].remote_asset_id is None
    assert manifest.products[0].media[1].type == MediaType.VIDEO


def test_tombstone_removed_file(provider, media_ops):
    manifest = manifest_with_media(
        {"local_path": "kit/old.jpg", "remote_asset_id": "media/products/kit/old"}
    )

    results = provider.tombstone_media(manifest.products)

    item = manifest.products[0].media[0]
    assert [r.action for r in results] == ["deleted"]
    assert media_ops.deletes == ["media/products/kit/old"]
    assert item.deleted is True
    assert item.local_path is None
    assert item.remote_asset_id is None
    assert item.deleted_at is not None

    # Tombstones are never revisited.
    assert provider.tombstone_media(manifest.products) == []
    assert provider.upload_media(manifest.products) == []
    assert media_ops.deletes == ["media/products/kit/old"]


def test_present_file_is_not_tombstoned(provider, media_ops, media_dir):
    touch(media_dir, "kit/main.jpg")
    manifest = manifest_with_media(
        {"local_path": "kit/main.jpg", "remote_asset_id": "media/products/kit/main"}
    )

    assert provider.tombstone_media(manifest.products) == []
    assert media_ops.deletes == []


def test_failed_delete_leaves_item_untouched(provider, media_ops):
    media_ops.fail_deletes.add("media/products/kit/old")
    manifest = manifest_with_media(
        {"local_path": "kit/old.jpg", "remote_asset_id": "media/products/kit/old"}
    )

    results = provider.tombstone_media(manifest.products)

    item = manifest.products[0].media[0]
    assert results[0].status == "failed"
    assert item.deleted is False
    assert item.remote_asset_id == "media/products/kit/old"


def test_concurrent_upload(media_ops, media_dir, logger):
    provider = MediaSyncProvider(
        media_ops, media_dir, "media/products", logger, "run-1", max_workers=4
    )
    products = []
    for index in range(6):
        touch(media_dir, f"p{index}/main.png")
        products.append(
            make_product(f"prod-{index}", media=[{"local_path": f"p{index}/main.png"}])
        )
    manifest = Manifest.model_validate({"products": products})

    results = provider.upload_media(manifest.products)

    assert len(results) == 6
    assert all(r.action == "uploaded" for r in results)
    assert sorted(media_ops.uploads) == sorted(
        f"media/products/p{index}/main" for index in range(6)
    )


def test_unexpected_item_error_does_not_drop_sibling_items(
    provider, media_ops, media_dir, mocker
):
    touch(media_dir, "kit/a.jpg")
    touch(media_dir, "kit/b.jpg")
    original = media_provider.public_id_for

    def public_id_for(local_path, folder):
        if local_path == "kit/a.jpg":
            raise OSError("stat failed")
        return original(local_path, folder)

    mocker.patch.object(media_provider, "public_id_for", side_effect=public_id_for)
    manifest = manifest_with_media(
        {"local_path": "kit/a.jpg"}, {"local_path": "kit/b.jpg"}
    )

    results = provider.upload_media(manifest.products)

    assert [(r.status, r.entity_id) for r in results] == [
        ("failed", "prod-a"),
        ("success", "prod-a"),
    ]
    assert "kit/a.jpg" in results[0].error_message
    assert "stat failed" in results[0].error_message
    assert media_ops.uploads == ["media/products/kit/b"]


def test_unexpected_tombstone_error_does_not_drop_sibling_items(
    provider, media_ops, mocker
):
    tombstone_item = provider._tombstone_item

    def flaky_tombstone(entity_id, item):
        if item.local_path == "kit/a.jpg":
            raise OSError("permission denied")
        return tombstone_item(entity_id, item)

    mocker.patch.object(provider, "_tombstone_item", side_effect=flaky_tombstone)
    manifest = manifest_with_media(
        {"local_path": "kit/a.jpg", "remote_asset_id": "media/products/kit/a"},
        {"local_path": "kit/b.jpg", "remote_asset_id": "media/products/kit/b"},
    )

    results = provider.tombstone_media(manifest.products)

    assert [r.status for r in results] == ["failed", "success"]
    assert "permission denied" in results[0].error_message
    assert manifest.products[0].media[0].deleted is False
    assert manifest.products[0].media[1].deleted is True
    assert media_ops.deletes == ["media/products/kit/b"]
