"""Shared fixtures: in-memory CDN and catalog fakes, SQLite store, manifests."""

import json
from pathlib import Path
from typing import Dict, List, Optional

import pytest
import structlog

from catalog_sync.audit.logger import CatalogSyncLogger
from catalog_sync.catalog_operations import (
    CatalogAction,
    CatalogEntityState,
    CatalogOperations,
    CatalogSyncResult,
)
from catalog_sync.config.models import RetryConfig, SyncSystemConfig
from catalog_sync.database_operations import DatabaseOperations
from catalog_sync.exceptions import RemoteOperationError
from catalog_sync.media_operations import MediaOperations, UploadResult
from catalog_sync.reconciliation.reconciliation_manager import ReconciliationManager


class FakeMediaOperations(MediaOperations):
    """Records uploads and deletes; fails for configured paths or ids."""

    def __init__(self):
        self.uploads: List[str] = []
        self.deletes: List[str] = []
        self.fail_uploads = set()
        self.fail_deletes = set()

    def upload(self, local_path, public_id, resource_type):
        if Path(local_path).name in self.fail_uploads:
            raise RemoteOperationError(f"upload rejected: {local_path}")
        self.uploads.append(public_id)
        return UploadResult(
            public_id=public_id,
            format=Path(local_path).suffix.lstrip("."),
            resource_type=resource_type,
        )

    def delete(self, public_id, resource_type="image"):
        if public_id in self.fail_deletes:
            raise RemoteOperationError(f"delete rejected: {public_id}")
        self.deletes.append(public_id)


class FakeCatalogOperations(CatalogOperations):
    """Keeps remote entities in a dict keyed by remote id."""

    def __init__(self):
        self.entities: Dict[str, dict] = {}
        self.calls: List[tuple] = []
        self.fail_for = set()
        self._next_id = 0

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}_{self._next_id}"

    def _check(self, desired: CatalogEntityState) -> None:
        if desired.local_id in self.fail_for:
            raise RemoteOperationError(f"catalog rejected {desired.local_id}")

    def entity_for(self, local_id: str) -> Optional[dict]:
        for entity in self.entities.values():
            if entity["local_id"] == local_id:
                return entity
        return None

    def create_entity(self, desired):
        self._check(desired)
        self.calls.append(("create", desired.local_id))
        remote_id = self._new_id("prod")
        prices = {p.key: (self._new_id("price"), p.amount) for p in desired.prices}
        self.entities[remote_id] = {
            "local_id": desired.local_id,
            "name": desired.name,
            "active": True,
            "prices": prices,
        }
        return CatalogSyncResult(
            action=CatalogAction.CREATED,
            remote_id=remote_id,
            remote_price_ids={key: price_id for key, (price_id, _) in prices.items()},
        )

    def update_entity(self, remote_id, desired):
        self._check(desired)
        self.calls.append(("update", desired.local_id))
        entity = self.entities[remote_id]
        changed = entity["name"] != desired.name or not entity["active"]
        entity["name"] = desired.name
        entity["active"] = True

        price_ids = {}
        for price in desired.prices:
            current = entity["prices"].get(price.key)
            if (
                current is not None
                and current[0] == price.existing_price_id
                and current[1] == price.amount
            ):
                price_ids[price.key] = current[0]
                continue
            entity["prices"][price.key] = (self._new_id("price"), price.amount)
            price_ids[price.key] = entity["prices"][price.key][0]
            changed = True

        return CatalogSyncResult(
            action=CatalogAction.UPDATED if changed else CatalogAction.UNCHANGED,
            remote_id=remote_id,
            remote_price_ids=price_ids,
        )

    def archive_entity(self, remote_id):
        entity = self.entities[remote_id]
        if entity["local_id"] in self.fail_for:
            raise RemoteOperationError(f"catalog rejected {entity['local_id']}")
        self.calls.append(("archive", entity["local_id"]))
        entity["active"] = False


def make_product(product_id="prod-a", **overrides) -> dict:
    product = {
        "id": product_id,
        "name": f"Product {product_id}",
        "description": "A test product",
        "category": "kits",
        "base_price": 2500,
        "sell_status": "for-sale",
    }
    product.update(overrides)
    return product


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def logger():
    return CatalogSyncLogger("catalog_sync_test")


@pytest.fixture
def media_ops():
    return FakeMediaOperations()


@pytest.fixture
def catalog_ops():
    return FakeCatalogOperations()


@pytest.fixture
def db_ops():
    ops = DatabaseOperations.from_url("sqlite://")
    ops.create_tables()
    return ops


@pytest.fixture
def media_dir(tmp_path):
    path = tmp_path / "media"
    path.mkdir()
    return path


@pytest.fixture
def write_manifest(tmp_path):
    """Write a manifest document and return its path."""
    path = tmp_path / "products.json"

    def _write(products, variants=None, dependencies=None, **extra):
        document = {"version": "1.0", "products": products, **extra}
        if variants is not None:
            document["variants"] = variants
        if dependencies is not None:
            document["dependencies"] = dependencies
        path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def config(tmp_path, media_dir):
    return SyncSystemConfig(
        manifest_path=str(tmp_path / "products.json"),
        media_dir=str(media_dir),
        retry=RetryConfig(max_attempts=1, retry_delay_seconds=0),
    )


@pytest.fixture
def make_manager(config, logger, media_ops, catalog_ops, db_ops):
    """Build a fresh manager per run so every run reloads the manifest."""

    def _make():
        return ReconciliationManager(
            config, logger, media_ops, catalog_ops, db_ops, run_id="test-run"
        )

    return _make


@pytest.fixture
def read_manifest(tmp_path):
    def _read():
        return json.loads((tmp_path / "products.json").read_text(encoding="utf-8"))

    return _read
