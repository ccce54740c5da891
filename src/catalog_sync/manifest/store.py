"""
Manifest store: load, validate and persist the product manifest.

Loading is all-or-nothing. Any read, parse or validation problem raises
ManifestError before a single remote call is made. Saving overwrites the
whole file, and only when the serialized document differs from what was
loaded.
"""

import json
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from ..audit.logger import CatalogSyncLogger
from ..exceptions import ManifestError
from .models import Manifest


class ManifestStore:
    """Reads and writes the manifest JSON file."""

    def __init__(
        self,
        manifest_path: Union[str, Path],
        logger: Optional[CatalogSyncLogger] = None,
    ):
        """
        Initialize the manifest store.

        Args:
            manifest_path: Path to the manifest JSON file
            logger: Logger instance
        """
        self.manifest_path = Path(manifest_path)
        self.logger = logger or CatalogSyncLogger("manifest_store")
        self._snapshot: Optional[str] = None
        # Set when validation rewrote the document (legacy keys, blank values).
        self._normalized = False

    def load(self) -> Manifest:
        """
        Read, parse and validate the manifest.

        Returns:
            The validated Manifest

        Raises:
            ManifestError: If the file is missing, unparsable or invalid
        """
        self.logger.info(
            "Loading manifest", extra={"path": str(self.manifest_path)}
        )
        try:
            raw_text = self.manifest_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ManifestError(
                f"Cannot read manifest {self.manifest_path}: {e}", self.manifest_path
            ) from e

        try:
            data = json.loads(raw_text)
        except json.JSONDecodeError as e:
            raise ManifestError(
                f"Manifest {self.manifest_path} is not valid JSON: {e}",
                self.manifest_path,
            ) from e

        try:
            manifest = Manifest.model_validate(data)
        except ValidationError as e:
            self.logger.error(
                "Validation failed for manifest",
                extra={"path": str(self.manifest_path), "errors": e.errors()},
            )
            raise ManifestError(
                f"Manifest {self.manifest_path} failed validation: {e}",
                self.manifest_path,
            ) from e

        self._snapshot = self.serialize(manifest)
        self._normalized = data != manifest.model_dump(mode="json", exclude_unset=True)
        if self._normalized:
            self.logger.info("Manifest normalized on load, it will be rewritten")
        self.logger.info(
            "Loaded manifest",
            extra={
                "products": len(manifest.products),
                "variants": len(manifest.variants),
                "dependencies": len(manifest.dependencies),
            },
        )
        return manifest

    @staticmethod
    def serialize(manifest: Manifest) -> str:
        """Canonical JSON text for a manifest."""
        return json.dumps(
            manifest.model_dump(mode="json", exclude_unset=True),
            indent=2,
            ensure_ascii=False,
        )

    def is_modified(self, manifest: Manifest) -> bool:
        """Whether the manifest was mutated since it was loaded."""
        return self._normalized or self.serialize(manifest) != self._snapshot

    def save(self, manifest: Manifest) -> bool:
        """
        Overwrite the manifest file if the document changed since load.

        Args:
            manifest: Manifest as mutated by the sync stages

        Returns:
            True if the file was written, False otherwise
        """
        text = self.serialize(manifest)
        if text == self._snapshot and not self._normalized:
            self.logger.info("Manifest unchanged, skipping write")
            return False

        self.logger.info(
            "Writing updated manifest", extra={"path": str(self.manifest_path)}
        )
        self.manifest_path.write_text(text + "\n", encoding="utf-8")
        self._snapshot = text
        self._normalized = False
        return True
