#!/usr/bin/env python3
"""
Main entry point for the catalog sync system.

This module provides the CLI that reconciles the product manifest with the
media CDN, the payment catalog and the relational store, then prints the run
report.
"""

import argparse
import sys
import uuid
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table

from .audit.logger import CatalogSyncLogger
from .config.loader import ConfigLoader
from .config.models import SyncReport, SyncSystemConfig
from .exceptions import ConfigurationError, ManifestError
from .manifest.store import ManifestStore
from .providers.provider_factory import ProviderFactory


def create_logger(config: SyncSystemConfig) -> CatalogSyncLogger:
    """Create logger instance from configuration."""
    logger = CatalogSyncLogger("catalog_sync")
    if config.logging:
        logger.setup_logging(config.logging)
    return logger


def print_report(report: SyncReport, console: Optional[Console] = None) -> None:
    """Print per-subsystem counts and the itemized error list."""
    console = console or Console()

    table = Table(title=f"Sync Report ({report.run_id})")
    table.add_column("Subsystem")
    table.add_column("Outcome")
    table.add_column("Count", justify="right")

    rows = [
        ("Media", "Uploaded", report.media_uploaded),
        ("Media", "Skipped", report.media_skipped),
        ("Media", "Deleted", report.media_deleted),
        ("Media", "Errors", len(report.media_errors)),
        ("Catalog", "Created", report.catalog_created),
        ("Catalog", "Updated", report.catalog_updated),
        ("Catalog", "Archived", report.catalog_archived),
        ("Catalog", "Unchanged", report.catalog_unchanged),
        ("Catalog", "Skipped", report.catalog_skipped),
        ("Catalog", "Errors", len(report.catalog_errors)),
        ("Database", "Persisted", report.persisted),
        ("Database", "Unchanged", report.persistence_unchanged),
        ("Database", "Deactivated", report.products_deactivated),
        ("Database", "Errors", len(report.persistence_errors)),
    ]
    for subsystem, outcome, count in rows:
        table.add_row(subsystem, outcome, str(count))
    console.print(table)

    manifest_state = "written" if report.manifest_written else "unchanged"
    console.print(f"Manifest {manifest_state}. Completed in {report.duration or 0:.1f}s.")

    for title, errors in (
        ("Media errors", report.media_errors),
        ("Catalog errors", report.catalog_errors),
        ("Database errors", report.persistence_errors),
    ):
        if errors:
            console.print(f"\n[bold red]{title}:[/bold red]")
            for error in errors:
                console.print(f"  - {error}", markup=False)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the catalog sync system."""
    parser = argparse.ArgumentParser(
        description="Reconcile the product manifest with the CDN, payment catalog and database",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("config_file", help="Path to the YAML configuration file")

    parser.add_argument(
        "--manifest",
        "-m",
        help="Path to the manifest JSON file (overrides manifest_path)",
    )

    parser.add_argument(
        "--media-dir",
        help="Directory that manifest media paths are relative to (overrides media_dir)",
    )

    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Only validate configuration and manifest without running a sync",
    )

    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    args = parser.parse_args(argv)

    # Validate config file exists
    config_path = Path(args.config_file)
    if not config_path.exists():
        print(f"Error: Configuration file not found: {config_path}", file=sys.stderr)
        return 1

    try:
        # Load and validate configuration
        config = ConfigLoader.load_from_file(config_path)
        if args.manifest:
            config.manifest_path = str(Path(args.manifest).resolve())
        if args.media_dir:
            config.media_dir = str(Path(args.media_dir).resolve())
        if args.verbose:
            config.logging.level = "DEBUG"

        logger = create_logger(config)
        logger.info(f"Loaded configuration from {config_path}")

        if args.validate_only:
            manifest = ManifestStore(config.manifest_path, logger).load()
            logger.info(
                "Configuration and manifest validation completed successfully",
                extra={"products": len(manifest.products)},
            )
            return 0

        run_id = str(uuid.uuid4())
        factory = ProviderFactory(config, logger)
        manager = factory.create_reconciliation_manager(run_id)
        report = manager.run_reconciliation()

        print_report(report)
        return 0

    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except ManifestError as e:
        print(f"Manifest error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Operation failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
