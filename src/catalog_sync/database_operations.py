"""
Relational store operations for catalog rows.

This module provides key-based upserts for products and variants,
insert-if-absent for specs and dependencies, and the soft-delete sweep for
products removed from the manifest. PostgreSQL is the production target;
SQLite is supported for local runs and tests.
"""

from typing import Any, Collection, Dict, Optional, Sequence

from sqlalchemy import Table, create_engine, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from .db_models import Base, ProductDependencyRow, ProductRow, ProductSpecRow, VariantRow
from .exceptions import RemoteOperationError

# Written once on insert, never on update.
PRESERVED_ON_UPDATE = ("sold_quantity",)
# Stamped every run; not a row change.
IGNORED_FOR_CHANGES = ("last_synced_at",)


def create_database_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    SQLite connections are shared across worker threads; in-memory databases
    use a single static connection so every thread sees the same data.
    """
    if url.startswith("sqlite"):
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(url, echo=echo, pool_pre_ping=True)


class DatabaseOperations:
    """Utility class for catalog database operations."""

    def __init__(self, engine: Engine):
        """
        Initialize database operations.

        Args:
            engine: SQLAlchemy engine for the catalog database
        """
        self.engine = engine

    @classmethod
    def from_url(cls, url: str, echo: bool = False) -> "DatabaseOperations":
        return cls(create_database_engine(url, echo=echo))

    def create_tables(self) -> None:
        """Create the catalog tables if they don't exist."""
        Base.metadata.create_all(self.engine)

    def _insert(self, table: Table):
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            return postgresql.insert(table)
        if dialect == "sqlite":
            return sqlite.insert(table)
        raise RemoteOperationError(f"Unsupported database dialect: {dialect}")

    def _upsert(self, table: Table, values: Dict[str, Any]) -> bool:
        """
        Insert or update a row by primary key.

        Returns:
            True if the row was inserted or any tracked column changed
        """
        with self.engine.begin() as conn:
            existing = (
                conn.execute(select(table).where(table.c.id == values["id"]))
                .mappings()
                .first()
            )
            changed = existing is None or any(
                existing[key] != value
                for key, value in values.items()
                if key not in IGNORED_FOR_CHANGES
            )

            update_values = {key: value for key, value in values.items() if key != "id"}
            if changed:
                update_values["updated_at"] = func.now()

            insert_values = dict(values)
            for column in PRESERVED_ON_UPDATE:
                insert_values[column] = 0

            stmt = (
                self._insert(table)
                .values(**insert_values)
                .on_conflict_do_update(index_elements=[table.c.id], set_=update_values)
            )
            conn.execute(stmt)
        return changed

    def upsert_product(self, values: Dict[str, Any]) -> bool:
        """Upsert a product row, keeping its sold quantity."""
        return self._upsert(ProductRow.__table__, values)

    def upsert_variant(self, values: Dict[str, Any]) -> bool:
        """Upsert a variant row, keeping its sold quantity."""
        return self._upsert(VariantRow.__table__, values)

    def _insert_if_absent(
        self, table: Table, values: Dict[str, Any], key_columns: Sequence[str]
    ) -> bool:
        stmt = (
            self._insert(table)
            .values(**values)
            .on_conflict_do_nothing(index_elements=list(key_columns))
        )
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        return bool(result.rowcount)

    def insert_spec(self, values: Dict[str, Any]) -> bool:
        """Insert a spec unless one exists for (product_id, spec_key)."""
        return self._insert_if_absent(
            ProductSpecRow.__table__, values, ("product_id", "spec_key")
        )

    def insert_dependency(self, values: Dict[str, Any]) -> bool:
        """Insert a dependency unless the same rule already exists."""
        return self._insert_if_absent(
            ProductDependencyRow.__table__,
            values,
            ("product_id", "depends_on_product_id", "dependency_type"),
        )

    def mark_inactive_except(self, product_ids: Collection[str]) -> int:
        """
        Soft delete every active product whose id is not in product_ids.

        An empty collection deactivates every product.

        Returns:
            Number of rows newly marked inactive
        """
        table = ProductRow.__table__
        stmt = update(table).where(table.c.is_active.is_(True))
        if product_ids:
            stmt = stmt.where(table.c.id.not_in(list(product_ids)))
        stmt = stmt.values(is_active=False, updated_at=func.now())

        with self.engine.begin() as conn:
            result = conn.execute(stmt)
        return result.rowcount

    def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        return self._get(ProductRow.__table__, product_id)

    def get_variant(self, variant_id: str) -> Optional[Dict[str, Any]]:
        return self._get(VariantRow.__table__, variant_id)

    def _get(self, table: Table, row_id: str) -> Optional[Dict[str, Any]]:
        with self.engine.connect() as conn:
            row = conn.execute(select(table).where(table.c.id == row_id)).mappings().first()
        return dict(row) if row else None

