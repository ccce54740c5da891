"""
SQLAlchemy models for the catalog tables written by reconciliation.

Order and fulfillment tables belong to other collaborators. Only the columns
reconciliation reads or writes are declared here, plus ``sold_quantity``
which reconciliation must never overwrite.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class ProductRow(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    dev_status: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    base_price: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    requires_assembly: Mapped[bool] = mapped_column(Boolean, default=False)
    has_variants: Mapped[bool] = mapped_column(Boolean, default=False)
    max_quantity: Mapped[Optional[int]] = mapped_column(Integer)
    # Owned by order fulfillment.
    sold_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_live: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cost_cents: Mapped[Optional[int]] = mapped_column(Integer)
    wholesale_price_cents: Mapped[Optional[int]] = mapped_column(Integer)
    sell_status: Mapped[str] = mapped_column(Text, nullable=False, default="internal")
    sell_status_note: Mapped[Optional[str]] = mapped_column(Text)
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    media: Mapped[Optional[list]] = mapped_column(JSON)
    stripe_product_id: Mapped[Optional[str]] = mapped_column(Text)
    stripe_price_id: Mapped[Optional[str]] = mapped_column(Text)
    show_on_portfolio_page: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    portfolio_copy: Mapped[Optional[str]] = mapped_column(Text)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("idx_products_category", "category"),
        Index("idx_products_active", "is_active"),
        Index("idx_products_sell_status", "sell_status"),
    )


class VariantRow(Base):
    __tablename__ = "variants"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    product_id: Mapped[str] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    stripe_product_id: Mapped[Optional[str]] = mapped_column(Text)
    stripe_price_id: Mapped[Optional[str]] = mapped_column(Text)
    variant_type: Mapped[str] = mapped_column(Text, nullable=False)
    variant_value: Mapped[str] = mapped_column(Text, nullable=False)
    price_modifier: Mapped[int] = mapped_column(Integer, default=0)
    is_limited_edition: Mapped[bool] = mapped_column(Boolean, default=False)
    max_quantity: Mapped[Optional[int]] = mapped_column(Integer)
    # Owned by order fulfillment.
    sold_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    media: Mapped[Optional[list]] = mapped_column(JSON)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (Index("idx_variants_product_id", "product_id"),)


class ProductSpecRow(Base):
    __tablename__ = "product_specs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    spec_key: Mapped[str] = mapped_column(Text, nullable=False)
    spec_value: Mapped[str] = mapped_column(Text, nullable=False)
    spec_unit: Mapped[Optional[str]] = mapped_column(Text)
    display_order: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (
        UniqueConstraint("product_id", "spec_key", name="idx_specs_key"),
    )


class ProductDependencyRow(Base):
    __tablename__ = "product_dependencies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[str] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    depends_on_product_id: Mapped[str] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    dependency_type: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        UniqueConstraint(
            "product_id",
            "depends_on_product_id",
            "dependency_type",
            name="idx_dependencies_unique",
        ),
    )
