# batch_hub/db_models.py
"""
SQLAlchemy ORM Models for Batch Hub.

Shops, products and the per-shop inventory batches sold from.
"""
from __future__ import annotations
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
import enum

from sqlalchemy import (
    String, Integer, BigInteger, Date, DateTime, Numeric, ForeignKey,
    Index, CheckConstraint, Enum as SQLEnum, func
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from batch_hub.database import Base

# BIGINT in PostgreSQL; SQLite only autoincrements an INTEGER primary key
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")

# ============================================================================
# ENUMS
# ============================================================================

class BatchStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"
    expired = "expired"
    sold_out = "sold_out"


# ============================================================================
# MIXIN for updated_at
# ============================================================================

class TimestampMixin:
    """Mixin for created_at and updated_at columns."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


# ============================================================================
# 1. SHOPS
# ============================================================================

class Shop(TimestampMixin, Base):
    __tablename__ = "shops"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(500))

    # Relationships
    batches: Mapped[List["InventoryBatch"]] = relationship(back_populates="shop")


# ============================================================================
# 2. PRODUCTS
# ============================================================================

class Product(TimestampMixin, Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    brand: Mapped[Optional[str]] = mapped_column(String(100))
    category: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    # GTIN / EAN printed on the pack, alternate exact-lookup key
    gtin: Mapped[Optional[str]] = mapped_column(String(14), unique=True)

    # Relationships
    batches: Mapped[List["InventoryBatch"]] = relationship(back_populates="product")

    __table_args__ = (
        Index("idx_products_name", "name"),
    )


# ============================================================================
# 3. INVENTORY BATCHES
# ============================================================================

class InventoryBatch(TimestampMixin, Base):
    __tablename__ = "inventory_batches"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    shop_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("shops.id", ondelete="CASCADE"), nullable=False)
    # only ever lowered through StockDecrementer
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[BatchStatus] = mapped_column(
        SQLEnum(BatchStatus, name="batch_status"),
        default=BatchStatus.active,
        nullable=False
    )
    expiry_date: Mapped[Optional[date]] = mapped_column(Date)
    discount_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=0, nullable=False)

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="batches")
    shop: Mapped["Shop"] = relationship(back_populates="batches")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="chk_batch_quantity_non_negative"),
        CheckConstraint(
            "discount_percent >= 0 AND discount_percent <= 100",
            name="chk_batch_discount_range"
        ),
        Index("idx_batches_product_shop", "product_id", "shop_id"),
        Index("idx_batches_shop_status", "shop_id", "status"),
        Index("idx_batches_active", "status", postgresql_where="status = 'active'"),
    )
