"""
Inventory models: products, per-branch stock and the movement log.

ProductStock is the only row the valuation writer mutates in place.
Its quantity may go negative (oversell and over-return are allowed),
and avg_cost only moves on inbound receipts.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Text, DateTime, Numeric, Integer, Boolean, ForeignKey, Index,
    UniqueConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_ledger.models.base import Base
from pos_ledger.models.enums import StockMovementType


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True)
    sku: Mapped[str | None] = mapped_column(String(60), unique=True, nullable=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    price: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0")
    )
    cost_price: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0")
    )
    track_inventory: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Product {self.id} {self.name!r}>"


class ProductStock(Base):
    __tablename__ = "product_stocks"
    __table_args__ = (
        UniqueConstraint("product_id", "branch_id", name="uq_stock_product_branch"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id"), nullable=False
    )
    branch_id: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_cost: Mapped[Decimal] = mapped_column(
        Numeric(18, 4), nullable=False, default=Decimal("0")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    product: Mapped["Product"] = relationship()

    def __repr__(self) -> str:
        return (
            f"<ProductStock p={self.product_id} b={self.branch_id} "
            f"qty={self.quantity} avg={self.avg_cost}>"
        )


class StockMovement(Base):
    """Append-only audit row; quantity is signed (+in / -out)."""

    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("ix_stock_movements_product_branch", "product_id", "branch_id"),
        Index("ix_stock_movements_ref", "ref_type", "ref_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id"), nullable=False
    )
    branch_id: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[StockMovementType] = mapped_column(
        SAEnum(StockMovementType, name="stock_movement_type_enum"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_cost: Mapped[Decimal | None] = mapped_column(
        Numeric(18, 4), nullable=True
    )
    ref_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    ref_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, index=True
    )

    product: Mapped["Product"] = relationship()

    def __repr__(self) -> str:
        return f"<StockMovement {self.type.value} p={self.product_id} {self.quantity:+d}>"
