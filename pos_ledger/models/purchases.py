"""
Purchase-side documents: bills, items, payments, claims and vendor
payments.

Purchase and PurchaseClaim headers are row-locked before any
read-modify-write (receiving, claim approval).
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Text, Date, DateTime, Numeric, Integer, Boolean, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_ledger.models.base import Base
from pos_ledger.models.enums import ReceiveStatus, ClaimType, ClaimStatus


class Purchase(Base):
    __tablename__ = "purchases"

    id: Mapped[int] = mapped_column(primary_key=True)
    invoice_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    vendor_id: Mapped[int | None] = mapped_column(
        ForeignKey("vendors.id"), nullable=True, index=True
    )
    branch_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    discount: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(20), default="open")
    receive_status: Mapped[ReceiveStatus] = mapped_column(
        SAEnum(ReceiveStatus, name="receive_status_enum"),
        nullable=False,
        default=ReceiveStatus.ORDERED,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    items: Mapped[list["PurchaseItem"]] = relationship(
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.id",
    )
    payments: Mapped[list["PurchasePayment"]] = relationship(
        back_populates="purchase"
    )

    def __repr__(self) -> str:
        return f"<Purchase {self.id} {self.invoice_no} ({self.receive_status.value})>"


class PurchaseItem(Base):
    __tablename__ = "purchase_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    purchase_id: Mapped[int] = mapped_column(
        ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    received_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    purchase: Mapped["Purchase"] = relationship(back_populates="items")

    @property
    def remaining_to_receive(self) -> int:
        return max(0, self.quantity - self.received_qty)


class PurchasePayment(Base):
    """Money paid to the vendor against a specific purchase."""

    __tablename__ = "purchase_payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    purchase_id: Mapped[int] = mapped_column(
        ForeignKey("purchases.id"), nullable=False, index=True
    )
    method: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    tx_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cash_transaction_id: Mapped[int | None] = mapped_column(
        ForeignKey("cash_transactions.id", ondelete="SET NULL"), nullable=True
    )
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    purchase: Mapped["Purchase"] = relationship(back_populates="payments")


class PurchaseClaim(Base):
    __tablename__ = "purchase_claims"

    id: Mapped[int] = mapped_column(primary_key=True)
    claim_no: Mapped[str] = mapped_column(String(50), nullable=False)
    purchase_id: Mapped[int] = mapped_column(
        ForeignKey("purchases.id"), nullable=False, index=True
    )
    vendor_id: Mapped[int | None] = mapped_column(
        ForeignKey("vendors.id"), nullable=True
    )
    branch_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    type: Mapped[ClaimType] = mapped_column(
        SAEnum(ClaimType, name="claim_type_enum"),
        nullable=False,
        default=ClaimType.OTHER,
    )
    status: Mapped[ClaimStatus] = mapped_column(
        SAEnum(ClaimStatus, name="claim_status_enum"),
        nullable=False,
        default=ClaimStatus.PENDING,
    )
    subtotal: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Numeric(15, 2), default=Decimal("0"))
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    approved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    rejected_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    closed_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    purchase: Mapped["Purchase"] = relationship()
    items: Mapped[list["PurchaseClaimItem"]] = relationship(
        back_populates="claim",
        cascade="all, delete-orphan",
        order_by="PurchaseClaimItem.id",
    )
    receipts: Mapped[list["PurchaseClaimReceipt"]] = relationship(
        back_populates="claim"
    )

    def __repr__(self) -> str:
        return f"<PurchaseClaim {self.claim_no} ({self.status.value})>"


class PurchaseClaimItem(Base):
    __tablename__ = "purchase_claim_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    purchase_claim_id: Mapped[int] = mapped_column(
        ForeignKey("purchase_claims.id", ondelete="CASCADE"), nullable=False
    )
    purchase_item_id: Mapped[int] = mapped_column(
        ForeignKey("purchase_items.id"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    affects_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    batch_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    claim: Mapped["PurchaseClaim"] = relationship(back_populates="items")


class PurchaseClaimReceipt(Base):
    """Money received back from the vendor against a claim."""

    __tablename__ = "purchase_claim_receipts"

    id: Mapped[int] = mapped_column(primary_key=True)
    purchase_claim_id: Mapped[int] = mapped_column(
        ForeignKey("purchase_claims.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    method: Mapped[str] = mapped_column(String(30), nullable=False, default="cash")
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    received_at: Mapped[date | None] = mapped_column(Date, nullable=True)
    cash_transaction_id: Mapped[int | None] = mapped_column(
        ForeignKey("cash_transactions.id", ondelete="SET NULL"), nullable=True
    )
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    claim: Mapped["PurchaseClaim"] = relationship(back_populates="receipts")


class VendorPayment(Base):
    """A payment to a vendor on account, not tied to one purchase."""

    __tablename__ = "vendor_payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    vendor_id: Mapped[int | None] = mapped_column(
        ForeignKey("vendors.id"), nullable=True, index=True
    )
    purchase_id: Mapped[int | None] = mapped_column(
        ForeignKey("purchases.id"), nullable=True
    )
    branch_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    paid_at: Mapped[date] = mapped_column(Date, nullable=False)
    method: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
