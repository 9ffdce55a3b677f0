"""
Inputs the document services hand to the posting services.
"""

from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from pos_ledger.models.enums import ClaimType

PaymentMethod = Literal["cash", "bank", "card", "wallet"]


class DocumentTotals(BaseModel):
    """Header totals of a sale or purchase, before or after an edit."""
    subtotal: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    delivery_charge: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    @classmethod
    def of(cls, document) -> "DocumentTotals":
        return cls(
            subtotal=document.subtotal or 0,
            discount=document.discount or 0,
            delivery_charge=getattr(document, "delivery_charge", None) or 0,
            tax=document.tax or 0,
            total=document.total or 0,
        )


class ReceiveRow(BaseModel):
    item_id: int
    receive_qty: int


class ClaimLineCreate(BaseModel):
    purchase_item_id: int
    quantity: int = Field(ge=1)
    # Defaults to False for shortage claims, True otherwise
    affects_stock: bool | None = None
    remarks: str | None = None
    batch_no: str | None = Field(default=None, max_length=50)
    expiry_date: date | None = None


class ClaimCreate(BaseModel):
    purchase_id: int
    type: ClaimType = ClaimType.OTHER
    reason: str | None = None
    items: list[ClaimLineCreate] = Field(min_length=1)
    approve_now: bool = False


class ClaimReceiptCreate(BaseModel):
    amount: Decimal = Field(gt=0, decimal_places=2)
    method: str = Field(default="cash", max_length=30)
    reference: str | None = Field(default=None, max_length=100)
    received_at: date | None = None
    # Credit accounts payable instead of the purchase-returns account
    credit_payable: bool = False


class AllocationLine(BaseModel):
    sale_id: int
    amount: Decimal = Field(gt=0, decimal_places=2)


class ReceiptCreate(BaseModel):
    """A customer receipt on account."""
    customer_id: int
    branch_id: int | None = None
    received_at: date | None = None
    method: PaymentMethod
    amount: Decimal = Field(gt=0, decimal_places=2)
    reference: str | None = Field(default=None, max_length=100)
    note: str | None = None
    allocations: list[AllocationLine] = []


class VendorPaymentCreate(BaseModel):
    vendor_id: int | None = None
    purchase_id: int | None = None
    branch_id: int | None = None
    paid_at: date | None = None
    method: PaymentMethod
    amount: Decimal = Field(gt=0, decimal_places=2)
    memo: str | None = Field(default=None, max_length=255)
    reference: str | None = Field(default=None, max_length=100)
    note: str | None = None
