"""
Pydantic schemas for the cash mirror.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from pos_ledger.models.enums import CashTransactionType, CashTransactionStatus
from pos_ledger.schemas.references import Party


class ExpenseCreate(BaseModel):
    """
    A cash-book expense not tied to any sale or purchase.

    Either account_id or method must be given; method is mapped to an
    account through the branch-aware payment method mapping.
    """
    amount: Decimal = Field(gt=0, decimal_places=2)
    txn_date: date | None = None
    account_id: int | None = None
    method: str | None = Field(default=None, max_length=30)
    branch_id: int | None = None
    reference: str | None = Field(default=None, max_length=100)
    voucher_no: str | None = Field(default=None, max_length=50)
    note: str | None = None
    counterparty: Party | None = None
    status: CashTransactionStatus = CashTransactionStatus.APPROVED


class CashTransactionFields(BaseModel):
    """Fields a source-document edit may push onto its mirror row."""
    amount: Decimal | None = Field(default=None, gt=0)
    method: str | None = Field(default=None, max_length=30)
    txn_date: date | None = None
    reference: str | None = Field(default=None, max_length=100)


class CashTransactionResponse(BaseModel):
    id: int
    txn_date: date
    account_id: int
    branch_id: int | None
    type: CashTransactionType
    amount: Decimal
    method: str | None
    counterparty_type: str | None
    counterparty_id: int | None
    source_type: str | None
    source_id: int | None
    reference: str | None
    voucher_no: str | None
    note: str | None
    status: CashTransactionStatus
    created_by: int | None
    created_at: datetime
    deleted_at: datetime | None

    model_config = {"from_attributes": True}
