"""
Pydantic schemas for the posting engine.

A posting line names its account by code, never by id: codes are the
stable contract every call site shares.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from pos_ledger.models.enums import AccountType
from pos_ledger.schemas.references import Party, DocumentRef


# --- Request Schemas ---

class PostingLine(BaseModel):
    """One debit or credit line of an entry."""
    account_code: str = Field(min_length=1, max_length=20)
    debit: Decimal = Field(default=Decimal("0"), ge=0)
    credit: Decimal = Field(default=Decimal("0"), ge=0)
    party: Party | None = None


class PostEntryRequest(BaseModel):
    """A complete journal entry submitted over HTTP."""
    branch_id: int | None = None
    memo: str = Field(min_length=1, max_length=255)
    entry_date: date | None = None
    reference: DocumentRef | None = None
    lines: list[PostingLine] = Field(min_length=2)
    actor_id: int | None = None

    @field_validator("lines")
    @classmethod
    def must_move_money(cls, v: list[PostingLine]) -> list[PostingLine]:
        if not any(line.debit or line.credit for line in v):
            raise ValueError("entry must contain at least one non-zero line")
        return v


class EntryStatusUpdate(BaseModel):
    status: str = Field(min_length=1, max_length=20)


# --- Response Schemas ---

class AccountResponse(BaseModel):
    id: int
    code: str
    name: str
    account_type: AccountType
    is_active: bool

    model_config = {"from_attributes": True}


class PostingResponse(BaseModel):
    id: int
    account_id: int
    account_code: str
    debit: Decimal
    credit: Decimal
    party_type: str | None
    party_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class JournalEntryResponse(BaseModel):
    id: int
    entry_date: date
    memo: str | None
    branch_id: int | None
    reference_type: str | None
    reference_id: int | None
    status: str | None
    created_by: int | None
    created_at: datetime
    postings: list[PostingResponse]

    model_config = {"from_attributes": True}


class AccountBalanceResponse(BaseModel):
    account_code: str
    account_name: str
    account_type: AccountType
    balance: Decimal


class IntegrityReport(BaseModel):
    """Whole-ledger debit/credit check."""
    is_balanced: bool
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    unbalanced_entry_ids: list[int] = []


class TrialBalanceRow(BaseModel):
    account_code: str
    account_name: str
    account_type: AccountType
    debit: Decimal
    credit: Decimal


class TrialBalance(BaseModel):
    as_of: date | None
    branch_id: int | None
    rows: list[TrialBalanceRow]
    total_debit: Decimal
    total_credit: Decimal
