"""
Pydantic schemas for the report engines.

Every report takes a query model and returns a fully computed result:
callers only format what comes back.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from pos_ledger.models.enums import (
    AccountType, DocumentKind, PartyKind, StockMovementType,
)

SortOrder = Literal["asc", "desc"]


class Pagination(BaseModel):
    current_page: int
    per_page: int
    last_page: int
    total: int


# --- Ledger / statement ---

class LedgerQuery(BaseModel):
    """
    Statement filters.

    With neither party_type nor account_code the statement covers
    every customer posting, like the receivables sub-ledger.
    """
    party_type: PartyKind | None = None
    party_id: int | None = None
    account_code: str | None = None
    branch_id: int | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=15, ge=1)


class LedgerRow(BaseModel):
    posting_id: int
    journal_entry_id: int
    date: datetime
    branch_id: int | None
    account_code: str
    account_name: str
    memo: str | None
    reference_type: str | None
    reference_id: int | None
    party_type: str | None
    party_id: int | None
    debit: Decimal
    credit: Decimal
    balance: Decimal


class LedgerResult(BaseModel):
    party_type: PartyKind | None
    party_id: int | None
    party_name: str | None = None
    account_code: str | None
    opening: Decimal
    opening_for_page: Decimal
    closing_for_page: Decimal
    items: list[LedgerRow]
    pagination: Pagination


class PartyBalanceRow(BaseModel):
    party_type: PartyKind
    party_id: int
    name: str | None
    debit: Decimal
    credit: Decimal
    balance: Decimal


# --- Cashbook ---

class CashbookQuery(BaseModel):
    date_from: date | None = None
    date_to: date | None = None
    branch_id: int | None = None
    account_codes: list[str] | None = None
    include_bank: bool = True
    page: int | None = Field(default=None, ge=1)
    per_page: int = Field(default=1000, ge=1)


class CashbookDay(BaseModel):
    day: date
    receipts: Decimal
    payments: Decimal
    expense: Decimal
    net: Decimal
    closing: Decimal


class CashbookTotals(BaseModel):
    receipts: Decimal
    payments: Decimal
    expense: Decimal
    net: Decimal
    closing: Decimal


class CashbookResult(BaseModel):
    date_from: date
    date_to: date
    branch_id: int | None
    account_codes: list[str]
    opening: Decimal
    rows: list[CashbookDay]
    totals: CashbookTotals
    pagination: Pagination | None = None


# --- DayBook ---

class DayBookQuery(BaseModel):
    branch_id: int | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=30, ge=1)
    order: SortOrder = "desc"


class DayBookDay(BaseModel):
    day: date
    opening: Decimal
    cash_in: Decimal
    cash_out: Decimal
    expense: Decimal
    net: Decimal
    closing: Decimal


class DayBookTotals(BaseModel):
    cash_in: Decimal
    cash_out: Decimal
    expense: Decimal
    net: Decimal
    closing: Decimal | None = None


class DayBookSummary(BaseModel):
    branch_id: int | None
    date_from: date
    date_to: date
    order: SortOrder
    opening: Decimal
    totals: DayBookTotals
    page_totals: DayBookTotals
    days: list[DayBookDay]
    pagination: Pagination


DayBookSort = Literal["created_at", "in", "out", "expense", "net", "reference_type"]


class DayBookDetailsQuery(BaseModel):
    day: date
    branch_id: int | None = None
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=100, ge=1)
    sort: DayBookSort = "created_at"
    order: SortOrder = "asc"
    reference_type: DocumentKind | None = None
    search: str | None = None
    include_lines: bool = True


class DayBookLine(BaseModel):
    account_id: int
    account_code: str
    account_name: str
    account_type: AccountType
    debit: Decimal
    credit: Decimal
    # Direction of the line under the account-type convention
    flow: Literal["in", "out"] | None


class DayBookEntryRow(BaseModel):
    entry_id: int
    time: datetime
    memo: str | None
    reference_type: str | None
    reference_id: int | None
    cash_in: Decimal
    cash_out: Decimal
    expense: Decimal
    net: Decimal
    lines: list[DayBookLine] | None


class DayBookDetails(BaseModel):
    day: date
    branch_id: int | None
    opening: Decimal
    closing: Decimal
    totals: DayBookTotals
    rows: list[DayBookEntryRow]
    pagination: Pagination
    sort: DayBookSort
    order: SortOrder


# --- Profit & loss ---

class ProfitLossQuery(BaseModel):
    date_from: date | None = None
    date_to: date | None = None
    branch_id: int | None = None


class ProfitLossLine(BaseModel):
    account_id: int
    account_code: str
    account_name: str
    account_type: AccountType
    amount: Decimal


class ProfitLossSection(BaseModel):
    rows: list[ProfitLossLine] = []
    total: Decimal = Decimal("0.00")


class ProfitLossReport(BaseModel):
    date_from: date | None
    date_to: date | None
    branch_id: int | None
    income: ProfitLossSection
    cogs: ProfitLossSection
    expenses: ProfitLossSection
    gross_profit: Decimal
    net_profit: Decimal


# --- Sales ---

class SalesSummaryQuery(BaseModel):
    date_from: date | None = None
    date_to: date | None = None
    branch_id: int | None = None
    salesman_id: int | None = None
    customer_id: int | None = None
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=30, ge=1)


class SalesTotals(BaseModel):
    gross: Decimal
    discounts: Decimal
    tax: Decimal
    returns: Decimal
    net: Decimal


class SalesDay(SalesTotals):
    day: date


class SalesDailySummary(BaseModel):
    days: list[SalesDay]
    page_totals: SalesTotals
    grand_totals: SalesTotals
    pagination: Pagination


class ProductPerformanceQuery(BaseModel):
    date_from: date | None = None
    date_to: date | None = None
    branch_id: int | None = None
    salesman_id: int | None = None
    customer_id: int | None = None
    sort_by: Literal["revenue", "margin", "qty"] = "revenue"
    direction: SortOrder = "desc"
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=20, ge=1)


class ProductPerformanceRow(BaseModel):
    product_id: int
    name: str
    sku: str | None
    qty: int
    revenue: Decimal
    cogs: Decimal
    margin: Decimal
    refund_qty: int
    refund_rate: Decimal


class ProductPerformanceTotals(BaseModel):
    qty: int
    revenue: Decimal
    cogs: Decimal
    margin: Decimal
    refund_qty: int


class ProductPerformance(BaseModel):
    rows: list[ProductPerformanceRow]
    totals: ProductPerformanceTotals
    pagination: Pagination


# --- Stock movements ---

class StockMovementQuery(BaseModel):
    date_from: date | None = None
    date_to: date | None = None
    product_ids: list[int] = []
    branch_ids: list[int] = []
    types: list[StockMovementType] = []
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=20, ge=1)
    order: SortOrder = "asc"


class StockMovementRow(BaseModel):
    id: int
    date: datetime
    product_id: int
    product_name: str | None
    sku: str | None
    branch_id: int
    type: StockMovementType
    ref_type: str | None
    ref_id: int | None
    quantity: int
    qty_in: int
    qty_out: int
    balance_qty: int


class StockMovementTotals(BaseModel):
    qty_in: int
    qty_out: int
    net_qty: int


class StockMovementReport(BaseModel):
    date_from: date
    date_to: date
    order: SortOrder
    opening_quantity: int
    rows: list[StockMovementRow]
    totals: StockMovementTotals
    pagination: Pagination
