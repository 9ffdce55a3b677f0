"""
Report API endpoints.

Every report is read-only: query parameters are validated into the
report's query model and the computed result is returned as-is.
Invalid date ranges and unknown accounts come back as 400.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pos_ledger.exceptions import LedgerError, DocumentNotFoundError
from pos_ledger.models.base import get_db
from pos_ledger.models.enums import PartyKind
from pos_ledger.schemas.reports import (
    LedgerQuery, LedgerResult, PartyBalanceRow,
    CashbookQuery, CashbookResult,
    DayBookQuery, DayBookSummary, DayBookDetailsQuery, DayBookDetails,
    ProfitLossQuery, ProfitLossReport,
    SalesSummaryQuery, SalesDailySummary,
    ProductPerformanceQuery, ProductPerformance,
    StockMovementQuery, StockMovementReport,
)
from pos_ledger.services.cashbook import CashbookService
from pos_ledger.services.daybook import DayBookService
from pos_ledger.services.ledger_report import LedgerReportService
from pos_ledger.services.profit_loss import ProfitLossService
from pos_ledger.services.sales_report import SalesReportService
from pos_ledger.services.stock_movement_report import StockMovementReportService

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/ledger", response_model=LedgerResult)
def ledger_statement(
    query: LedgerQuery = Depends(),
    db: Session = Depends(get_db),
):
    """Party or account statement with a running balance per row."""
    try:
        return LedgerReportService(db).get_ledger(query)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except LedgerError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/party-balances/{party_type}", response_model=list[PartyBalanceRow])
def party_balances(
    party_type: PartyKind,
    branch_id: int | None = None,
    as_of: date | None = None,
    db: Session = Depends(get_db),
):
    return LedgerReportService(db).party_balances(party_type, branch_id, as_of)


@router.get("/cashbook", response_model=CashbookResult)
def cashbook(
    date_from: date | None = None,
    date_to: date | None = None,
    branch_id: int | None = None,
    account_codes: list[str] | None = Query(default=None),
    include_bank: bool = True,
    page: int | None = Query(default=None, ge=1),
    per_page: int = Query(default=1000, ge=1),
    db: Session = Depends(get_db),
):
    query = CashbookQuery(
        date_from=date_from,
        date_to=date_to,
        branch_id=branch_id,
        account_codes=account_codes,
        include_bank=include_bank,
        page=page,
        per_page=per_page,
    )
    try:
        return CashbookService(db).daily_summary(query)
    except LedgerError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/daybook", response_model=DayBookSummary)
def daybook_summary(
    query: DayBookQuery = Depends(),
    db: Session = Depends(get_db),
):
    try:
        return DayBookService(db).summary(query)
    except LedgerError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/daybook/{day}", response_model=DayBookDetails)
def daybook_details(
    day: date,
    branch_id: int | None = None,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=100, ge=1),
    sort: str = "created_at",
    order: str = "asc",
    reference_type: str | None = None,
    search: str | None = None,
    include_lines: bool = True,
    db: Session = Depends(get_db),
):
    """Entries of one day with their cash in/out and account lines."""
    try:
        query = DayBookDetailsQuery(
            day=day,
            branch_id=branch_id,
            page=page,
            per_page=per_page,
            sort=sort,
            order=order,
            reference_type=reference_type,
            search=search,
            include_lines=include_lines,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return DayBookService(db).details(query)


@router.get("/profit-loss", response_model=ProfitLossReport)
def profit_loss(
    query: ProfitLossQuery = Depends(),
    db: Session = Depends(get_db),
):
    try:
        return ProfitLossService(db).summary(query)
    except LedgerError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/sales/daily", response_model=SalesDailySummary)
def sales_daily(
    query: SalesSummaryQuery = Depends(),
    db: Session = Depends(get_db),
):
    try:
        return SalesReportService(db).daily_summary(query)
    except LedgerError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/sales/top-products", response_model=ProductPerformance)
def top_products(
    query: ProductPerformanceQuery = Depends(),
    db: Session = Depends(get_db),
):
    try:
        return SalesReportService(db).top_products(query)
    except LedgerError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/stock-movements", response_model=StockMovementReport)
def stock_movements(
    date_from: date | None = None,
    date_to: date | None = None,
    product_ids: list[int] = Query(default=[]),
    branch_ids: list[int] = Query(default=[]),
    types: list[str] = Query(default=[]),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=20, ge=1),
    order: str = "asc",
    db: Session = Depends(get_db),
):
    try:
        query = StockMovementQuery(
            date_from=date_from,
            date_to=date_to,
            product_ids=product_ids,
            branch_ids=branch_ids,
            types=types,
            page=page,
            per_page=per_page,
            order=order,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        return StockMovementReportService(db).movement_detail(query)
    except LedgerError as e:
        raise HTTPException(status_code=400, detail=str(e))
