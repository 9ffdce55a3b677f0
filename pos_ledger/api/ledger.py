"""
Ledger API endpoints.

The API layer is thin: it handles HTTP concerns and delegates every
rule to the AccountingService.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_ledger import chart
from pos_ledger.exceptions import DocumentNotFoundError, UnknownAccountError
from pos_ledger.models.account import Account
from pos_ledger.models.base import get_db
from pos_ledger.schemas.ledger import (
    PostEntryRequest,
    EntryStatusUpdate,
    JournalEntryResponse,
    AccountResponse,
    AccountBalanceResponse,
    IntegrityReport,
    TrialBalance,
)
from pos_ledger.services.accounting_service import AccountingService

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.post("/chart", response_model=list[AccountResponse], status_code=201)
def seed_chart(db: Session = Depends(get_db)):
    """Create the standard chart of accounts and method mappings (idempotent)."""
    accounts = chart.seed_chart_of_accounts(db)
    db.commit()
    return sorted(accounts.values(), key=lambda a: a.code)


@router.get("/accounts", response_model=list[AccountResponse])
def list_accounts(db: Session = Depends(get_db)):
    return db.execute(select(Account).order_by(Account.code)).scalars().all()


@router.post("/entries", response_model=JournalEntryResponse, status_code=201)
def post_entry(
    request: PostEntryRequest,
    db: Session = Depends(get_db),
):
    """
    Post one balanced journal entry.

    Debits must equal credits to the cent and every account code must
    exist; otherwise nothing is written and the call fails with 400.
    """
    service = AccountingService(db)
    try:
        entry = service.post(
            branch_id=request.branch_id,
            memo=request.memo,
            lines=request.lines,
            reference=request.reference,
            entry_date=request.entry_date,
            actor_id=request.actor_id,
        )
        db.commit()
        return entry
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/entries/{entry_id}", response_model=JournalEntryResponse)
def get_entry(entry_id: int, db: Session = Depends(get_db)):
    try:
        return AccountingService(db).get_entry(entry_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/entries/{entry_id}/status", response_model=JournalEntryResponse)
def set_entry_status(
    entry_id: int,
    request: EntryStatusUpdate,
    db: Session = Depends(get_db),
):
    service = AccountingService(db)
    try:
        entry = service.set_entry_status(entry_id, request.status)
        db.commit()
        return entry
    except DocumentNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/accounts/{code}/balance", response_model=AccountBalanceResponse)
def get_account_balance(code: str, db: Session = Depends(get_db)):
    """Balance derived from postings, in the account's natural sign."""
    service = AccountingService(db)
    try:
        account = service.get_account(code)
        balance = service.account_balance(code)
    except UnknownAccountError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return AccountBalanceResponse(
        account_code=account.code,
        account_name=account.name,
        account_type=account.account_type,
        balance=balance,
    )


@router.get("/integrity", response_model=IntegrityReport)
def check_integrity(db: Session = Depends(get_db)):
    return AccountingService(db).check_integrity()


@router.get("/trial-balance", response_model=TrialBalance)
def trial_balance(
    as_of: date | None = None,
    branch_id: int | None = None,
    db: Session = Depends(get_db),
):
    return AccountingService(db).trial_balance(as_of=as_of, branch_id=branch_id)
