"""
Cash book API endpoints.

Mirror rows are written by the document hooks; the only row created
directly over HTTP is a stand-alone expense.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from pos_ledger.exceptions import DocumentNotFoundError
from pos_ledger.models.base import get_db
from pos_ledger.models.enums import DocumentKind
from pos_ledger.schemas.cash import ExpenseCreate, CashTransactionResponse
from pos_ledger.services.cash_sync_service import CashSyncService

router = APIRouter(prefix="/cash", tags=["Cash"])


@router.post("/expenses", response_model=CashTransactionResponse, status_code=201)
def create_expense(
    request: ExpenseCreate,
    actor_id: int | None = None,
    db: Session = Depends(get_db),
):
    """Record an expense paid from a cash or bank account."""
    service = CashSyncService(db)
    try:
        txn = service.create_expense(request, actor_id=actor_id)
        db.commit()
        return txn
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/sources/{kind}/{source_id}", response_model=list[CashTransactionResponse])
def mirror_rows(kind: DocumentKind, source_id: int, db: Session = Depends(get_db)):
    """Live mirror rows for one source document."""
    try:
        return CashSyncService(db).for_source(kind, source_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
