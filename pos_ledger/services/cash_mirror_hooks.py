"""
Explicit lifecycle hooks for the cash mirror.

The document services call created/updated/deleted right after they
persist a payment-like row. Dispatch goes through MIRRORED_DOCUMENTS,
keyed by model class; no ORM event listeners are involved.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.orm import Session

from pos_ledger import chart
from pos_ledger.models.cash_transaction import CashTransaction
from pos_ledger.models.enums import PartyKind
from pos_ledger.models.purchases import PurchasePayment, PurchaseClaimReceipt
from pos_ledger.models.sales import Payment, SaleReturnRefund
from pos_ledger.schemas.cash import CashTransactionFields
from pos_ledger.schemas.ledger import PostingLine
from pos_ledger.schemas.references import party_of
from pos_ledger.services.accounting_service import AccountingService
from pos_ledger.services.cash_sync_service import CashSyncService, _day_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MirrorBinding:
    """How one document model maps onto its mirror row."""
    sync: Callable[..., CashTransaction]
    fields: Callable[[object], CashTransactionFields]


def _payment_fields(p: Payment) -> CashTransactionFields:
    return CashTransactionFields(
        amount=p.amount, method=p.method or "cash",
        txn_date=p.received_on or _day_of(p.created_at),
        reference=p.reference or f"Sale#{p.sale_id}",
    )


def _purchase_payment_fields(pp: PurchasePayment) -> CashTransactionFields:
    return CashTransactionFields(
        amount=pp.amount, method=pp.method or "cash",
        txn_date=_day_of(pp.paid_at),
        reference=pp.tx_ref or f"Purchase#{pp.purchase_id}",
    )


def _claim_receipt_fields(r: PurchaseClaimReceipt) -> CashTransactionFields:
    return CashTransactionFields(
        amount=r.amount, method=r.method or "cash",
        txn_date=r.received_at,
        reference=r.reference or f"Claim#{r.purchase_claim_id}",
    )


def _refund_fields(r: SaleReturnRefund) -> CashTransactionFields:
    return CashTransactionFields(
        amount=r.amount, method=r.method or "cash",
        txn_date=r.refunded_at,
        reference=r.reference or f"Return#{r.sale_return_id}",
    )


MIRRORED_DOCUMENTS = {
    Payment: MirrorBinding(CashSyncService.sync_from_payment, _payment_fields),
    PurchasePayment: MirrorBinding(
        CashSyncService.sync_from_purchase_payment, _purchase_payment_fields
    ),
    PurchaseClaimReceipt: MirrorBinding(
        CashSyncService.sync_from_purchase_claim_receipt, _claim_receipt_fields
    ),
    SaleReturnRefund: MirrorBinding(
        CashSyncService.sync_from_sale_return_refund, _refund_fields
    ),
}


class CashMirrorHooks:

    def __init__(self, db: Session):
        self.db = db
        self.cash_sync = CashSyncService(db)
        self.accounting = AccountingService(db)

    def _binding(self, document) -> MirrorBinding:
        try:
            return MIRRORED_DOCUMENTS[type(document)]
        except KeyError:
            raise ValueError(
                f"{type(document).__name__} has no cash mirror"
            ) from None

    def _mirror_of(self, document) -> CashTransaction | None:
        if not document.cash_transaction_id:
            return None
        txn = self.db.get(CashTransaction, document.cash_transaction_id)
        if txn is None or txn.is_deleted:
            return None
        return txn

    def created(self, document, branch_id: int | None = None, actor_id: int | None = None):
        """Mirror a new document; a repeat call returns the live mirror untouched."""
        binding = self._binding(document)
        existing = self._mirror_of(document)
        if existing is not None:
            logger.info(
                "%s %s already mirrored as cash transaction %s",
                type(document).__name__, document.id, existing.id,
            )
            return existing

        txn = binding.sync(self.cash_sync, document, branch_id, actor_id)
        if isinstance(document, PurchasePayment):
            self._post_payable_settlement(document, txn, actor_id)
        return txn

    def updated(self, document, branch_id: int | None = None, actor_id: int | None = None):
        """Resync the mirror, or create it if the document never had one."""
        binding = self._binding(document)
        txn = self._mirror_of(document)
        if txn is None:
            return binding.sync(self.cash_sync, document, branch_id, actor_id)
        return self.cash_sync.resync(txn, binding.fields(document))

    def deleted(self, document) -> None:
        self._binding(document)
        txn = self._mirror_of(document)
        if txn is None:
            logger.info(
                "%s %s had no live cash mirror", type(document).__name__, document.id
            )
            return
        self.cash_sync.remove(txn)

    def _post_payable_settlement(
        self, pp: PurchasePayment, txn: CashTransaction, actor_id: int | None
    ) -> None:
        # DR AP (vendor) / CR the cash or bank account the mirror landed on
        purchase = pp.purchase
        vendor = party_of(PartyKind.VENDOR, purchase.vendor_id if purchase else None)
        self.accounting.post(
            branch_id=txn.branch_id,
            memo=f"Purchase payment #{pp.id} for Purchase #{pp.purchase_id}",
            lines=[
                PostingLine(
                    account_code=chart.ACCOUNTS_PAYABLE, debit=txn.amount, party=vendor
                ),
                PostingLine(account_code=txn.account.code, credit=txn.amount),
            ],
            reference=pp,
            entry_date=txn.txn_date,
            actor_id=actor_id or pp.created_by,
        )
