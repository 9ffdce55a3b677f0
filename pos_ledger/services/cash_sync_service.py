"""
Cash mirror sync.

Keeps one CashTransaction row per cash-affecting document so the cash
book can list money in and out without replaying postings. The mirror
is a convenience view: the journal stays the source of truth.

Payment methods resolve to a cash or bank account through the
configured PaymentMethodAccount rows. A branch-specific mapping wins
over the global one.
"""

import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from pos_ledger.exceptions import NoMappingFoundError, ExpenseAccountRequiredError
from pos_ledger.models.account import Account
from pos_ledger.models.cash_transaction import CashTransaction
from pos_ledger.models.enums import (
    CashTransactionType, CashTransactionStatus, PartyKind, DocumentKind,
    CASH_INFLOW_TYPES, CASH_OUTFLOW_TYPES,
)
from pos_ledger.models.payment_method_account import PaymentMethodAccount
from pos_ledger.models.purchases import PurchasePayment, PurchaseClaimReceipt
from pos_ledger.models.references import document_kind, resolve_document
from pos_ledger.models.sales import Payment, SaleReturnRefund
from pos_ledger.money import to_money
from pos_ledger.schemas.cash import ExpenseCreate, CashTransactionFields

logger = logging.getLogger(__name__)

REQUIRED_MIRROR_FIELDS = ("amount", "method", "txn_date")


class CashSyncService:

    def __init__(self, db: Session):
        self.db = db

    def map_method_to_account(self, method: str, branch_id: int | None = None) -> Account:
        """
        Resolve a payment method to its cash/bank account.

        Tries the branch mapping first, then the global one
        (branch_id NULL). Raises NoMappingFoundError if neither exists.
        """
        if branch_id:
            mapping = self.db.execute(
                select(PaymentMethodAccount).where(
                    PaymentMethodAccount.method == method,
                    PaymentMethodAccount.branch_id == branch_id,
                )
            ).scalar_one_or_none()
            if mapping:
                return mapping.account

        mapping = self.db.execute(
            select(PaymentMethodAccount).where(
                PaymentMethodAccount.method == method,
                PaymentMethodAccount.branch_id.is_(None),
            )
        ).scalar_one_or_none()
        if mapping:
            return mapping.account

        logger.warning("No account mapping for method %r (branch %s)", method, branch_id)
        raise NoMappingFoundError(method, branch_id)

    # --- Source documents -> mirror rows ---

    def sync_from_payment(
        self, payment: Payment, branch_id: int | None = None, actor_id: int | None = None
    ) -> CashTransaction:
        """Sales payment -> receipt (money in from the customer)."""
        sale = payment.sale
        return self._mirror(
            payment,
            branch_id=branch_id if branch_id else (sale.branch_id if sale else None),
            type=CashTransactionType.RECEIPT,
            method=payment.method,
            txn_date=payment.received_on or _day_of(payment.created_at),
            reference=payment.reference or f"Sale#{payment.sale_id}",
            note="Sales payment",
            counterparty=(PartyKind.CUSTOMER, sale.customer_id if sale else None),
            actor_id=payment.received_by or actor_id,
        )

    def sync_from_purchase_payment(
        self, pp: PurchasePayment, branch_id: int | None = None, actor_id: int | None = None
    ) -> CashTransaction:
        """Purchase payment -> payment (money out to the vendor)."""
        purchase = pp.purchase
        return self._mirror(
            pp,
            branch_id=branch_id if branch_id else (purchase.branch_id if purchase else None),
            type=CashTransactionType.PAYMENT,
            method=pp.method or "cash",
            txn_date=_day_of(pp.paid_at),
            reference=pp.tx_ref or f"Purchase#{pp.purchase_id}",
            note="Purchase payment",
            counterparty=(PartyKind.VENDOR, purchase.vendor_id if purchase else None),
            actor_id=pp.created_by or actor_id,
        )

    def sync_from_purchase_claim_receipt(
        self, receipt: PurchaseClaimReceipt, branch_id: int | None = None,
        actor_id: int | None = None,
    ) -> CashTransaction:
        """Claim receipt -> receipt (the vendor pays money back)."""
        claim = receipt.claim
        return self._mirror(
            receipt,
            branch_id=branch_id if branch_id else (claim.branch_id if claim else None),
            type=CashTransactionType.RECEIPT,
            method=receipt.method or "cash",
            txn_date=receipt.received_at,
            reference=receipt.reference or f"Claim#{receipt.purchase_claim_id}",
            note="Purchase claim receipt",
            counterparty=(PartyKind.VENDOR, claim.vendor_id if claim else None),
            actor_id=receipt.created_by or actor_id,
        )

    def sync_from_sale_return_refund(
        self, refund: SaleReturnRefund, branch_id: int | None = None,
        actor_id: int | None = None,
    ) -> CashTransaction:
        """Return refund -> payment (money out to the customer)."""
        sale_return = refund.sale_return
        return self._mirror(
            refund,
            branch_id=branch_id if branch_id else (
                sale_return.branch_id if sale_return else None
            ),
            type=CashTransactionType.PAYMENT,
            method=refund.method or "cash",
            txn_date=refund.refunded_at,
            reference=refund.reference or f"Return#{refund.sale_return_id}",
            note="Sale return refund",
            counterparty=(
                PartyKind.CUSTOMER, sale_return.customer_id if sale_return else None
            ),
            actor_id=refund.created_by or actor_id,
        )

    def _mirror(
        self, source, *, branch_id, type, method, txn_date, reference, note,
        counterparty, actor_id,
    ) -> CashTransaction:
        # One live mirror per source; the back-reference is the guard
        if source.cash_transaction_id:
            existing = self.db.get(CashTransaction, source.cash_transaction_id)
            if existing is not None and not existing.is_deleted:
                return existing

        account = self.map_method_to_account(method, branch_id)
        counterparty_type, counterparty_id = counterparty

        txn = CashTransaction(
            txn_date=txn_date or datetime.utcnow().date(),
            account_id=account.id,
            branch_id=branch_id,
            type=type,
            amount=to_money(source.amount),
            method=method,
            reference=reference,
            note=note,
            status=CashTransactionStatus.APPROVED,
            created_by=actor_id,
            source_type=document_kind(source).value,
            source_id=source.id,
            counterparty_type=counterparty_type.value if counterparty_id else None,
            counterparty_id=counterparty_id,
        )
        self.db.add(txn)
        self.db.flush()

        source.cash_transaction_id = txn.id
        self.db.flush()

        logger.info(
            "Mirrored %s %s as cash %s %s (%s)",
            txn.source_type, source.id, type.value, txn.amount, account.code,
        )
        return txn

    # --- Mirror maintenance ---

    def resync(
        self, txn: CashTransaction, fields: CashTransactionFields | dict
    ) -> CashTransaction:
        """
        Update a mirror row in place after its source was edited.

        A method change also moves the row to the method's account.
        """
        if isinstance(fields, dict):
            fields = CashTransactionFields.model_validate(fields)
        changes = fields.model_dump(exclude_unset=True)
        # Only the reference may be cleared; the row needs the rest
        for key in REQUIRED_MIRROR_FIELDS:
            if key in changes and changes[key] is None:
                del changes[key]

        if "method" in changes and changes["method"] != txn.method:
            txn.account_id = self.map_method_to_account(
                changes["method"], txn.branch_id
            ).id
        if "amount" in changes:
            changes["amount"] = to_money(changes["amount"])

        for key, value in changes.items():
            setattr(txn, key, value)
        self.db.flush()

        logger.info("Resynced cash transaction %s: %s", txn.id, sorted(changes))
        return txn

    def remove(self, txn: CashTransaction) -> None:
        """Soft-delete a mirror row whose source was deleted."""
        txn.deleted_at = datetime.utcnow()
        self.db.flush()
        logger.info("Removed cash transaction %s", txn.id)

    def create_expense(
        self, data: ExpenseCreate, actor_id: int | None = None
    ) -> CashTransaction:
        """
        Record a cash-book expense that has no source document.

        The account comes from data.account_id, or from mapping
        data.method. Raises ExpenseAccountRequiredError if neither.
        """
        account_id = data.account_id
        if not account_id:
            if not data.method:
                raise ExpenseAccountRequiredError()
            account_id = self.map_method_to_account(data.method, data.branch_id).id

        txn = CashTransaction(
            txn_date=data.txn_date or datetime.utcnow().date(),
            account_id=account_id,
            branch_id=data.branch_id,
            type=CashTransactionType.EXPENSE,
            amount=to_money(data.amount),
            method=data.method,
            reference=data.reference,
            voucher_no=data.voucher_no,
            note=data.note or "Expense",
            status=data.status,
            created_by=actor_id,
            counterparty_type=data.counterparty.kind if data.counterparty else None,
            counterparty_id=data.counterparty.id if data.counterparty else None,
        )
        self.db.add(txn)
        self.db.flush()

        logger.info("Recorded expense %s of %s", txn.id, txn.amount)
        return txn

    def opening_balance(
        self, account_id: int, branch_id: int | None, date_from: date
    ) -> Decimal:
        """Mirror balance of an account before `date_from` (approved, live rows)."""
        stmt = select(
            func.coalesce(func.sum(CashTransaction.amount), 0)
        ).where(
            CashTransaction.account_id == account_id,
            CashTransaction.status == CashTransactionStatus.APPROVED,
            CashTransaction.deleted_at.is_(None),
            CashTransaction.txn_date < date_from,
        )
        if branch_id:
            stmt = stmt.where(CashTransaction.branch_id == branch_id)

        inflow = self.db.execute(
            stmt.where(CashTransaction.type.in_(CASH_INFLOW_TYPES))
        ).scalar()
        outflow = self.db.execute(
            stmt.where(CashTransaction.type.in_(CASH_OUTFLOW_TYPES))
        ).scalar()
        return to_money(inflow) - to_money(outflow)

    def for_source(self, kind: DocumentKind, source_id: int) -> list[CashTransaction]:
        """Live mirror rows for a source document, which must exist."""
        resolve_document(self.db, kind, source_id)
        return list(self.db.execute(
            select(CashTransaction).where(
                CashTransaction.source_type == kind.value,
                CashTransaction.source_id == source_id,
                CashTransaction.deleted_at.is_(None),
            )
        ).scalars().all())


def _day_of(value) -> date | None:
    if value is None:
        return None
    return value.date() if isinstance(value, datetime) else value
