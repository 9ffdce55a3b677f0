"""
Payments on account: customer receipts and vendor payments.

Both resolve the cash/bank side through the branch-aware method
mapping and attribute the receivable/payable side to the party, so
the customer or vendor statement picks them up.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from pos_ledger import chart
from pos_ledger.models.sales import Receipt, ReceiptAllocation
from pos_ledger.models.purchases import VendorPayment
from pos_ledger.money import to_money
from pos_ledger.schemas.documents import ReceiptCreate, VendorPaymentCreate
from pos_ledger.schemas.ledger import PostingLine
from pos_ledger.schemas.references import CustomerParty, VendorParty
from pos_ledger.services.accounting_service import AccountingService
from pos_ledger.services.cash_sync_service import CashSyncService

logger = logging.getLogger(__name__)


class CustomerPaymentService:

    def __init__(self, db: Session):
        self.db = db
        self.accounting = AccountingService(db)
        self.cash_sync = CashSyncService(db)

    def create(
        self, data: ReceiptCreate, post_to_ledger: bool = True,
        actor_id: int | None = None,
    ) -> Receipt:
        """Record a customer receipt: DR cash/bank, CR receivables (customer)."""
        cash_account = self.cash_sync.map_method_to_account(data.method, data.branch_id)

        receipt = Receipt(
            customer_id=data.customer_id,
            branch_id=data.branch_id,
            received_at=data.received_at or datetime.utcnow().date(),
            method=data.method,
            amount=to_money(data.amount),
            reference=data.reference,
            note=data.note,
            created_by=actor_id,
        )
        for allocation in data.allocations:
            receipt.allocations.append(ReceiptAllocation(
                sale_id=allocation.sale_id,
                amount=to_money(allocation.amount),
            ))
        self.db.add(receipt)
        self.db.flush()

        if post_to_ledger:
            self.accounting.post(
                branch_id=receipt.branch_id,
                memo=f"Customer receipt #{receipt.id}",
                lines=[
                    PostingLine(account_code=cash_account.code, debit=receipt.amount),
                    PostingLine(
                        account_code=chart.ACCOUNTS_RECEIVABLE,
                        credit=receipt.amount,
                        party=CustomerParty(id=receipt.customer_id),
                    ),
                ],
                reference=receipt,
                entry_date=receipt.received_at,
                actor_id=actor_id,
            )

        logger.info(
            "Customer receipt %s: %s from customer %s",
            receipt.id, receipt.amount, receipt.customer_id,
        )
        return receipt


class VendorPaymentService:

    def __init__(self, db: Session):
        self.db = db
        self.accounting = AccountingService(db)
        self.cash_sync = CashSyncService(db)

    def create(
        self, data: VendorPaymentCreate, post_to_ledger: bool = True,
        actor_id: int | None = None,
    ) -> VendorPayment:
        """Record a vendor payment: DR payables (vendor), CR cash/bank."""
        cash_account = self.cash_sync.map_method_to_account(data.method, data.branch_id)

        payment = VendorPayment(
            vendor_id=data.vendor_id,
            purchase_id=data.purchase_id,
            branch_id=data.branch_id,
            paid_at=data.paid_at or datetime.utcnow().date(),
            method=data.method,
            amount=to_money(data.amount),
            reference=data.reference,
            note=data.note,
            created_by=actor_id,
        )
        self.db.add(payment)
        self.db.flush()

        if post_to_ledger:
            vendor = VendorParty(id=payment.vendor_id) if payment.vendor_id else None
            self.accounting.post(
                branch_id=payment.branch_id,
                memo=data.memo or f"Vendor payment #{payment.id}",
                lines=[
                    PostingLine(
                        account_code=chart.ACCOUNTS_PAYABLE,
                        debit=payment.amount,
                        party=vendor,
                    ),
                    PostingLine(account_code=cash_account.code, credit=payment.amount),
                ],
                reference=payment,
                entry_date=payment.paid_at,
                actor_id=actor_id,
            )

        logger.info(
            "Vendor payment %s: %s to vendor %s",
            payment.id, payment.amount, payment.vendor_id,
        )
        return payment
