"""
Tests for customer receipts and vendor payments on account.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from pos_ledger import chart
from pos_ledger.exceptions import NoMappingFoundError
from pos_ledger.models.journal_entry import JournalEntry
from pos_ledger.models.payment_method_account import PaymentMethodAccount
from pos_ledger.models.sales import Sale
from pos_ledger.schemas.documents import ReceiptCreate, VendorPaymentCreate, AllocationLine
from pos_ledger.services.accounting_service import AccountingService
from pos_ledger.services.party_payments import CustomerPaymentService, VendorPaymentService


class TestCustomerReceipt:

    def test_receipt_debits_cash_and_credits_customer(self, db_session, seeded_chart, customer):
        sale = Sale(customer_id=customer.id, branch_id=1, total=Decimal("300"))
        db_session.add(sale)
        db_session.commit()

        receipt = CustomerPaymentService(db_session).create(ReceiptCreate(
            customer_id=customer.id,
            branch_id=1,
            received_at=date(2026, 7, 1),
            method="cash",
            amount=Decimal("300"),
            allocations=[AllocationLine(sale_id=sale.id, amount=Decimal("300"))],
        ), actor_id=5)
        db_session.commit()

        assert len(receipt.allocations) == 1
        entry = AccountingService(db_session).entries_for(receipt)[0]
        lines = {p.account_code: p for p in entry.postings}
        assert entry.entry_date == date(2026, 7, 1)
        assert lines[chart.CASH].debit == Decimal("300.00")
        assert lines[chart.ACCOUNTS_RECEIVABLE].credit == Decimal("300.00")
        assert lines[chart.ACCOUNTS_RECEIVABLE].party_type == "customer"
        assert lines[chart.ACCOUNTS_RECEIVABLE].party_id == customer.id

    def test_receipt_without_posting(self, db_session, seeded_chart, customer):
        receipt = CustomerPaymentService(db_session).create(
            ReceiptCreate(customer_id=customer.id, method="card", amount=Decimal("10")),
            post_to_ledger=False,
        )

        assert receipt.id is not None
        assert AccountingService(db_session).entries_for(receipt) == []

    def test_unmapped_method_writes_nothing(self, db_session, seeded_chart, customer):
        db_session.execute(
            PaymentMethodAccount.__table__.delete().where(PaymentMethodAccount.method == "wallet")
        )
        db_session.commit()

        with pytest.raises(NoMappingFoundError):
            CustomerPaymentService(db_session).create(ReceiptCreate(
                customer_id=customer.id, method="wallet", amount=Decimal("10"),
            ))
        db_session.rollback()

        assert db_session.execute(select(func.count(JournalEntry.id))).scalar() == 0


class TestVendorPayment:

    def test_payment_debits_vendor_and_credits_bank(self, db_session, seeded_chart, vendor):
        payment = VendorPaymentService(db_session).create(VendorPaymentCreate(
            vendor_id=vendor.id,
            branch_id=1,
            method="bank",
            amount=Decimal("1250.50"),
        ))
        db_session.commit()

        entry = AccountingService(db_session).entries_for(payment)[0]
        lines = {p.account_code: p for p in entry.postings}
        assert entry.memo == f"Vendor payment #{payment.id}"
        assert lines[chart.ACCOUNTS_PAYABLE].debit == Decimal("1250.50")
        assert lines[chart.ACCOUNTS_PAYABLE].party_id == vendor.id
        assert lines[chart.BANK].credit == Decimal("1250.50")

    def test_custom_memo(self, db_session, seeded_chart, vendor):
        payment = VendorPaymentService(db_session).create(VendorPaymentCreate(
            vendor_id=vendor.id, method="cash", amount=Decimal("5"), memo="Advance",
        ))

        assert AccountingService(db_session).entries_for(payment)[0].memo == "Advance"
