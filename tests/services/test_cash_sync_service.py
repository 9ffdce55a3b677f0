"""
Tests for the cash mirror: method mapping, one mirror row per source
document, resync/remove, expenses and the explicit lifecycle hooks.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from pos_ledger import chart
from pos_ledger.exceptions import (
    NoMappingFoundError, ExpenseAccountRequiredError, DocumentNotFoundError,
)
from pos_ledger.models.account import Account
from pos_ledger.models.cash_transaction import CashTransaction
from pos_ledger.models.enums import (
    AccountType, CashTransactionType, CashTransactionStatus, DocumentKind,
)
from pos_ledger.models.payment_method_account import PaymentMethodAccount
from pos_ledger.models.purchases import PurchasePayment
from pos_ledger.models.sales import Sale, Payment, SaleReturn, SaleReturnRefund
from pos_ledger.schemas.cash import ExpenseCreate
from pos_ledger.services.accounting_service import AccountingService
from pos_ledger.services.cash_mirror_hooks import CashMirrorHooks
from pos_ledger.services.cash_sync_service import CashSyncService


def mirror_count(db, source_id=None):
    stmt = select(func.count(CashTransaction.id))
    if source_id is not None:
        stmt = stmt.where(CashTransaction.source_id == source_id)
    return db.execute(stmt).scalar()


def make_sale_payment(db, customer, amount="250.00", method="cash", branch_id=1):
    sale = Sale(invoice_no="INV-1", customer_id=customer.id, branch_id=branch_id,
                subtotal=Decimal(amount), total=Decimal(amount))
    db.add(sale)
    db.flush()
    payment = Payment(sale_id=sale.id, amount=Decimal(amount), method=method,
                      received_on=date(2026, 5, 4))
    db.add(payment)
    db.commit()
    return payment


class TestMapMethodToAccount:

    @pytest.fixture
    def till_account(self, db_session, seeded_chart):
        till = Account(code="1005", name="Branch 1 Till", account_type=AccountType.ASSET)
        db_session.add(till)
        db_session.flush()
        db_session.add(PaymentMethodAccount(method="cash", account_id=till.id, branch_id=1))
        db_session.commit()
        return till

    def test_branch_mapping_wins(self, db_session, till_account):
        account = CashSyncService(db_session).map_method_to_account("cash", branch_id=1)
        assert account.id == till_account.id

    def test_falls_back_to_global_mapping(self, db_session, seeded_chart, till_account):
        account = CashSyncService(db_session).map_method_to_account("cash", branch_id=2)
        assert account.id == seeded_chart[chart.CASH].id

    def test_no_mapping_raises_with_method_and_branch(self, db_session, seeded_chart):
        db_session.execute(
            PaymentMethodAccount.__table__.delete().where(
                PaymentMethodAccount.method == "bank"
            )
        )
        db_session.commit()

        with pytest.raises(NoMappingFoundError, match="bank") as exc:
            CashSyncService(db_session).map_method_to_account("bank", branch_id=1)
        assert exc.value.branch_id == 1


class TestMirrorOneToOne:

    def test_create_resync_remove_touch_one_row(self, db_session, seeded_chart, customer):
        payment = make_sale_payment(db_session, customer)
        service = CashSyncService(db_session)

        txn = service.sync_from_payment(payment)
        db_session.commit()

        assert mirror_count(db_session, payment.id) == 1
        assert txn.source_type == DocumentKind.PAYMENT.value
        assert txn.source_id == payment.id
        assert txn.type == CashTransactionType.RECEIPT
        assert txn.amount == Decimal("250.00")
        assert txn.txn_date == date(2026, 5, 4)
        assert txn.reference == f"Sale#{payment.sale_id}"
        assert txn.counterparty_type == "customer"
        assert txn.counterparty_id == customer.id
        assert payment.cash_transaction_id == txn.id

        # A second sync returns the live row rather than adding one
        assert service.sync_from_payment(payment).id == txn.id

        payment.amount = Decimal("275.00")
        service.resync(txn, {"amount": payment.amount})
        db_session.commit()

        assert mirror_count(db_session) == 1
        assert db_session.get(CashTransaction, txn.id).amount == Decimal("275.00")

        service.remove(txn)
        db_session.commit()

        assert mirror_count(db_session) == 1
        assert db_session.get(CashTransaction, txn.id).deleted_at is not None
        assert service.for_source(DocumentKind.PAYMENT, payment.id) == []

    def test_for_source_unknown_document_raises(self, db_session, seeded_chart):
        with pytest.raises(DocumentNotFoundError, match="payment"):
            CashSyncService(db_session).for_source(DocumentKind.PAYMENT, 999)

    def test_resync_can_clear_reference(self, db_session, seeded_chart, customer):
        payment = make_sale_payment(db_session, customer)
        service = CashSyncService(db_session)
        txn = service.sync_from_payment(payment)
        assert txn.reference is not None

        service.resync(txn, {"reference": None})
        db_session.commit()

        refreshed = db_session.get(CashTransaction, txn.id)
        assert refreshed.reference is None
        assert refreshed.amount == Decimal("250.00")
        assert refreshed.txn_date == date(2026, 5, 4)

    def test_method_change_moves_row_to_new_account(self, db_session, seeded_chart, customer):
        payment = make_sale_payment(db_session, customer)
        service = CashSyncService(db_session)
        txn = service.sync_from_payment(payment)

        service.resync(txn, {"method": "card"})
        db_session.commit()

        assert txn.method == "card"
        assert txn.account_id == seeded_chart[chart.BANK].id

    def test_missing_mapping_writes_no_row(self, db_session, seeded_chart, customer):
        payment = make_sale_payment(db_session, customer, method="voucher")

        with pytest.raises(NoMappingFoundError):
            CashSyncService(db_session).sync_from_payment(payment)
        db_session.rollback()

        assert mirror_count(db_session) == 0

    def test_refund_mirrors_as_payment_out(self, db_session, seeded_chart, customer):
        sale = Sale(customer_id=customer.id, branch_id=1, total=Decimal("100"))
        db_session.add(sale)
        db_session.flush()
        sale_return = SaleReturn(sale_id=sale.id, customer_id=customer.id, branch_id=1,
                                 total=Decimal("40"))
        db_session.add(sale_return)
        db_session.flush()
        refund = SaleReturnRefund(sale_return_id=sale_return.id, amount=Decimal("40"),
                                  method="cash")
        db_session.add(refund)
        db_session.commit()

        txn = CashSyncService(db_session).sync_from_sale_return_refund(refund)

        assert txn.type == CashTransactionType.PAYMENT
        assert txn.branch_id == 1
        assert txn.note == "Sale return refund"
        assert txn.reference == f"Return#{sale_return.id}"


class TestExpenses:

    def test_expense_from_method(self, db_session, seeded_chart):
        txn = CashSyncService(db_session).create_expense(
            ExpenseCreate(amount=Decimal("45.00"), method="cash", branch_id=1,
                          note="Tea and snacks"),
            actor_id=9,
        )
        db_session.commit()

        assert txn.type == CashTransactionType.EXPENSE
        assert txn.account_id == seeded_chart[chart.CASH].id
        assert txn.created_by == 9

    def test_expense_needs_account_or_method(self, db_session, seeded_chart):
        with pytest.raises(ExpenseAccountRequiredError):
            CashSyncService(db_session).create_expense(ExpenseCreate(amount=Decimal("5")))


class TestOpeningBalance:

    def test_only_approved_live_rows_before_the_date_count(self, db_session, seeded_chart):
        cash_id = seeded_chart[chart.CASH].id

        def row(day, kind, amount, **extra):
            db_session.add(CashTransaction(
                txn_date=day, account_id=cash_id, branch_id=1, type=kind,
                amount=Decimal(amount), **extra,
            ))

        row(date(2026, 1, 1), CashTransactionType.RECEIPT, "500")
        row(date(2026, 1, 2), CashTransactionType.EXPENSE, "120")
        row(date(2026, 1, 3), CashTransactionType.PAYMENT, "80")
        row(date(2026, 1, 3), CashTransactionType.RECEIPT, "999",
            status=CashTransactionStatus.PENDING)
        row(date(2026, 1, 3), CashTransactionType.RECEIPT, "999",
            deleted_at=datetime(2026, 1, 4))
        row(date(2026, 1, 10), CashTransactionType.RECEIPT, "1000")
        db_session.commit()

        opening = CashSyncService(db_session).opening_balance(cash_id, 1, date(2026, 1, 5))
        assert opening == Decimal("300.00")


class TestMirrorHooks:

    def test_purchase_payment_creates_mirror_and_settles_payable(
        self, db_session, seeded_chart, make_purchase
    ):
        purchase = make_purchase()
        pp = PurchasePayment(purchase_id=purchase.id, method="bank",
                             amount=Decimal("400"), paid_at=datetime(2026, 6, 1, 10, 0))
        db_session.add(pp)
        db_session.commit()

        txn = CashMirrorHooks(db_session).created(pp, actor_id=2)
        db_session.commit()

        assert txn.type == CashTransactionType.PAYMENT
        assert txn.account_id == seeded_chart[chart.BANK].id
        assert txn.counterparty_type == "vendor"

        entries = AccountingService(db_session).entries_for(pp)
        assert len(entries) == 1
        lines = {p.account_code: p for p in entries[0].postings}
        assert lines[chart.ACCOUNTS_PAYABLE].debit == Decimal("400.00")
        assert lines[chart.ACCOUNTS_PAYABLE].party_type == "vendor"
        assert lines[chart.BANK].credit == Decimal("400.00")

    def test_repeated_created_settles_payable_once(
        self, db_session, seeded_chart, make_purchase
    ):
        purchase = make_purchase()
        pp = PurchasePayment(purchase_id=purchase.id, method="cash",
                             amount=Decimal("400"), paid_at=datetime(2026, 6, 1, 10, 0))
        db_session.add(pp)
        db_session.commit()
        hooks = CashMirrorHooks(db_session)

        first = hooks.created(pp)
        db_session.commit()
        second = hooks.created(pp)
        db_session.commit()

        assert second.id == first.id
        assert mirror_count(db_session, pp.id) == 1
        accounting = AccountingService(db_session)
        assert len(accounting.entries_for(pp)) == 1
        assert accounting.account_balance(chart.CASH) == Decimal("-400.00")

    def test_updated_resyncs_and_deleted_soft_deletes(self, db_session, seeded_chart, customer):
        payment = make_sale_payment(db_session, customer)
        hooks = CashMirrorHooks(db_session)
        txn = hooks.created(payment)

        payment.amount = Decimal("260.00")
        payment.reference = "RCPT-77"
        assert hooks.updated(payment).id == txn.id
        assert txn.amount == Decimal("260.00")
        assert txn.reference == "RCPT-77"

        # Clearing the document's reference restores the default label
        payment.reference = None
        hooks.updated(payment)
        assert txn.reference == f"Sale#{payment.sale_id}"

        hooks.deleted(payment)
        db_session.commit()

        assert txn.deleted_at is not None
        assert mirror_count(db_session) == 1

    def test_updated_creates_missing_mirror(self, db_session, seeded_chart, customer):
        payment = make_sale_payment(db_session, customer)

        txn = CashMirrorHooks(db_session).updated(payment)

        assert txn.source_id == payment.id
        assert mirror_count(db_session) == 1

    def test_unregistered_document_rejected(self, db_session, seeded_chart, customer):
        sale = Sale(customer_id=customer.id, branch_id=1)
        with pytest.raises(ValueError, match="no cash mirror"):
            CashMirrorHooks(db_session).created(sale)
