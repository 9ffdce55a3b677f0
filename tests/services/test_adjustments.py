"""
Tests for bill and sale adjustments: one delta entry per edit, the
original entry untouched.
"""

from decimal import Decimal

from pos_ledger import chart
from pos_ledger.models.sales import Sale
from pos_ledger.schemas.documents import DocumentTotals, ReceiveRow
from pos_ledger.services.accounting_service import AccountingService
from pos_ledger.services.adjustments import AdjustmentService, signed_line
from pos_ledger.services.purchase_posting import PurchasePostingService


def amounts(entry):
    return {
        p.account_code: (p.debit, p.credit) for p in entry.postings
    }


def test_signed_line_sides():
    assert signed_line(chart.CASH, Decimal("12.5")).debit == Decimal("12.50")
    line = signed_line(chart.CASH, Decimal("-3"))
    assert (line.debit, line.credit) == (Decimal("0.00"), Decimal("3.00"))


class TestBillAdjustment:

    def test_received_bill_delta_goes_to_price_variance(self, db_session, seeded_chart,
                                                         make_purchase):
        purchase = make_purchase(lines=((10, "100"),), tax="100")
        posting = PurchasePostingService(db_session)
        original = posting.post_vendor_bill(purchase)
        posting.receive_items_and_value(
            purchase, [ReceiveRow(item_id=purchase.items[0].id, receive_qty=10)]
        )
        db_session.commit()
        before = amounts(original)

        entry = AdjustmentService(db_session).post_bill_adjustment(
            purchase,
            old=DocumentTotals(subtotal=1000, tax=100, total=1100),
            new=DocumentTotals(subtotal=1200, tax=120, total=1320),
        )
        db_session.commit()

        assert amounts(entry) == {
            chart.PURCHASE_PRICE_VARIANCE: (Decimal("200.00"), Decimal("0.00")),
            chart.INPUT_VAT: (Decimal("20.00"), Decimal("0.00")),
            chart.ACCOUNTS_PAYABLE: (Decimal("0.00"), Decimal("220.00")),
        }
        db_session.expire_all()
        assert amounts(AccountingService(db_session).get_entry(original.id)) == before
        assert len(AccountingService(db_session).entries_for(purchase)) == 2

    def test_unreceived_bill_delta_goes_to_inventory(self, db_session, seeded_chart,
                                                     make_purchase):
        purchase = make_purchase(lines=((10, "100"),))

        entry = AdjustmentService(db_session).post_bill_adjustment(
            purchase,
            old={"subtotal": 1000, "total": 1000},
            new={"subtotal": 900, "total": 900},
        )

        assert amounts(entry) == {
            chart.INVENTORY: (Decimal("0.00"), Decimal("100.00")),
            chart.ACCOUNTS_PAYABLE: (Decimal("100.00"), Decimal("0.00")),
        }

    def test_no_change_posts_nothing(self, db_session, seeded_chart, make_purchase):
        purchase = make_purchase()
        totals = DocumentTotals.of(purchase)

        assert AdjustmentService(db_session).post_bill_adjustment(
            purchase, totals, totals
        ) is None

    def test_inconsistent_totals_balance_through_variance(self, db_session, seeded_chart,
                                                          make_purchase):
        purchase = make_purchase()

        # Total moves 0.01 more than net + tax
        entry = AdjustmentService(db_session).post_bill_adjustment(
            purchase,
            old=DocumentTotals(subtotal=1000, total=1000),
            new=DocumentTotals(subtotal=1100, total="1100.01"),
        )

        debits = sum(p.debit for p in entry.postings)
        credits = sum(p.credit for p in entry.postings)
        assert debits == credits
        assert amounts(entry)[chart.PURCHASE_PRICE_VARIANCE] == (Decimal("0.01"), Decimal("0.00"))


class TestSaleAdjustment:

    def test_sale_increase(self, db_session, seeded_chart, customer):
        sale = Sale(customer_id=customer.id, branch_id=1)
        db_session.add(sale)
        db_session.commit()

        entry = AdjustmentService(db_session).post_sale_adjustment(
            sale,
            old=DocumentTotals(subtotal=500, tax=50, total=550),
            new=DocumentTotals(subtotal=600, delivery_charge=20, tax=62, total=682),
        )

        assert amounts(entry) == {
            chart.SALES_REVENUE: (Decimal("0.00"), Decimal("120.00")),
            chart.OUTPUT_VAT: (Decimal("0.00"), Decimal("12.00")),
            chart.ACCOUNTS_RECEIVABLE: (Decimal("132.00"), Decimal("0.00")),
        }
        ar = next(p for p in entry.postings if p.account_code == chart.ACCOUNTS_RECEIVABLE)
        assert ar.party_id == customer.id

    def test_sale_residue_lands_on_revenue_and_balances(self, db_session, seeded_chart,
                                                        customer):
        sale = Sale(customer_id=customer.id, branch_id=1)
        db_session.add(sale)
        db_session.commit()

        # Total grows 0.02 more than revenue + tax
        entry = AdjustmentService(db_session).post_sale_adjustment(
            sale,
            old=DocumentTotals(subtotal=100, total=100),
            new=DocumentTotals(subtotal=110, total="110.02"),
        )

        assert sum(p.debit for p in entry.postings) == sum(p.credit for p in entry.postings)
        revenue = sum(
            p.credit - p.debit for p in entry.postings
            if p.account_code == chart.SALES_REVENUE
        )
        assert revenue == Decimal("10.02")
