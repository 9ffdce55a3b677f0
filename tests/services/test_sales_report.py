"""
Tests for the day-wise sales summary and product performance.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from pos_ledger.models.inventory import Product
from pos_ledger.models.sales import Sale, SaleItem, SaleReturn, SaleReturnItem
from pos_ledger.services.sales_report import SalesReportService


@pytest.fixture
def sales_history(db_session, product):
    """
    10 Mar: 2 x product @100 less 10 discount plus 19 tax.
    12 Mar: 5 x second product @20, and one unit of the first sale returned.
    """
    other = Product(sku="SKU-002", name="Lentils 1kg", price=Decimal("20"),
                    cost_price=Decimal("9"))
    db_session.add(other)
    db_session.flush()

    first = Sale(branch_id=1, subtotal=Decimal("200"), discount=Decimal("10"),
                 tax=Decimal("19"), total=Decimal("209"),
                 created_at=datetime(2026, 3, 10, 10, 0))
    first.items.append(SaleItem(product_id=product.id, quantity=2, price=Decimal("100"),
                                total=Decimal("200"), line_cost=Decimal("120"),
                                created_at=datetime(2026, 3, 10, 10, 0)))
    second = Sale(branch_id=1, subtotal=Decimal("100"), total=Decimal("100"),
                  created_at=datetime(2026, 3, 12, 9, 30))
    second.items.append(SaleItem(product_id=other.id, quantity=5, price=Decimal("20"),
                                 total=Decimal("100"), line_cost=Decimal("50"),
                                 created_at=datetime(2026, 3, 12, 9, 30)))
    db_session.add_all([first, second])
    db_session.flush()

    returned = SaleReturn(sale_id=first.id, branch_id=1, subtotal=Decimal("100"),
                          total=Decimal("100"), created_at=datetime(2026, 3, 12, 16, 0))
    returned.items.append(SaleReturnItem(product_id=product.id, quantity=1,
                                         price=Decimal("100"), total=Decimal("100"),
                                         unit_cost=Decimal("60"),
                                         created_at=datetime(2026, 3, 12, 16, 0)))
    db_session.add(returned)
    db_session.commit()
    return product, other


class TestDailySummary:

    def test_every_day_listed_with_returns_netted(self, db_session, sales_history):
        result = SalesReportService(db_session).daily_summary(
            date_from=date(2026, 3, 10), date_to=date(2026, 3, 12)
        )

        assert [d.day for d in result.days] == [
            date(2026, 3, 10), date(2026, 3, 11), date(2026, 3, 12),
        ]
        first, quiet, last = result.days
        assert (first.gross, first.discounts, first.tax) == (
            Decimal("200.00"), Decimal("10.00"), Decimal("19.00"),
        )
        assert first.net == Decimal("209.00")
        assert quiet.net == Decimal("0.00")
        assert last.returns == Decimal("100.00")
        assert last.net == Decimal("0.00")
        assert result.grand_totals.net == Decimal("209.00")

    def test_open_range_lists_active_days_only(self, db_session, sales_history):
        result = SalesReportService(db_session).daily_summary()

        assert [d.day for d in result.days] == [date(2026, 3, 10), date(2026, 3, 12)]

    def test_page_totals_and_cap(self, db_session, sales_history):
        service = SalesReportService(db_session)

        page = service.daily_summary(date_from=date(2026, 3, 10), date_to=date(2026, 3, 12),
                                     per_page=1, page=3)
        capped = service.daily_summary(per_page=500)

        assert page.page_totals.returns == Decimal("100.00")
        assert page.grand_totals.gross == Decimal("300.00")
        assert capped.pagination.per_page == 30


class TestTopProducts:

    def test_net_of_returns_ranked_by_margin(self, db_session, sales_history):
        rice, lentils = sales_history

        result = SalesReportService(db_session).top_products(sort_by="margin")

        assert [r.product_id for r in result.rows] == [lentils.id, rice.id]
        rice_row = result.rows[1]
        assert rice_row.name == "Basmati Rice 5kg"
        assert rice_row.qty == 1
        assert rice_row.revenue == Decimal("100.00")
        assert rice_row.cogs == Decimal("60.00")
        assert rice_row.margin == Decimal("40.00")
        assert rice_row.refund_rate == Decimal("0.5000")
        assert result.rows[0].refund_rate == Decimal("0.0000")

        assert result.totals.revenue == Decimal("200.00")
        assert result.totals.cogs == Decimal("110.00")
        assert result.totals.refund_qty == 1

    def test_quantity_ascending(self, db_session, sales_history):
        rice, lentils = sales_history

        result = SalesReportService(db_session).top_products(sort_by="qty", direction="asc")

        assert [r.product_id for r in result.rows] == [rice.id, lentils.id]
        assert [r.qty for r in result.rows] == [1, 5]

    def test_return_without_sale_in_range_gets_a_row(self, db_session, sales_history):
        rice, lentils = sales_history

        # The rice sale on 10 Mar falls outside; its return on 12 Mar does not
        result = SalesReportService(db_session).top_products(
            date_from=date(2026, 3, 11), date_to=date(2026, 3, 12), sort_by="revenue",
        )

        assert [r.product_id for r in result.rows] == [lentils.id, rice.id]
        rice_row = result.rows[1]
        assert rice_row.qty == -1
        assert rice_row.revenue == Decimal("-100.00")
        assert rice_row.cogs == Decimal("-60.00")
        assert rice_row.refund_qty == 1
        assert rice_row.refund_rate == Decimal("0.0000")

        assert result.totals.qty == sum(r.qty for r in result.rows) == 4
        assert result.totals.refund_qty == sum(r.refund_qty for r in result.rows) == 1
        assert result.totals.revenue == Decimal("0.00")
