"""
Sales reports read straight from the sale documents.

- daily_summary: gross, discounts, tax, returns and net per day
- top_products: per-product quantity, revenue, cost and margin, net of
  returns, with the refund rate
"""

import logging
import math
from collections import defaultdict
from decimal import Decimal

from sqlalchemy import select, func, and_
from sqlalchemy.orm import Session

from pos_ledger.models.inventory import Product, ProductStock
from pos_ledger.models.sales import Sale, SaleItem, SaleReturn, SaleReturnItem
from pos_ledger.money import ZERO, to_money
from pos_ledger.schemas.reports import (
    Pagination, SalesSummaryQuery, SalesDailySummary, SalesDay, SalesTotals,
    ProductPerformanceQuery, ProductPerformance, ProductPerformanceRow,
    ProductPerformanceTotals,
)
from pos_ledger.services.running_balance import (
    check_range, clamp_per_page, date_series, day_start, next_day_start, paginate,
)

logger = logging.getLogger(__name__)

DAILY_MAX_PER_PAGE = 30
PRODUCTS_MAX_PER_PAGE = 100


def _sale_filters(stmt, query, created_col):
    if query.date_from:
        stmt = stmt.where(created_col >= day_start(query.date_from))
    if query.date_to:
        stmt = stmt.where(created_col < next_day_start(query.date_to))
    if query.branch_id:
        stmt = stmt.where(Sale.branch_id == query.branch_id)
    if query.salesman_id:
        stmt = stmt.where(Sale.salesman_id == query.salesman_id)
    if query.customer_id:
        stmt = stmt.where(Sale.customer_id == query.customer_id)
    return stmt


def _sum_totals(days) -> SalesTotals:
    return SalesTotals(
        gross=sum((d.gross for d in days), ZERO),
        discounts=sum((d.discounts for d in days), ZERO),
        tax=sum((d.tax for d in days), ZERO),
        returns=sum((d.returns for d in days), ZERO),
        net=sum((d.net for d in days), ZERO),
    )


class SalesReportService:

    def __init__(self, db: Session):
        self.db = db

    def daily_summary(
        self, query: SalesSummaryQuery | None = None, **params
    ) -> SalesDailySummary:
        """
        Day-wise sales net of returns.

        Every day of the range is listed when both bounds are given;
        otherwise only days with sales or returns.
        """
        query = query or SalesSummaryQuery(**params)
        check_range(query.date_from, query.date_to)
        per_page = clamp_per_page(query.per_page, DAILY_MAX_PER_PAGE)

        sales = defaultdict(lambda: [ZERO, ZERO, ZERO, ZERO])
        for row in self.db.execute(_sale_filters(
            select(Sale.created_at, Sale.subtotal, Sale.discount, Sale.tax, Sale.total),
            query, Sale.created_at,
        )):
            bucket = sales[row.created_at.date()]
            bucket[0] += to_money(row.subtotal)
            bucket[1] += to_money(row.discount)
            bucket[2] += to_money(row.tax)
            bucket[3] += to_money(row.total)

        returns = defaultdict(lambda: ZERO)
        for row in self.db.execute(_sale_filters(
            select(SaleReturn.created_at, SaleReturn.total)
            .join(Sale, Sale.id == SaleReturn.sale_id),
            query, SaleReturn.created_at,
        )):
            returns[row.created_at.date()] += to_money(row.total)

        if query.date_from and query.date_to:
            days = date_series(query.date_from, query.date_to)
        else:
            days = sorted(set(sales) | set(returns))

        all_days = []
        for day in days:
            gross, discounts, tax, total = sales.get(day, (ZERO, ZERO, ZERO, ZERO))
            returned = returns.get(day, ZERO)
            all_days.append(SalesDay(
                day=day,
                gross=gross,
                discounts=discounts,
                tax=tax,
                returns=returned,
                net=total - returned,
            ))

        offset, pagination = paginate(query.page, per_page, len(all_days))
        page_days = all_days[offset:offset + per_page]

        return SalesDailySummary(
            days=page_days,
            page_totals=_sum_totals(page_days),
            grand_totals=_sum_totals(all_days),
            pagination=pagination,
        )

    def top_products(
        self, query: ProductPerformanceQuery | None = None, **params
    ) -> ProductPerformance:
        """
        Products ranked by revenue, margin or quantity, net of returns.

        Sold cost is the stamped line cost. Returned cost falls back
        from the stamped unit cost to the branch average, then to the
        product's list cost.
        """
        query = query or ProductPerformanceQuery(**params)
        check_range(query.date_from, query.date_to)
        per_page = clamp_per_page(query.per_page, PRODUCTS_MAX_PER_PAGE)

        sold = {
            row.product_id: row for row in self.db.execute(_sale_filters(
                select(
                    SaleItem.product_id,
                    func.sum(SaleItem.quantity).label("qty"),
                    func.coalesce(func.sum(SaleItem.total), 0).label("revenue"),
                    func.coalesce(func.sum(SaleItem.line_cost), 0).label("cogs"),
                )
                .join(Sale, Sale.id == SaleItem.sale_id)
                .group_by(SaleItem.product_id),
                query, SaleItem.created_at,
            ))
        }

        return_cost = func.coalesce(
            SaleReturnItem.unit_cost, ProductStock.avg_cost, Product.cost_price, 0
        )
        returned = {
            row.product_id: row for row in self.db.execute(_sale_filters(
                select(
                    SaleReturnItem.product_id,
                    func.sum(SaleReturnItem.quantity).label("qty"),
                    func.coalesce(func.sum(SaleReturnItem.total), 0).label("revenue"),
                    func.coalesce(
                        func.sum(SaleReturnItem.quantity * return_cost), 0
                    ).label("cogs"),
                )
                .join(SaleReturn, SaleReturn.id == SaleReturnItem.sale_return_id)
                .join(Sale, Sale.id == SaleReturn.sale_id)
                .join(Product, Product.id == SaleReturnItem.product_id)
                .outerjoin(ProductStock, and_(
                    ProductStock.product_id == SaleReturnItem.product_id,
                    ProductStock.branch_id == Sale.branch_id,
                ))
                .group_by(SaleReturnItem.product_id),
                query, SaleReturnItem.created_at,
            ))
        }

        # A product returned in range but sold outside it still gets a row
        merged = []
        for product_id in sold.keys() | returned.keys():
            s = sold.get(product_id)
            r = returned.get(product_id)
            sold_qty = int(s.qty or 0) if s else 0
            refund_qty = int(r.qty or 0) if r else 0
            revenue = (to_money(s.revenue) if s else ZERO) - (to_money(r.revenue) if r else ZERO)
            cogs = (to_money(s.cogs) if s else ZERO) - (to_money(r.cogs) if r else ZERO)
            merged.append({
                "product_id": product_id,
                "qty": sold_qty - refund_qty,
                "revenue": revenue,
                "cogs": cogs,
                "margin": revenue - cogs,
                "refund_qty": refund_qty,
                "refund_rate": (
                    (Decimal(refund_qty) / Decimal(sold_qty)).quantize(Decimal("0.0001"))
                    if sold_qty > 0 else Decimal("0.0000")
                ),
            })

        merged.sort(
            key=lambda m: (m[query.sort_by], m["product_id"]),
            reverse=query.direction == "desc",
        )

        offset, pagination = paginate(query.page, per_page, len(merged))
        page = merged[offset:offset + per_page]

        products = {
            p.id: p for p in self.db.execute(
                select(Product).where(Product.id.in_([m["product_id"] for m in page]))
            ).scalars().all()
        } if page else {}

        rows = [
            ProductPerformanceRow(
                name=products[m["product_id"]].name if m["product_id"] in products else "",
                sku=products[m["product_id"]].sku if m["product_id"] in products else None,
                **m,
            )
            for m in page
        ]

        revenue = sum((m["revenue"] for m in merged), ZERO)
        cogs = sum((m["cogs"] for m in merged), ZERO)
        totals = ProductPerformanceTotals(
            qty=sum(m["qty"] for m in merged),
            revenue=revenue,
            cogs=cogs,
            margin=revenue - cogs,
            refund_qty=sum(m["refund_qty"] for m in merged),
        )

        return ProductPerformance(rows=rows, totals=totals, pagination=pagination)
