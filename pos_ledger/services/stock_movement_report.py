"""
Stock movement report with a running on-hand quantity.

Uses the same opening + prior-page delta + walk approach as the ledger
statements, keyed on (movement created_at, movement id). In descending
order the first row's balance is everything up to and including it,
and the walk subtracts instead of adding.
"""

import logging
from datetime import date, datetime, timedelta

from sqlalchemy import select, func, case
from sqlalchemy.orm import Session

from pos_ledger.models.inventory import Product, StockMovement
from pos_ledger.schemas.reports import (
    StockMovementQuery, StockMovementReport, StockMovementRow, StockMovementTotals,
)
from pos_ledger.services.running_balance import (
    before_row, check_range, clamp_per_page, day_start, next_day_start,
    paginate, up_to_row,
)

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100

NET_QTY = func.coalesce(func.sum(StockMovement.quantity), 0)


class StockMovementReportService:

    def __init__(self, db: Session):
        self.db = db

    def _filtered(self, stmt, query: StockMovementQuery):
        if query.product_ids:
            stmt = stmt.where(StockMovement.product_id.in_(query.product_ids))
        if query.branch_ids:
            stmt = stmt.where(StockMovement.branch_id.in_(query.branch_ids))
        if query.types:
            stmt = stmt.where(StockMovement.type.in_(query.types))
        return stmt

    def _sum(self, stmt) -> int:
        return int(self.db.execute(stmt).scalar() or 0)

    def movement_detail(
        self, query: StockMovementQuery | None = None, **params
    ) -> StockMovementReport:
        query = query or StockMovementQuery(**params)
        today = datetime.utcnow().date()
        date_from = query.date_from or today - timedelta(days=30)
        date_to = query.date_to or today
        check_range(date_from, date_to)
        per_page = clamp_per_page(query.per_page, MAX_PER_PAGE)

        lower, upper = day_start(date_from), next_day_start(date_to)

        opening = self._sum(self._filtered(
            select(NET_QTY).where(StockMovement.created_at < lower), query
        ))

        def in_range(stmt):
            return self._filtered(stmt.where(
                StockMovement.created_at >= lower,
                StockMovement.created_at < upper,
            ), query)

        qty_in, qty_out, total = self.db.execute(in_range(select(
            func.coalesce(func.sum(
                case((StockMovement.quantity > 0, StockMovement.quantity), else_=0)
            ), 0),
            func.coalesce(func.sum(
                case((StockMovement.quantity < 0, -StockMovement.quantity), else_=0)
            ), 0),
            func.count(StockMovement.id),
        ))).one()
        offset, pagination = paginate(query.page, per_page, total)

        order = (StockMovement.created_at, StockMovement.id)
        if query.order == "desc":
            order = tuple(col.desc() for col in order)

        page_rows = self.db.execute(
            in_range(
                select(StockMovement, Product.name, Product.sku)
                .outerjoin(Product, Product.id == StockMovement.product_id)
            )
            .order_by(*order)
            .offset(offset)
            .limit(per_page)
        ).all()

        rows = []
        if page_rows:
            first = page_rows[0][0]
            if query.order == "asc":
                running = opening + self._sum(in_range(select(NET_QTY)).where(
                    before_row(StockMovement.created_at, StockMovement.id,
                               first.created_at, first.id)
                ))
            else:
                # Balance after the newest row on the page
                running = opening + self._sum(in_range(select(NET_QTY)).where(
                    up_to_row(StockMovement.created_at, StockMovement.id,
                              first.created_at, first.id)
                ))

            for movement, name, sku in page_rows:
                if query.order == "asc":
                    running += movement.quantity
                    balance = running
                else:
                    balance = running
                    running -= movement.quantity

                rows.append(StockMovementRow(
                    id=movement.id,
                    date=movement.created_at,
                    product_id=movement.product_id,
                    product_name=name,
                    sku=sku,
                    branch_id=movement.branch_id,
                    type=movement.type,
                    ref_type=movement.ref_type,
                    ref_id=movement.ref_id,
                    quantity=movement.quantity,
                    qty_in=max(movement.quantity, 0),
                    qty_out=max(-movement.quantity, 0),
                    balance_qty=balance,
                ))

        qty_in, qty_out = int(qty_in), int(qty_out)
        return StockMovementReport(
            date_from=date_from,
            date_to=date_to,
            order=query.order,
            opening_quantity=opening,
            rows=rows,
            totals=StockMovementTotals(
                qty_in=qty_in, qty_out=qty_out, net_qty=qty_in - qty_out,
            ),
            pagination=pagination,
        )
