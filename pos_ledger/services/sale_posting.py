"""
Sale posting.

A completed sale produces one journal entry:

    DR Accounts Receivable (customer)   total
    CR Sales Revenue                    subtotal - discount + delivery
    CR Output VAT                       tax
    DR COGS / CR Inventory              sum of line costs

Line costs are stamped from the moving average when the stock is
deducted, so deduct_stock_and_stamp_costs() runs before post_sale().
"""

import logging

from sqlalchemy.orm import Session

from pos_ledger import chart
from pos_ledger.models.enums import StockMovementType
from pos_ledger.models.journal_entry import JournalEntry
from pos_ledger.models.sales import Sale
from pos_ledger.money import ZERO, to_money
from pos_ledger.schemas.ledger import PostingLine
from pos_ledger.schemas.references import CustomerParty
from pos_ledger.services.accounting_service import AccountingService
from pos_ledger.services.inventory_valuation import InventoryValuationService

logger = logging.getLogger(__name__)


class SalePostingService:

    def __init__(self, db: Session):
        self.db = db
        self.accounting = AccountingService(db)
        self.valuation = InventoryValuationService(db)

    def deduct_stock_and_stamp_costs(self, sale: Sale, actor_id: int | None = None) -> Sale:
        """
        Take every sold line out of stock at the current average cost.

        Stamps unit_cost and line_cost on each item, then cogs and
        gross_profit on the sale. Stock may go negative.
        """
        cogs = ZERO
        for item in sale.items:
            avg = self.valuation.consume(
                item.product_id, sale.branch_id, item.quantity,
                StockMovementType.SALE, ref=sale, actor_id=actor_id or sale.created_by,
            )
            item.unit_cost = avg
            item.line_cost = to_money(avg * item.quantity)
            cogs += item.line_cost

        sale.cogs = cogs
        sale.gross_profit = to_money(sale.total) - cogs
        self.db.flush()

        logger.info("Stamped costs on sale %s: cogs %s", sale.id, cogs)
        return sale

    def post_sale(self, sale: Sale, actor_id: int | None = None) -> JournalEntry:
        revenue = max(
            to_money(sale.subtotal) - to_money(sale.discount)
            + to_money(sale.delivery_charge),
            ZERO,
        )
        tax = to_money(sale.tax)
        total = to_money(sale.total)
        cogs = sum((to_money(item.line_cost) for item in sale.items), ZERO)

        customer = CustomerParty(id=sale.customer_id) if sale.customer_id else None
        lines = [
            PostingLine(account_code=chart.ACCOUNTS_RECEIVABLE, debit=total, party=customer),
            PostingLine(account_code=chart.SALES_REVENUE, credit=revenue),
        ]
        if tax > 0:
            lines.append(PostingLine(account_code=chart.OUTPUT_VAT, credit=tax))
        if cogs > 0:
            lines.append(PostingLine(account_code=chart.COGS, debit=cogs))
            lines.append(PostingLine(account_code=chart.INVENTORY, credit=cogs))

        return self.accounting.post(
            branch_id=sale.branch_id,
            memo=f"Sale #{sale.invoice_no or sale.id}",
            lines=lines,
            reference=sale,
            entry_date=sale.created_at.date() if sale.created_at else None,
            actor_id=actor_id or sale.created_by,
        )
