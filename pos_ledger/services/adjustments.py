"""
Adjustment engines.

When a sale or purchase is edited after it was posted, the original
entry is left alone and a single delta entry is posted for the change:

- goods (or revenue) delta
- tax delta
- payable (or receivable) delta, the mirror of the total delta

Positive amounts are debits, negative amounts credits. Any sub-cent
residue between the three lands on the variance (purchases) or revenue
(sales) account so the entry always balances.
"""

import logging
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from pos_ledger import chart
from pos_ledger.models.journal_entry import JournalEntry
from pos_ledger.models.purchases import Purchase
from pos_ledger.models.sales import Sale
from pos_ledger.money import ZERO, to_money
from pos_ledger.schemas.documents import DocumentTotals
from pos_ledger.schemas.ledger import PostingLine
from pos_ledger.schemas.references import CustomerParty, VendorParty
from pos_ledger.services.accounting_service import AccountingService

logger = logging.getLogger(__name__)


def signed_line(account_code: str, amount: Decimal, party=None) -> PostingLine:
    """Positive -> debit, negative -> credit."""
    amount = to_money(amount)
    return PostingLine(
        account_code=account_code,
        debit=amount if amount > 0 else ZERO,
        credit=-amount if amount < 0 else ZERO,
        party=party,
    )


def _residue(lines: list[PostingLine]) -> Decimal:
    debits = sum((line.debit for line in lines), ZERO)
    credits = sum((line.credit for line in lines), ZERO)
    return to_money(credits - debits)


class AdjustmentService:

    def __init__(self, db: Session):
        self.db = db
        self.accounting = AccountingService(db)

    def post_bill_adjustment(
        self,
        purchase: Purchase,
        old: DocumentTotals | dict,
        new: DocumentTotals | dict,
        entry_date: date | None = None,
        actor_id: int | None = None,
    ) -> JournalEntry | None:
        """
        Post the delta of an edited vendor bill. None when nothing changed.

        The goods delta goes to Inventory while nothing has been received,
        and to Purchase Price Variance once any quantity has been.
        """
        old, new = _totals(old), _totals(new)

        old_net = max(ZERO, to_money(old.subtotal) - to_money(old.discount))
        new_net = max(ZERO, to_money(new.subtotal) - to_money(new.discount))
        delta_net = new_net - old_net
        delta_tax = to_money(new.tax) - to_money(old.tax)
        delta_total = to_money(new.total) - to_money(old.total)

        if not (delta_net or delta_tax or delta_total):
            return None

        any_received = any(item.received_qty > 0 for item in purchase.items)
        goods_account = chart.PURCHASE_PRICE_VARIANCE if any_received else chart.INVENTORY
        vendor = VendorParty(id=purchase.vendor_id) if purchase.vendor_id else None

        lines = []
        if delta_net:
            lines.append(signed_line(goods_account, delta_net))
        if delta_tax:
            lines.append(signed_line(chart.INPUT_VAT, delta_tax))
        if delta_total:
            lines.append(signed_line(chart.ACCOUNTS_PAYABLE, -delta_total, party=vendor))

        residue = _residue(lines)
        if residue:
            logger.warning(
                "Bill adjustment for purchase %s off by %s; booked to variance",
                purchase.id, residue,
            )
            lines.append(signed_line(chart.PURCHASE_PRICE_VARIANCE, residue))

        return self.accounting.post(
            branch_id=purchase.branch_id,
            memo=f"Purchase #{purchase.invoice_no or purchase.id} bill adjustment",
            lines=lines,
            reference=purchase,
            entry_date=entry_date or datetime.utcnow().date(),
            actor_id=actor_id,
        )

    def post_sale_adjustment(
        self,
        sale: Sale,
        old: DocumentTotals | dict,
        new: DocumentTotals | dict,
        entry_date: date | None = None,
        actor_id: int | None = None,
    ) -> JournalEntry | None:
        """
        Post the delta of an edited sale's totals. None when nothing changed.

        Only header totals are adjusted; cost of goods is not revisited.
        """
        old, new = _totals(old), _totals(new)

        old_net = max(
            ZERO,
            to_money(old.subtotal) - to_money(old.discount) + to_money(old.delivery_charge),
        )
        new_net = max(
            ZERO,
            to_money(new.subtotal) - to_money(new.discount) + to_money(new.delivery_charge),
        )
        delta_net = new_net - old_net
        delta_tax = to_money(new.tax) - to_money(old.tax)
        delta_total = to_money(new.total) - to_money(old.total)

        if not (delta_net or delta_tax or delta_total):
            return None

        customer = CustomerParty(id=sale.customer_id) if sale.customer_id else None

        lines = []
        # Revenue and output VAT grow on the credit side
        if delta_net:
            lines.append(signed_line(chart.SALES_REVENUE, -delta_net))
        if delta_tax:
            lines.append(signed_line(chart.OUTPUT_VAT, -delta_tax))
        if delta_total:
            lines.append(
                signed_line(chart.ACCOUNTS_RECEIVABLE, delta_total, party=customer)
            )

        residue = _residue(lines)
        if residue:
            logger.warning(
                "Sale adjustment for sale %s off by %s; booked to revenue",
                sale.id, residue,
            )
            lines.append(signed_line(chart.SALES_REVENUE, residue))

        return self.accounting.post(
            branch_id=sale.branch_id,
            memo=f"Sale #{sale.invoice_no or sale.id} adjustment",
            lines=lines,
            reference=sale,
            entry_date=entry_date or datetime.utcnow().date(),
            actor_id=actor_id,
        )


def _totals(value) -> DocumentTotals:
    if isinstance(value, DocumentTotals):
        return value
    return DocumentTotals.model_validate(value)
