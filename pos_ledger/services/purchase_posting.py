"""
Purchase posting: vendor bills and goods receipt.

The bill is posted in one step when the purchase is invoiced:

    DR Inventory    subtotal - discount
    DR Input VAT    tax
    CR Accounts Payable (vendor)   total

Receiving is valued separately through the moving average.
"""

import logging
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_ledger import chart
from pos_ledger.exceptions import DocumentStateError
from pos_ledger.models.enums import ReceiveStatus
from pos_ledger.models.journal_entry import JournalEntry
from pos_ledger.models.purchases import Purchase, PurchaseItem
from pos_ledger.money import ZERO, to_money
from pos_ledger.schemas.documents import ReceiveRow
from pos_ledger.schemas.ledger import PostingLine
from pos_ledger.schemas.references import VendorParty
from pos_ledger.services.accounting_service import AccountingService
from pos_ledger.services.inventory_valuation import InventoryValuationService

logger = logging.getLogger(__name__)


class PurchasePostingService:

    def __init__(self, db: Session):
        self.db = db
        self.accounting = AccountingService(db)
        self.valuation = InventoryValuationService(db)

    def post_vendor_bill(
        self, purchase: Purchase, entry_date: date | None = None,
        actor_id: int | None = None,
    ) -> JournalEntry | None:
        """Post the bill once. Returns None if it was already posted."""
        if self.accounting.entries_for(purchase):
            logger.info("Vendor bill for purchase %s already posted", purchase.id)
            return None

        net = max(ZERO, to_money(purchase.subtotal) - to_money(purchase.discount))
        tax = to_money(purchase.tax)
        total = to_money(purchase.total)

        vendor = VendorParty(id=purchase.vendor_id) if purchase.vendor_id else None
        lines = [PostingLine(account_code=chart.INVENTORY, debit=net)]
        if tax > 0:
            lines.append(PostingLine(account_code=chart.INPUT_VAT, debit=tax))
        lines.append(
            PostingLine(account_code=chart.ACCOUNTS_PAYABLE, credit=total, party=vendor)
        )

        return self.accounting.post(
            branch_id=purchase.branch_id,
            memo=f"Vendor Bill #{purchase.invoice_no or purchase.id}",
            lines=lines,
            reference=purchase,
            entry_date=entry_date or datetime.utcnow().date(),
            actor_id=actor_id or purchase.created_by,
        )

    def receive_items_and_value(
        self, purchase: Purchase, rows: list[ReceiveRow | dict],
        actor_id: int | None = None,
    ) -> Purchase:
        """
        Receive some or all of a purchase into stock.

        Each row is capped at what is still outstanding on its item;
        rows at or below zero are skipped. Items are locked before
        their received_qty is read.
        """
        rows = [r if isinstance(r, ReceiveRow) else ReceiveRow.model_validate(r) for r in rows]

        for row in rows:
            if row.receive_qty <= 0:
                continue

            item = self.db.execute(
                select(PurchaseItem)
                .where(
                    PurchaseItem.id == row.item_id,
                    PurchaseItem.purchase_id == purchase.id,
                )
                .with_for_update()
            ).scalar_one_or_none()
            if item is None:
                raise DocumentStateError(
                    f"Item {row.item_id} does not belong to purchase {purchase.id}"
                )

            qty = min(row.receive_qty, item.remaining_to_receive)
            if qty <= 0:
                continue

            self.valuation.receive_purchase(
                item.product_id, purchase.branch_id, qty, item.price,
                ref=purchase, actor_id=actor_id or purchase.created_by,
            )
            item.received_qty += qty
        self.db.flush()

        purchase.receive_status = receive_status_of(purchase.items)
        self.db.flush()

        logger.info(
            "Purchase %s receive status: %s", purchase.id, purchase.receive_status.value
        )
        return purchase


def receive_status_of(items) -> ReceiveStatus:
    ordered = sum(item.quantity for item in items)
    received = sum(item.received_qty for item in items)
    if received == 0:
        return ReceiveStatus.ORDERED
    if received < ordered:
        return ReceiveStatus.PARTIAL
    return ReceiveStatus.RECEIVED
