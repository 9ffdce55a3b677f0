"""
Purchase claims against vendors (damaged, expired, short-shipped goods).

Lifecycle: pending -> approved | rejected -> closed.

Creating a claim enforces the claim ceiling per purchase item:
requested <= purchased - already claimed. Every violating line is
reported together and nothing is written if any line fails.

Approval takes stock-affecting lines out of inventory and posts:

    DR Accounts Payable (vendor)   claim total
    CR Inventory                   stock-affecting lines
    CR Purchase Returns            the other lines
"""

import logging
from collections import defaultdict
from datetime import date, datetime

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from pos_ledger import chart
from pos_ledger.config import get_settings
from pos_ledger.exceptions import (
    ClaimOverQuantityError, DocumentStateError, DocumentNotFoundError,
)
from pos_ledger.models.enums import ClaimStatus, ClaimType, StockMovementType
from pos_ledger.models.journal_entry import JournalEntry
from pos_ledger.models.purchases import (
    Purchase, PurchaseItem, PurchaseClaim, PurchaseClaimItem, PurchaseClaimReceipt,
)
from pos_ledger.money import ZERO, to_money
from pos_ledger.schemas.documents import ClaimCreate, ClaimReceiptCreate
from pos_ledger.schemas.ledger import PostingLine
from pos_ledger.schemas.references import VendorParty
from pos_ledger.services.accounting_service import AccountingService
from pos_ledger.services.cash_sync_service import CashSyncService
from pos_ledger.services.inventory_valuation import InventoryValuationService

logger = logging.getLogger(__name__)


class PurchaseClaimService:

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()
        self.accounting = AccountingService(db)
        self.cash_sync = CashSyncService(db)
        self.valuation = InventoryValuationService(db)

    def _locked_claim(self, claim_id: int) -> PurchaseClaim:
        claim = self.db.execute(
            select(PurchaseClaim).where(PurchaseClaim.id == claim_id).with_for_update()
        ).scalar_one_or_none()
        if claim is None:
            raise DocumentNotFoundError("purchase claim", claim_id)
        return claim

    def claimed_quantities(self, purchase_id: int, item_ids) -> dict[int, int]:
        """Quantity already claimed per purchase item, across every claim."""
        rows = self.db.execute(
            select(PurchaseClaimItem.purchase_item_id, func.sum(PurchaseClaimItem.quantity))
            .join(PurchaseClaim, PurchaseClaim.id == PurchaseClaimItem.purchase_claim_id)
            .where(
                PurchaseClaim.purchase_id == purchase_id,
                PurchaseClaimItem.purchase_item_id.in_(list(item_ids)),
            )
            .group_by(PurchaseClaimItem.purchase_item_id)
        ).all()
        return {item_id: int(qty or 0) for item_id, qty in rows}

    def create_claim(self, data: ClaimCreate, actor_id: int | None = None) -> PurchaseClaim:
        """
        Validate every line against its ceiling, then create the claim.

        Raises ClaimOverQuantityError listing all violating lines;
        no claim or claim line is written in that case.
        """
        purchase = self.db.execute(
            select(Purchase).where(Purchase.id == data.purchase_id).with_for_update()
        ).scalar_one_or_none()
        if purchase is None:
            raise DocumentNotFoundError("purchase", data.purchase_id)

        requested_ids = {line.purchase_item_id for line in data.items}
        items = {
            item.id: item for item in self.db.execute(
                select(PurchaseItem).where(
                    PurchaseItem.purchase_id == purchase.id,
                    PurchaseItem.id.in_(requested_ids),
                )
            ).scalars().all()
        }
        if len(items) != len(requested_ids):
            foreign = sorted(requested_ids - set(items))
            raise DocumentStateError(
                f"Purchase item(s) {foreign} do not belong to purchase {purchase.id}"
            )

        already = self.claimed_quantities(purchase.id, requested_ids)
        # Lines in the same request draw on the same ceiling
        in_request = defaultdict(int)

        violations = []
        prepared = []
        for line in data.items:
            item = items[line.purchase_item_id]
            previous = already.get(item.id, 0) + in_request[item.id]
            remaining = max(item.quantity - previous, 0)
            if line.quantity > remaining:
                violations.append(
                    f"Item #{item.id}: requested {line.quantity} exceeds remaining "
                    f"{remaining} (purchased {item.quantity}, claimed {previous})."
                )
                continue
            in_request[item.id] += line.quantity

            affects_stock = line.affects_stock
            if affects_stock is None:
                affects_stock = data.type != ClaimType.SHORTAGE

            price = to_money(item.price)
            prepared.append(PurchaseClaimItem(
                purchase_item_id=item.id,
                product_id=item.product_id,
                quantity=line.quantity,
                price=price,
                total=to_money(price * line.quantity),
                affects_stock=affects_stock,
                batch_no=line.batch_no,
                expiry_date=line.expiry_date,
                remarks=line.remarks,
            ))

        if violations:
            logger.warning(
                "Claim on purchase %s rejected: %s", purchase.id, "; ".join(violations)
            )
            raise ClaimOverQuantityError(violations)

        subtotal = sum((line.total for line in prepared), ZERO)
        claim = PurchaseClaim(
            claim_no=f"PCL-{datetime.utcnow():%Y%m%d%H%M%S%f}",
            purchase_id=purchase.id,
            vendor_id=purchase.vendor_id,
            branch_id=purchase.branch_id,
            type=data.type,
            status=ClaimStatus.PENDING,
            subtotal=subtotal,
            tax=ZERO,
            total=subtotal,
            reason=data.reason,
            created_by=actor_id,
        )
        claim.items.extend(prepared)
        self.db.add(claim)
        self.db.flush()

        logger.info(
            "Created claim %s on purchase %s for %s", claim.claim_no, purchase.id, subtotal
        )

        if data.approve_now:
            self.approve_claim(claim.id, actor_id=actor_id)
        return claim

    def approve_claim(self, claim_id: int, actor_id: int | None = None) -> PurchaseClaim:
        claim = self._locked_claim(claim_id)
        if claim.status != ClaimStatus.PENDING:
            raise DocumentStateError(
                f"Only pending claims can be approved (claim {claim.id} is {claim.status.value})"
            )

        for item in claim.items:
            if not item.affects_stock:
                continue
            self.valuation.consume(
                item.product_id, claim.branch_id, item.quantity,
                StockMovementType.PURCHASE_CLAIM, ref=claim, actor_id=actor_id,
            )

        claim.status = ClaimStatus.APPROVED
        claim.approved_by = actor_id
        claim.approved_at = datetime.utcnow()
        self.db.flush()

        self._post_claim(claim, actor_id)
        logger.info("Approved claim %s", claim.claim_no)
        return claim

    def _post_claim(self, claim: PurchaseClaim, actor_id: int | None) -> JournalEntry | None:
        stock_amount = to_money(
            sum((to_money(i.total) for i in claim.items if i.affects_stock), ZERO)
        )
        other_amount = to_money(
            sum((to_money(i.total) for i in claim.items if not i.affects_stock), ZERO)
        )
        total = to_money(claim.total)
        if total <= 0:
            return None

        vendor = VendorParty(id=claim.vendor_id) if claim.vendor_id else None
        lines = [
            PostingLine(account_code=chart.ACCOUNTS_PAYABLE, debit=total, party=vendor),
        ]
        if stock_amount > 0:
            lines.append(PostingLine(account_code=chart.INVENTORY, credit=stock_amount))
        if other_amount > 0:
            lines.append(PostingLine(
                account_code=self.settings.PURCHASE_RETURNS_ACCOUNT_CODE,
                credit=other_amount,
            ))

        return self.accounting.post(
            branch_id=claim.branch_id,
            memo=f"Purchase Claim {claim.claim_no} approved (Purchase #{claim.purchase_id})",
            lines=lines,
            reference=claim,
            entry_date=claim.approved_at.date() if claim.approved_at else None,
            actor_id=actor_id,
        )

    def reject_claim(self, claim_id: int, actor_id: int | None = None) -> PurchaseClaim:
        claim = self._locked_claim(claim_id)
        if claim.status != ClaimStatus.PENDING:
            raise DocumentStateError("Only pending claims can be rejected.")

        claim.status = ClaimStatus.REJECTED
        claim.rejected_by = actor_id
        claim.rejected_at = datetime.utcnow()
        self.db.flush()
        logger.info("Rejected claim %s", claim.claim_no)
        return claim

    def close_claim(self, claim_id: int, actor_id: int | None = None) -> PurchaseClaim:
        claim = self._locked_claim(claim_id)
        if claim.status not in (ClaimStatus.APPROVED, ClaimStatus.REJECTED):
            raise DocumentStateError("Only approved or rejected claims can be closed.")

        claim.status = ClaimStatus.CLOSED
        claim.closed_by = actor_id
        claim.closed_at = datetime.utcnow()
        self.db.flush()
        logger.info("Closed claim %s", claim.claim_no)
        return claim

    def received_total(self, claim_id: int):
        return to_money(self.db.execute(
            select(func.coalesce(func.sum(PurchaseClaimReceipt.amount), 0))
            .where(PurchaseClaimReceipt.purchase_claim_id == claim_id)
        ).scalar())

    def record_claim_receipt(
        self, claim_id: int, data: ClaimReceiptCreate, actor_id: int | None = None
    ) -> PurchaseClaimReceipt:
        """
        Record money the vendor paid back on a claim.

        Posts DR cash/bank (mapped from the method) and CR purchase
        returns, or CR accounts payable when data.credit_payable is set,
        then mirrors the receipt into the cash book.
        """
        claim = self._locked_claim(claim_id)
        amount = to_money(data.amount)
        left = max(ZERO, to_money(claim.total) - self.received_total(claim.id))
        if amount > left:
            raise DocumentStateError(
                f"Receipt {amount} exceeds receivable left {left} on claim {claim.claim_no}"
            )

        # Resolve the account before writing anything
        cash_account = self.cash_sync.map_method_to_account(data.method, claim.branch_id)

        receipt = PurchaseClaimReceipt(
            purchase_claim_id=claim.id,
            amount=amount,
            method=data.method,
            reference=data.reference,
            received_at=data.received_at or datetime.utcnow().date(),
            created_by=actor_id,
        )
        claim.receipts.append(receipt)
        self.db.flush()

        if data.credit_payable:
            vendor = VendorParty(id=claim.vendor_id) if claim.vendor_id else None
            credit_line = PostingLine(
                account_code=chart.ACCOUNTS_PAYABLE, credit=amount, party=vendor
            )
        else:
            credit_line = PostingLine(
                account_code=self.settings.PURCHASE_RETURNS_ACCOUNT_CODE, credit=amount
            )

        self.accounting.post(
            branch_id=claim.branch_id,
            memo=f"Purchase Claim {claim.claim_no} receipt ({data.method})",
            lines=[
                PostingLine(account_code=cash_account.code, debit=amount),
                credit_line,
            ],
            reference=receipt,
            entry_date=receipt.received_at,
            actor_id=actor_id,
        )
        self.cash_sync.sync_from_purchase_claim_receipt(
            receipt, claim.branch_id, actor_id=actor_id
        )

        logger.info("Recorded receipt %s of %s on claim %s", receipt.id, amount, claim.claim_no)
        return receipt
