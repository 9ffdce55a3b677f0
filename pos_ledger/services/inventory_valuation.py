"""
Inventory valuation writer.

Moving-average costing per (product, branch):
- inbound receipts recompute avg_cost as the quantity-weighted mean of
  what was on hand and what arrived;
- outbound legs (sales, returns to vendor, claims) consume at the
  current avg_cost and never change it.

Quantity is never clamped at zero. Overselling and over-returning
proceed and leave a negative on-hand quantity for operators to see.

Every read-modify-write locks the stock row first (SELECT ... FOR
UPDATE) so concurrent receipts cannot lose an update.
"""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_ledger.models.enums import StockMovementType
from pos_ledger.models.inventory import ProductStock, StockMovement
from pos_ledger.models.references import document_kind
from pos_ledger.money import ZERO, to_cost
from pos_ledger.schemas.references import DocumentRef

logger = logging.getLogger(__name__)

OUTBOUND_TYPES = (
    StockMovementType.SALE,
    StockMovementType.PURCHASE_RETURN,
    StockMovementType.PURCHASE_CLAIM,
    StockMovementType.TRANSFER_OUT,
    StockMovementType.ADJUSTMENT,
)


class InventoryValuationService:

    def __init__(self, db: Session):
        self.db = db

    def avg_cost(self, product_id: int, branch_id: int) -> Decimal:
        """Current moving-average unit cost; 0 when the product was never stocked."""
        value = self.db.execute(
            select(ProductStock.avg_cost).where(
                ProductStock.product_id == product_id,
                ProductStock.branch_id == branch_id,
            )
        ).scalar_one_or_none()
        return to_cost(value) if value is not None else to_cost(ZERO)

    def _locked_stock(self, product_id: int, branch_id: int) -> ProductStock:
        """Lock the stock row, creating an empty one if absent."""
        stock = self.db.execute(
            select(ProductStock)
            .where(
                ProductStock.product_id == product_id,
                ProductStock.branch_id == branch_id,
            )
            .with_for_update()
        ).scalar_one_or_none()

        if stock is None:
            stock = ProductStock(
                product_id=product_id, branch_id=branch_id,
                quantity=0, avg_cost=Decimal("0"),
            )
            self.db.add(stock)
            self.db.flush()
        return stock

    def receive_purchase(
        self,
        product_id: int,
        branch_id: int,
        receive_qty: int,
        unit_price: Decimal,
        ref=None,
        actor_id: int | None = None,
    ) -> ProductStock | None:
        """
        Take goods into stock and re-average the unit cost.

        new_avg = (old_qty * old_avg + receive_qty * unit_price) / new_qty,
        rounded to 4 places. A non-positive receive_qty is a no-op.
        """
        if receive_qty <= 0:
            return None

        unit_price = Decimal(str(unit_price))
        stock = self._locked_stock(product_id, branch_id)
        old_qty = stock.quantity or 0
        old_avg = Decimal(stock.avg_cost or 0)

        new_qty = old_qty + receive_qty
        if new_qty > 0:
            new_avg = to_cost(
                (old_qty * old_avg + receive_qty * unit_price) / new_qty
            )
        else:
            # Receiving into a deep negative balance: price the stock at cost
            new_avg = to_cost(unit_price)

        stock.quantity = new_qty
        stock.avg_cost = new_avg
        self._log_movement(
            product_id, branch_id, StockMovementType.PURCHASE,
            receive_qty, unit_price, ref, actor_id,
        )

        logger.info(
            "Received %d of product %s at branch %s: qty %d -> %d, avg %s -> %s",
            receive_qty, product_id, branch_id, old_qty, new_qty, old_avg, new_avg,
        )
        return stock

    def return_to_vendor(
        self,
        product_id: int,
        branch_id: int,
        return_qty: int,
        ref=None,
        actor_id: int | None = None,
    ) -> Decimal:
        """
        Send goods back to the vendor.

        Returns the avg_cost in effect so the caller can value the
        return. A non-positive return_qty only reports the average.
        """
        if return_qty <= 0:
            return self.avg_cost(product_id, branch_id)
        return self.consume(
            product_id, branch_id, return_qty,
            StockMovementType.PURCHASE_RETURN, ref=ref, actor_id=actor_id,
        )

    def consume(
        self,
        product_id: int,
        branch_id: int,
        qty: int,
        movement_type: StockMovementType,
        ref=None,
        actor_id: int | None = None,
    ) -> Decimal:
        """Outbound leg at the current average. No availability check."""
        if movement_type not in OUTBOUND_TYPES:
            raise ValueError(f"{movement_type.value} is not an outbound movement")

        stock = self._locked_stock(product_id, branch_id)
        avg = to_cost(stock.avg_cost or 0)
        old_qty = stock.quantity or 0

        stock.quantity = old_qty - qty
        self._log_movement(
            product_id, branch_id, movement_type, -qty, avg, ref, actor_id,
        )

        if stock.quantity < 0:
            logger.info(
                "Product %s at branch %s is now negative (%d)",
                product_id, branch_id, stock.quantity,
            )
        return avg

    def _log_movement(
        self, product_id, branch_id, movement_type, quantity, unit_cost, ref, actor_id,
    ) -> StockMovement:
        ref_type, ref_id = _ref_pair(ref)
        movement = StockMovement(
            product_id=product_id,
            branch_id=branch_id,
            type=movement_type,
            quantity=quantity,
            unit_cost=to_cost(unit_cost) if unit_cost is not None else None,
            ref_type=ref_type,
            ref_id=ref_id,
            note=ref if isinstance(ref, str) else None,
            created_by=actor_id,
        )
        self.db.add(movement)
        self.db.flush()
        return movement


def _ref_pair(ref) -> tuple[str | None, int | None]:
    # Free-text references land in the movement note
    if ref is None or isinstance(ref, str):
        return None, None
    if isinstance(ref, DocumentRef):
        return ref.kind.value, ref.id
    return document_kind(ref).value, ref.id
