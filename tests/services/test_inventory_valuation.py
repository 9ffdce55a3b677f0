"""
Tests for moving-average costing and the stock movement log.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from pos_ledger.models.enums import StockMovementType
from pos_ledger.models.inventory import ProductStock, StockMovement
from pos_ledger.services.inventory_valuation import InventoryValuationService


def stock_of(db, product_id, branch_id=1):
    return db.execute(
        select(ProductStock).where(
            ProductStock.product_id == product_id,
            ProductStock.branch_id == branch_id,
        )
    ).scalar_one()


class TestReceivePurchase:

    def test_average_is_quantity_weighted(self, db_session, product):
        service = InventoryValuationService(db_session)
        service.receive_purchase(product.id, 1, 10, Decimal("100"))
        service.receive_purchase(product.id, 1, 10, Decimal("200"))
        db_session.commit()

        stock = stock_of(db_session, product.id)
        assert stock.quantity == 20
        assert stock.avg_cost == Decimal("150.0000")

    def test_return_to_vendor_keeps_average(self, db_session, product):
        service = InventoryValuationService(db_session)
        service.receive_purchase(product.id, 1, 10, Decimal("100"))
        service.receive_purchase(product.id, 1, 10, Decimal("200"))

        avg = service.return_to_vendor(product.id, 1, 5)
        db_session.commit()

        stock = stock_of(db_session, product.id)
        assert avg == Decimal("150.0000")
        assert stock.quantity == 15
        assert stock.avg_cost == Decimal("150.0000")

    def test_average_rounds_to_four_places(self, db_session, product):
        service = InventoryValuationService(db_session)
        service.receive_purchase(product.id, 1, 3, Decimal("10"))
        service.receive_purchase(product.id, 1, 4, Decimal("11"))

        # (30 + 44) / 7 = 10.571428...
        assert stock_of(db_session, product.id).avg_cost == Decimal("10.5714")

    def test_zero_quantity_is_a_no_op(self, db_session, product):
        service = InventoryValuationService(db_session)
        assert service.receive_purchase(product.id, 1, 0, Decimal("99")) is None
        assert db_session.execute(select(StockMovement)).first() is None

    def test_branches_are_valued_separately(self, db_session, product):
        service = InventoryValuationService(db_session)
        service.receive_purchase(product.id, 1, 10, Decimal("100"))
        service.receive_purchase(product.id, 2, 10, Decimal("300"))

        assert service.avg_cost(product.id, 1) == Decimal("100.0000")
        assert service.avg_cost(product.id, 2) == Decimal("300.0000")
        assert service.avg_cost(product.id, 3) == Decimal("0.0000")


class TestConsume:

    def test_oversell_goes_negative(self, db_session, product):
        service = InventoryValuationService(db_session)
        service.receive_purchase(product.id, 1, 2, Decimal("50"))

        service.consume(product.id, 1, 5, StockMovementType.SALE)

        stock = stock_of(db_session, product.id)
        assert stock.quantity == -3
        assert stock.avg_cost == Decimal("50.0000")

    def test_receiving_into_negative_stock_prices_at_cost(self, db_session, product):
        service = InventoryValuationService(db_session)
        service.consume(product.id, 1, 5, StockMovementType.SALE)

        service.receive_purchase(product.id, 1, 3, Decimal("40"))

        stock = stock_of(db_session, product.id)
        assert stock.quantity == -2
        assert stock.avg_cost == Decimal("40.0000")

    def test_inbound_type_rejected(self, db_session, product):
        with pytest.raises(ValueError, match="not an outbound"):
            InventoryValuationService(db_session).consume(
                product.id, 1, 1, StockMovementType.PURCHASE
            )

    def test_movements_are_signed_and_referenced(self, db_session, product):
        service = InventoryValuationService(db_session)
        service.receive_purchase(product.id, 1, 8, Decimal("25"), ref="GRN-17")
        service.consume(product.id, 1, 3, StockMovementType.ADJUSTMENT, ref="Shrinkage")
        db_session.commit()

        movements = db_session.execute(
            select(StockMovement).order_by(StockMovement.id)
        ).scalars().all()

        assert [m.quantity for m in movements] == [8, -3]
        assert [m.type for m in movements] == [
            StockMovementType.PURCHASE, StockMovementType.ADJUSTMENT,
        ]
        assert movements[0].note == "GRN-17"
        assert movements[1].unit_cost == Decimal("25.0000")
