"""Decimal helpers shared by the posting engine and the reports."""

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
COST_PLACES = Decimal("0.0001")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Coerce a DB aggregate, float or int to a 2-place Decimal."""
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cost(value) -> Decimal:
    """Unit costs keep four places, like the moving average they come from."""
    if value is None:
        return Decimal("0.0000")
    return Decimal(str(value)).quantize(COST_PLACES, rounding=ROUND_HALF_UP)
