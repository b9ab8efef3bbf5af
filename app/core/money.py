from decimal import Decimal, ROUND_HALF_UP


def round_half_up(value: Decimal) -> int:
    """Round to the nearest whole minor unit, ties away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
