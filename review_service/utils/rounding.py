from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal]


def round_half_up(value: Number, places: int = 2) -> float:
    """Round half away from zero (``round()`` rounds half to even)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def divide_half_up(numerator: int, denominator: int, places: int = 2) -> float:
    """Exact ``numerator / denominator`` rounded half away from zero. 0 when denominator is 0."""
    if not denominator:
        return 0.0
    return round_half_up(Decimal(numerator) / Decimal(denominator), places)
