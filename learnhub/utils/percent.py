"""Whole-number percentages."""

from decimal import ROUND_HALF_UP, Decimal


def percent_of(part: int | float, whole: int | float) -> int:
    """Return ``100 * part / whole`` rounded half up to an int.

    Halves round away from zero (66.5 -> 67), unlike the builtin ``round``
    which rounds to even. Returns 0 when ``whole`` is not positive.

    >>> percent_of(4, 6)
    67
    >>> percent_of(1, 8)
    13
    """
    if whole <= 0:
        return 0
    value = Decimal(str(part)) * 100 / Decimal(str(whole))
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))
