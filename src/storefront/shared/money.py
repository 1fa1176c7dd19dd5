"""Fixed-point money helpers.

Amounts inside the domain are integers in minor units (paise, cents). Decimal
strings such as ``"275.99"`` only appear at the HTTP edge and in settings.
"""

from decimal import ROUND_HALF_UP, Decimal

MINOR_UNITS_PER_MAJOR = 100
_CENT = Decimal("0.01")


def to_minor(amount) -> int:
    """Convert a major-unit amount (Decimal, str or int) to minor units, half-up."""
    value = Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return int(value * MINOR_UNITS_PER_MAJOR)


def to_major(amount_minor: int) -> Decimal:
    return (Decimal(amount_minor) / MINOR_UNITS_PER_MAJOR).quantize(_CENT)


def format_minor(amount_minor: int) -> str:
    """``27599`` → ``"275.99"``"""
    return str(to_major(amount_minor))


def apply_rate(amount_minor: int, rate: Decimal) -> int:
    """Multiply a minor-unit amount by a rate, rounding half-up to a whole minor unit."""
    return int((Decimal(amount_minor) * Decimal(str(rate))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
