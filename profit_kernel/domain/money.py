"""
Minor-unit money arithmetic.

All monetary values in the kernel are Python ``int`` counts of the currency's
minor unit.  Rates and factors are ``Decimal``.  Floats never touch money.

Rounding rules (one rule per computation kind):
    - Tax and rate application  -> ROUND_HALF_UP to the nearest minor unit.
    - Per-share allocation      -> floor toward zero (``prorata_floor``).
    - Payout ceilings           -> floor (``floor_multiply``).
"""

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

_ONE = Decimal("1")


def to_decimal(value: Decimal | str | int) -> Decimal:
    """Convert a rate/factor to Decimal, rejecting floats."""
    if isinstance(value, float):
        raise TypeError("Floats are not accepted for rates; use Decimal or str")
    return value if isinstance(value, Decimal) else Decimal(str(value))


def apply_rate(amount: int, rate: Decimal | str) -> int:
    """Multiply ``amount`` by ``rate`` and round half-up to a whole minor unit."""
    product = Decimal(amount) * to_decimal(rate)
    return int(product.quantize(_ONE, rounding=ROUND_HALF_UP))


def floor_multiply(amount: int, factor: Decimal | str) -> int:
    """Multiply ``amount`` by ``factor`` and floor to a whole minor unit."""
    product = Decimal(amount) * to_decimal(factor)
    return int(product.quantize(_ONE, rounding=ROUND_FLOOR))


def prorata_floor(shares: int, amount: int, total_shares: int) -> int:
    """``floor(shares / total_shares * amount)`` in exact integer arithmetic.

    Inputs are non-negative, so floor division is also truncation toward zero.
    """
    if total_shares <= 0:
        raise ValueError("total_shares must be positive")
    if shares < 0 or amount < 0:
        raise ValueError("shares and amount must be non-negative")
    return (shares * amount) // total_shares


def per_share_rate(pool: int, total_shares: int, places: int = 4) -> Decimal:
    """Informational pool-per-share figure, rounded half-up to ``places``."""
    if total_shares <= 0:
        return Decimal("0")
    quantum = Decimal(1).scaleb(-places)
    return (Decimal(pool) / Decimal(total_shares)).quantize(
        quantum, rounding=ROUND_HALF_UP
    )
