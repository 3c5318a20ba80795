"""Conversion between human-readable decimal strings and on-chain integers.

Amounts only cross this boundary as ``Decimal``; floats are never accepted
so nothing imprecise can reach a transaction.
"""

from decimal import (
    Decimal,
    DecimalException,
    Inexact,
    InvalidOperation,
    Overflow,
    Underflow,
    localcontext,
)
from typing import Union

DEFAULT_DECIMALS = 18
MAX_UINT256 = 2**256 - 1

# Enough significant digits to hold any uint256 exactly
_PRECISION = 80


def parse_units(value: Union[str, Decimal, int], decimals: int = DEFAULT_DECIMALS) -> int:
    """Convert a decimal amount to integer base units.

    Args:
        value: Amount as entered by the user ("0.5", "1", Decimal("2.25"))
        decimals: Token decimals

    Returns:
        Amount in the smallest indivisible unit

    Raises:
        ValueError: If the value is not a finite number, does not fit in a
            uint256, or has more fractional digits than the token supports
    """
    if isinstance(value, float):
        raise ValueError("Floating point amounts are not accepted")

    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("Amount is empty")

    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError):
        raise ValueError(f"Not a number: {value!r}")

    if not amount.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")

    try:
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            ctx.traps[Inexact] = True
            scaled = amount.scaleb(decimals)
            whole = scaled.to_integral_value()
    except (Overflow, Underflow):
        raise ValueError(f"Out of range: {value!r}")
    except Inexact:
        raise ValueError(f"Too many decimal places (max {decimals})")
    except DecimalException:
        raise ValueError(f"Out of range: {value!r}")
    if scaled != whole:
        raise ValueError(f"Too many decimal places (max {decimals})")

    if abs(scaled) > MAX_UINT256:
        raise ValueError(f"Out of range: {value!r}")

    return int(scaled)


def format_units(amount: int, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """Convert integer base units to a Decimal amount."""
    return Decimal(amount).scaleb(-decimals).normalize()


def display(amount: int, decimals: int = DEFAULT_DECIMALS, places: int = 4) -> str:
    """Fixed-precision string for status messages (truncates, never rounds up)."""
    quant = Decimal(1).scaleb(-places)
    return str(Decimal(amount).scaleb(-decimals).quantize(quant, rounding="ROUND_DOWN"))
