"""Checked integer arithmetic for stake amounts.

Stake amounts are non-negative integers bounded by ``2**bits - 1``. Every
operation here fails closed with ArithmeticOverflow instead of wrapping or
going negative.

Fixed-point convention:
    Stakes carry 2 implied decimal digits of percent, so ``10000`` units
    represent 100.00% and ``1`` unit represents 0.01%.
"""

from typing import Final

from .errors import ArithmeticOverflow

# 100.00% in hundredths of a percent
PERCENT_SCALE: Final[int] = 10000

DEFAULT_AMOUNT_BITS: Final[int] = 256


def max_amount(bits: int = DEFAULT_AMOUNT_BITS) -> int:
    """Largest representable amount for a given bit width."""
    return (1 << bits) - 1


def _check_range(value: int, bound: int, op: str) -> int:
    if value < 0 or value > bound:
        raise ArithmeticOverflow(f"{op} result {value} outside [0, {bound}]")
    return value


def checked_add(a: int, b: int, bound: int) -> int:
    """Add two amounts, rejecting results above ``bound``."""
    return _check_range(a + b, bound, "add")


def checked_sub(a: int, b: int, bound: int) -> int:
    """Subtract ``b`` from ``a``, rejecting negative results."""
    return _check_range(a - b, bound, "sub")


def checked_mul(a: int, b: int, bound: int) -> int:
    """Multiply two amounts, rejecting results above ``bound``."""
    return _check_range(a * b, bound, "mul")


def checked_div(a: int, b: int) -> int:
    """Floor-divide two amounts.

    Raises:
        ArithmeticOverflow: If ``b`` is zero
    """
    if b == 0:
        raise ArithmeticOverflow(f"division of {a} by zero")
    return a // b
