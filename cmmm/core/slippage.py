"""
Slippage normalization.

Callers express slippage as a fraction in ``[0, 1)``. Pool entry points take
the *allowed* fraction ``1 - slippage`` as an 18-decimal fixed-point integer.
Rounding is half-up on the slippage digits and is applied exactly once, on
the decimal text of the caller's value.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext

from ..errors import InvalidSlippage
from ..state.coins import Balance


FIXED_ONE = 10**18
BPS_DENOM = 10_000


def _slippage_decimal(slippage: float) -> Decimal:
    if isinstance(slippage, bool) or not isinstance(slippage, (int, float, Decimal)):
        raise InvalidSlippage(slippage)
    if isinstance(slippage, float) and not math.isfinite(slippage):
        raise InvalidSlippage(slippage)
    value = Decimal(repr(slippage)) if isinstance(slippage, float) else Decimal(slippage)
    if not value.is_finite() or value < 0 or value >= 1:
        raise InvalidSlippage(slippage)
    return value


def _scale_half_up(value: Decimal, scale: int) -> int:
    with localcontext() as ctx:
        ctx.prec = 60
        return int((value * scale).to_integral_value(rounding=ROUND_HALF_UP))


def normalize_slippage(slippage: float) -> int:
    """
    Encode slippage for an entry point: ``FIXED_ONE - round_half_up(slippage * FIXED_ONE)``.

    Raises:
        InvalidSlippage: If slippage is not a finite number in [0, 1)
    """
    value = _slippage_decimal(slippage)
    encoded = FIXED_ONE - _scale_half_up(value, FIXED_ONE)
    if encoded <= 0:
        # Rounds to a 100% tolerance, which the platform cannot express.
        raise InvalidSlippage(slippage)
    return encoded


def denormalize_slippage(encoded: int) -> float:
    """Decode an entry point slippage argument back to the caller's fraction."""
    if not isinstance(encoded, int) or isinstance(encoded, bool):
        raise TypeError("encoded slippage must be an int")
    if not (0 < encoded <= FIXED_ONE):
        raise InvalidSlippage(encoded)
    return float((FIXED_ONE - encoded) / FIXED_ONE)


def slippage_to_bps(slippage: float) -> int:
    """Slippage in basis points, rounded half-up."""
    return _scale_half_up(_slippage_decimal(slippage), BPS_DENOM)


def min_amount_after_slippage(amount: Balance, slippage: float) -> Balance:
    """Smallest acceptable output for an expected ``amount``: ``floor(amount * (1 - slippage))``."""
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
        raise ValueError(f"amount must be a non-negative int: {amount!r}")
    allowed = normalize_slippage(slippage)
    return (amount * allowed) // FIXED_ONE
