"""
Balance normalization between a coin's smallest unit and human scale.

Balances are arbitrary-precision ints. The division by ``10**decimals`` is
done exactly on rationals and rounded once to the nearest float, so a large
balance never loses precision to an intermediate ``float(balance)``
conversion.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal, localcontext
from fractions import Fraction
from typing import Union

from ..state.coins import Balance, CoinDecimal


def _check_decimals(decimals: CoinDecimal) -> None:
    if not isinstance(decimals, int) or isinstance(decimals, bool):
        raise TypeError(f"decimals must be an int, got {type(decimals)}")
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative: {decimals}")


def normalize_balance(balance: Balance, decimals: CoinDecimal) -> float:
    """
    Convert a raw balance into human units: ``balance / 10**decimals``.

    The result is the float nearest to the exact quotient.
    """
    _check_decimals(decimals)
    return float(Fraction(int(balance), 10**decimals))


def normalize_balance_exact(balance: Balance, decimals: CoinDecimal) -> Decimal:
    """Exact decimal value of ``balance / 10**decimals`` (no rounding at all)."""
    _check_decimals(decimals)
    value = Decimal(int(balance))
    with localcontext() as ctx:
        ctx.prec = max(28, len(value.as_tuple().digits) + 1)
        return value.scaleb(-decimals)


def balance_with_decimals_usd(balance: Balance, decimals: CoinDecimal, price: float) -> float:
    """USD value of a raw balance at ``price`` per whole coin."""
    _check_decimals(decimals)
    return float(Fraction(int(balance), 10**decimals) * Fraction(price))


def denormalize_amount(amount: Union[float, str, Decimal], decimals: CoinDecimal) -> Balance:
    """
    Convert a human amount into the coin's smallest unit, rounding down.

    Strings and Decimals are taken at face value; floats by their shortest repr,
    so ``denormalize_amount(0.1, 9) == 100_000_000``.
    """
    _check_decimals(decimals)
    if isinstance(amount, float):
        value = Decimal(repr(amount))
    else:
        value = Decimal(amount)
    if not value.is_finite():
        raise ValueError(f"amount must be finite: {amount!r}")
    if value < 0:
        raise ValueError(f"amount must be non-negative: {amount!r}")
    with localcontext() as ctx:
        ctx.prec = max(28, len(value.as_tuple().digits) + decimals + 2)
        scaled = value.scaleb(decimals).to_integral_value(rounding=ROUND_FLOOR)
    return int(scaled)
