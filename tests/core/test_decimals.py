# [TESTER] v1

from __future__ import annotations

from decimal import Decimal
from fractions import Fraction

import pytest
from hypothesis import given, strategies as st

from cmmm.core.decimals import (
    balance_with_decimals_usd,
    denormalize_amount,
    normalize_balance,
    normalize_balance_exact,
)


def test_normalize_balance_basic() -> None:
    assert normalize_balance(1_000_000, 6) == 1.0
    assert normalize_balance(500_000_000_000, 9) == 500.0
    assert normalize_balance(0, 18) == 0.0
    assert normalize_balance(123, 0) == 123.0


def test_normalize_balance_huge_integer_is_correctly_rounded() -> None:
    # float(2**200) / 1e18 would round twice; the result must be the float nearest the exact quotient.
    balance = 2**200 + 12345
    assert normalize_balance(balance, 18) == float(Fraction(balance, 10**18))


def test_normalize_balance_rejects_negative_decimals() -> None:
    with pytest.raises(ValueError, match="non-negative"):
        normalize_balance(1, -1)


def test_normalize_balance_rejects_non_int_decimals() -> None:
    with pytest.raises(TypeError):
        normalize_balance(1, 6.0)  # type: ignore[arg-type]


def test_normalize_balance_exact() -> None:
    assert normalize_balance_exact(1_234_567, 6) == Decimal("1.234567")
    assert normalize_balance_exact(10**30 + 1, 18) == Decimal("1000000000000.000000000000000001")


def test_balance_with_decimals_usd() -> None:
    assert balance_with_decimals_usd(2_500_000, 6, 2.0) == 5.0
    assert balance_with_decimals_usd(0, 9, 1234.5) == 0.0


def test_denormalize_amount_rounds_down() -> None:
    assert denormalize_amount(0.1, 9) == 100_000_000
    assert denormalize_amount("1.0000009", 6) == 1_000_000
    assert denormalize_amount(Decimal("2.5"), 0) == 2


def test_denormalize_amount_rejects_bad_values() -> None:
    with pytest.raises(ValueError, match="non-negative"):
        denormalize_amount(-1, 6)
    with pytest.raises(ValueError, match="finite"):
        denormalize_amount(float("inf"), 6)


@given(st.integers(min_value=0, max_value=2**256), st.integers(min_value=0, max_value=30))
def test_normalize_matches_exact_quotient(balance: int, decimals: int) -> None:
    assert normalize_balance(balance, decimals) == float(Fraction(balance, 10**decimals))
    assert Fraction(normalize_balance_exact(balance, decimals)) == Fraction(balance, 10**decimals)


@given(st.integers(min_value=0, max_value=10**24), st.integers(min_value=0, max_value=18))
def test_denormalize_inverts_exact_normalize(balance: int, decimals: int) -> None:
    assert denormalize_amount(normalize_balance_exact(balance, decimals), decimals) == balance
