# [TESTER] v1

from __future__ import annotations

import pytest

from cmmm.core.prices import price_in_pool, resolve_price, spot_price
from cmmm.errors import MissingMetadata, PriceNotFound
from cmmm.state.pools import FIXED_ONE, PoolObject

USDC = "0x5d4b::coin::COIN"
SUI = "0x2::sui::SUI"
WETH = "0xaf8c::coin::WETH"
LP_A = "0xabc::af_lp_usdc_sui::AF_LP_USDC_SUI"
LP_B = "0xdef::af_lp_sui_weth::AF_LP_SUI_WETH"


def _pool(weights=(FIXED_ONE // 2, FIXED_ONE // 2)) -> PoolObject:
    return PoolObject(
        object_id="0x" + "11" * 32,
        name="USDC/SUI",
        creator="0x" + "22" * 32,
        coins=(USDC, SUI),
        weights=weights,
        trade_fee=0,
        lp_type=LP_A,
    )


def test_resolve_price_uses_table_matching_classification() -> None:
    lp_coins = [LP_A, LP_B]
    lp_prices = [10.0, 20.0]
    coins = [USDC, SUI, WETH]
    prices = [1.0, 2.0, 3000.0]

    assert resolve_price(LP_B, lp_coins, coins, lp_prices, prices) == 20.0
    assert resolve_price(SUI, lp_coins, coins, lp_prices, prices) == 2.0


def test_resolve_price_missing_coin_raises() -> None:
    with pytest.raises(PriceNotFound, match="af_lp"):
        resolve_price("0x9::af_lp_x::AF_LP_X", [LP_A], [USDC], [1.0], [1.0])
    with pytest.raises(PriceNotFound):
        resolve_price(WETH, [LP_A], [USDC], [1.0], [1.0])


def test_resolve_price_short_price_array_raises() -> None:
    with pytest.raises(PriceNotFound):
        resolve_price(SUI, [], [USDC, SUI], [], [1.0])


def test_resolve_price_custom_classifier() -> None:
    # Classify everything as an LP coin: SUI must then be looked up in the LP table.
    with pytest.raises(PriceNotFound):
        resolve_price(SUI, [LP_A], [SUI], [5.0], [2.0], is_lp=lambda c: True)


def test_price_not_found_is_a_lookup_error() -> None:
    with pytest.raises(LookupError):
        price_in_pool(WETH, [USDC, SUI], [1.0, 2.0])


def test_spot_price_equal_weights() -> None:
    pool = _pool()
    balances = {USDC: 2_000_000_000, SUI: 1_000_000_000_000}  # 2000 USDC, 1000 SUI
    decimals = {USDC: 6, SUI: 9}
    assert spot_price(pool, balances, USDC, SUI, decimals) == 2.0
    assert spot_price(pool, balances, SUI, USDC, decimals) == 0.5


def test_spot_price_weighted() -> None:
    # 80/20 pool holding equal value: 800 USDC vs 200 SUI-worth at price 1.
    pool = _pool(weights=(FIXED_ONE * 8 // 10, FIXED_ONE * 2 // 10))
    balances = {USDC: 800_000_000, SUI: 200_000_000_000}
    decimals = {USDC: 6, SUI: 9}
    assert spot_price(pool, balances, USDC, SUI, decimals) == pytest.approx(1.0)


def test_spot_price_errors() -> None:
    pool = _pool()
    with pytest.raises(MissingMetadata):
        spot_price(pool, {USDC: 1, SUI: 1}, USDC, SUI, {USDC: 6})
    with pytest.raises(ValueError, match="empty"):
        spot_price(pool, {USDC: 1, SUI: 0}, USDC, SUI, {USDC: 6, SUI: 9})
    with pytest.raises(ValueError, match="not in pool"):
        spot_price(pool, {USDC: 1, SUI: 1}, USDC, WETH, {USDC: 6, SUI: 9})
