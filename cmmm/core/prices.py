"""
Price lookup and weighted spot price.

Price tables are parallel arrays: ``prices[i]`` is the price of ``coins[i]``.
LP share coins and primary coins are priced from separate tables, so a coin
is classified first and then looked up in the table for its class.
"""

from __future__ import annotations

from fractions import Fraction
from typing import Callable, Mapping, Sequence

from ..errors import MissingMetadata, PriceNotFound
from ..state.coins import Balance, CoinDecimal, CoinType, is_lp_coin
from ..state.pools import PoolObject


def _indexed_price(coin: CoinType, coins: Sequence[CoinType], prices: Sequence[float]) -> float:
    for i, candidate in enumerate(coins):
        if candidate == coin:
            if i >= len(prices):
                raise PriceNotFound(coin)
            return prices[i]
    raise PriceNotFound(coin)


def resolve_price(
    coin: CoinType,
    lp_coins: Sequence[CoinType],
    non_lp_coins: Sequence[CoinType],
    lp_prices: Sequence[float],
    non_lp_prices: Sequence[float],
    *,
    is_lp: Callable[[CoinType], bool] = is_lp_coin,
) -> float:
    """
    Price of ``coin`` from the table matching its classification.

    Raises:
        PriceNotFound: If the coin is missing from its table
    """
    if is_lp(coin):
        return _indexed_price(coin, lp_coins, lp_prices)
    return _indexed_price(coin, non_lp_coins, non_lp_prices)


def price_in_pool(coin: CoinType, pool_coins: Sequence[CoinType], prices: Sequence[float]) -> float:
    """Price of ``coin`` from a price array co-indexed with ``pool_coins``."""
    return _indexed_price(coin, pool_coins, prices)


def spot_price(
    pool: PoolObject,
    balances: Mapping[CoinType, Balance],
    coin_in: CoinType,
    coin_out: CoinType,
    decimals_by_type: Mapping[CoinType, CoinDecimal],
) -> float:
    """
    Weighted CMMM spot price, fee excluded.

    Formula:
        spot = (b_in / w_in) / (b_out / w_out)

    with balances normalized by each coin's decimals, so the result is whole
    ``coin_in`` units per whole ``coin_out`` unit.

    Raises:
        ValueError: If a coin is not in the pool or the output reserve is empty
        MissingMetadata: If decimals are missing for either coin
    """
    w_in = pool.weight_of(coin_in)
    w_out = pool.weight_of(coin_out)
    for coin in (coin_in, coin_out):
        if coin not in decimals_by_type:
            raise MissingMetadata(coin)
        if coin not in balances:
            raise ValueError(f"Coin {coin} has no reserve in pool {pool.object_id}")

    b_in = Fraction(balances[coin_in], 10 ** decimals_by_type[coin_in])
    b_out = Fraction(balances[coin_out], 10 ** decimals_by_type[coin_out])
    if b_out == 0:
        raise ValueError(f"Reserve of {coin_out} is empty in pool {pool.object_id}")

    return float((b_in / w_in) / (b_out / w_out))
