"""
Pool analytics: volume, TVL, LP share price and time-bucketed volume series.

All functions are pure over their inputs (pool snapshots, event lists,
price and decimals tables). Sums use `math.fsum`, so results do not depend
on the iteration order of the inputs.

Volume series:
    window_start = now - time_span * time_unit
    width        = (now - window_start) / bucket_count
    bucket i     = [window_start + i * width, window_start + (i + 1) * width)

An event lands in bucket ``floor((ts - window_start) / width)``, computed with
exact integer/rational arithmetic. Events outside ``[window_start, now)``
fall outside ``[0, bucket_count)`` and are dropped.
"""

from __future__ import annotations

import logging
import math
import time
from enum import Enum
from fractions import Fraction
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..errors import MissingMetadata, PriceNotFound
from ..state.coins import Balance, CoinDecimal, CoinType, ObjectId
from ..state.events import PoolTradeEvent
from ..state.pools import FIXED_ONE, PoolCoins, PoolDataPoint, PoolObject, PoolStats, PoolVolumeTimeframe
from .decimals import normalize_balance
from .prices import price_in_pool

logger = logging.getLogger(__name__)

LP_COIN_DECIMALS = 9


class TimeUnit(Enum):
    """Calendar-free time units, valued in milliseconds."""
    SECOND = 1_000
    MINUTE = 60_000
    HOUR = 3_600_000
    DAY = 86_400_000
    WEEK = 604_800_000

    @classmethod
    def parse(cls, unit: Union["TimeUnit", str]) -> "TimeUnit":
        if isinstance(unit, TimeUnit):
            return unit
        if isinstance(unit, str):
            try:
                return cls[unit.strip().upper()]
            except KeyError:
                pass
        raise ValueError(f"unsupported time unit: {unit!r}")


YEAR_MS = 365 * TimeUnit.DAY.value


def _decimals_for(coin: CoinType, decimals_by_type: Mapping[CoinType, CoinDecimal]) -> CoinDecimal:
    try:
        return decimals_by_type[coin]
    except KeyError:
        raise MissingMetadata(coin) from None


def _usd_value(amount: Balance, coin: CoinType, price: float, decimals_by_type: Mapping[CoinType, CoinDecimal]) -> float:
    return normalize_balance(amount, _decimals_for(coin, decimals_by_type)) * price


def compute_volume(
    pool_id: ObjectId,
    pool_coins: Sequence[CoinType],
    trade_events: Iterable[PoolTradeEvent],
    prices: Sequence[float],
    decimals_by_type: Mapping[CoinType, CoinDecimal],
) -> float:
    """
    USD volume of a pool's trades, valued on the input side.

    ``prices`` is co-indexed with ``pool_coins``. Trades in other pools are
    ignored.

    Raises:
        PriceNotFound: If a trade's input coin is not one of ``pool_coins``
        MissingMetadata: If decimals are missing for a traded coin
    """
    amounts: List[float] = []
    for trade in trade_events:
        if trade.pool_id != pool_id:
            continue
        price = price_in_pool(trade.type_in, pool_coins, prices)
        amounts.append(_usd_value(trade.amount_in, trade.type_in, price, decimals_by_type))
    return math.fsum(amounts)


def compute_tvl(
    pool_coins: Mapping[CoinType, Balance],
    prices: Mapping[CoinType, float],
    decimals_by_type: Mapping[CoinType, CoinDecimal],
) -> float:
    """
    Total value locked: sum over every held coin of normalized reserve * price.

    Raises:
        PriceNotFound: If any held coin has no price
        MissingMetadata: If any held coin has no decimals
    """
    values: List[float] = []
    for coin, amount in pool_coins.items():
        if coin not in prices:
            raise PriceNotFound(coin)
        values.append(_usd_value(amount, coin, prices[coin], decimals_by_type))
    return math.fsum(values)


def compute_lp_share_price(lp_supply: Balance, tvl: float, lp_coin_decimals: CoinDecimal = LP_COIN_DECIMALS) -> float:
    """
    USD price of one whole LP coin: ``tvl / normalize(lp_supply)``.

    Raises:
        ZeroDivisionError: If the pool has no LP supply
    """
    if lp_supply < 0:
        raise ValueError(f"lp_supply must be non-negative: {lp_supply}")
    if lp_supply == 0:
        raise ZeroDivisionError("lp supply is zero: LP share price is undefined")
    return float(Fraction(tvl) / Fraction(lp_supply, 10**lp_coin_decimals))


def compute_supply_per_lps(pool: PoolObject, reserves: PoolCoins) -> Tuple[float, ...]:
    """
    Raw reserve per raw LP unit for each pool coin, in pool coin order.

    Raises:
        ZeroDivisionError: If the pool has no LP supply
    """
    if reserves.lp_supply == 0:
        raise ZeroDivisionError("lp supply is zero: supply per LP is undefined")
    return tuple(float(Fraction(reserves.get_reserve(coin), reserves.lp_supply)) for coin in pool.coins)


def compute_fees(volume: float, trade_fee: int) -> float:
    """USD fees charged on ``volume`` at a fixed-point (1e18) trade fee."""
    if not isinstance(trade_fee, int) or isinstance(trade_fee, bool) or not (0 <= trade_fee < FIXED_ONE):
        raise ValueError(f"trade_fee must be in [0, 1e18): {trade_fee!r}")
    return float(Fraction(volume) * Fraction(trade_fee, FIXED_ONE))


def compute_apr_range(fees: float, tvl: float, window_ms: int = TimeUnit.DAY.value) -> Tuple[float, float]:
    """
    Annualized fee return on pool liquidity as ``(simple, compounded)``.

    ``fees`` were earned over the trailing ``window_ms``. The low end scales
    that return linearly to a year; the high end reinvests it once per window.
    A pool with no liquidity earns nothing.

    Formula:
        r    = fees / tvl
        n    = YEAR_MS / window_ms
        low  = r * n
        high = (1 + r) ** n - 1
    """
    if not isinstance(window_ms, int) or isinstance(window_ms, bool) or window_ms <= 0:
        raise ValueError(f"window_ms must be a positive int: {window_ms!r}")
    if fees < 0 or tvl < 0:
        raise ValueError(f"fees and tvl must be non-negative: fees={fees}, tvl={tvl}")
    if tvl == 0:
        return (0.0, 0.0)
    rate = Fraction(fees) / Fraction(tvl)
    periods = Fraction(YEAR_MS, window_ms)
    low = float(rate * periods)
    high = math.expm1(float(periods) * math.log1p(float(rate)))
    return (low, high)


def compute_volume_series(
    pool: PoolObject,
    trade_events: Iterable[PoolTradeEvent],
    time_unit: Union[TimeUnit, str],
    time_span: int,
    bucket_count: int,
    *,
    prices: Mapping[CoinType, float],
    decimals_by_type: Mapping[CoinType, CoinDecimal],
    now_ms: Optional[int] = None,
) -> List[PoolDataPoint]:
    """
    Bucket a pool's trade volume over the last ``time_span`` ``time_unit`` s.

    Returns exactly ``bucket_count`` data points, oldest bucket first. Each
    point's ``time`` is its bucket's start (unix ms).

    Raises:
        ValueError: If the window or bucket count is not positive
        PriceNotFound / MissingMetadata: For an in-window trade with unknown coin data
    """
    unit = TimeUnit.parse(time_unit)
    if not isinstance(bucket_count, int) or isinstance(bucket_count, bool) or bucket_count <= 0:
        raise ValueError(f"bucket_count must be a positive int: {bucket_count!r}")
    if not isinstance(time_span, int) or isinstance(time_span, bool) or time_span <= 0:
        raise ValueError(f"time_span must be a positive int: {time_span!r}")

    now = int(time.time() * 1000) if now_ms is None else int(now_ms)
    span_ms = time_span * unit.value
    window_start = now - span_ms
    width = Fraction(span_ms, bucket_count)

    bucket_amounts: List[List[float]] = [[] for _ in range(bucket_count)]
    dropped = 0
    for trade in trade_events:
        if trade.pool_id != pool.object_id:
            continue
        # Half-open buckets: ts == window_start lands in bucket 0, ts == now is dropped.
        index = ((Fraction(trade.timestamp) - window_start) * bucket_count) // span_ms
        if index < 0 or index >= bucket_count:
            dropped += 1
            continue
        if trade.type_in not in prices:
            raise PriceNotFound(trade.type_in)
        bucket_amounts[index].append(
            _usd_value(trade.amount_in, trade.type_in, prices[trade.type_in], decimals_by_type)
        )

    if dropped:
        logger.debug(
            "volume series for pool %s dropped %d trade(s) outside [%d, %d)",
            pool.object_id,
            dropped,
            window_start,
            now,
        )

    return [
        PoolDataPoint(time=float(window_start + i * width), value=math.fsum(amounts))
        for i, amounts in enumerate(bucket_amounts)
    ]


def volume_series_for_timeframe(
    pool: PoolObject,
    trade_events: Iterable[PoolTradeEvent],
    timeframe: PoolVolumeTimeframe,
    bucket_count: int,
    *,
    prices: Mapping[CoinType, float],
    decimals_by_type: Mapping[CoinType, CoinDecimal],
    now_ms: Optional[int] = None,
) -> List[PoolDataPoint]:
    span, unit = timeframe.span
    return compute_volume_series(
        pool,
        trade_events,
        unit,
        span,
        bucket_count,
        prices=prices,
        decimals_by_type=decimals_by_type,
        now_ms=now_ms,
    )


def compute_pool_stats(
    pool: PoolObject,
    reserves: PoolCoins,
    trade_events: Iterable[PoolTradeEvent],
    prices: Mapping[CoinType, float],
    decimals_by_type: Mapping[CoinType, CoinDecimal],
    *,
    lp_coin_decimals: CoinDecimal = LP_COIN_DECIMALS,
    fee_window_ms: int = TimeUnit.DAY.value,
) -> PoolStats:
    """
    Volume, TVL, supply per LP, LP price, fees and APR range for one pool snapshot.

    ``trade_events`` are taken to span the trailing ``fee_window_ms``; the APR
    range is annualized from that window.
    """
    for coin in pool.coins:
        if coin not in prices:
            raise PriceNotFound(coin)
    volume = compute_volume(
        pool.object_id,
        pool.coins,
        trade_events,
        [prices[c] for c in pool.coins],
        decimals_by_type,
    )
    tvl = compute_tvl(reserves.balances, prices, decimals_by_type)
    fees = compute_fees(volume, pool.trade_fee)
    return PoolStats(
        volume=volume,
        tvl=tvl,
        supply_per_lps=compute_supply_per_lps(pool, reserves),
        lp_price=compute_lp_share_price(reserves.lp_supply, tvl, lp_coin_decimals),
        fees=fees,
        apr_range=compute_apr_range(fees, tvl, fee_window_ms),
    )
