"""
Pool models for constant-mean-market-maker (CMMM) pools.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Tuple

from .coins import Address, Balance, CoinType, ObjectId


# Pool weights are fixed-point with 18 decimals and sum to FIXED_ONE.
FIXED_ONE = 10**18

MIN_POOL_SIZE = 2
MAX_POOL_SIZE = 8


class PoolVolumeTimeframe(Enum):
    """Preset windows for volume charts: (time span, time unit name)."""
    ONE_DAY = "1D"
    ONE_WEEK = "1W"
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"

    @property
    def span(self) -> Tuple[int, str]:
        return _TIMEFRAME_SPANS[self]


_TIMEFRAME_SPANS = {
    PoolVolumeTimeframe.ONE_DAY: (24, "hour"),
    PoolVolumeTimeframe.ONE_WEEK: (7, "day"),
    PoolVolumeTimeframe.ONE_MONTH: (30, "day"),
    PoolVolumeTimeframe.THREE_MONTHS: (90, "day"),
}


@dataclass(frozen=True)
class PoolObject:
    """
    Static description of a liquidity pool.

    Attributes:
        object_id: Pool object identifier
        name: Human readable pool name
        creator: Address that created the pool
        coins: Pool coin types, in on-chain order
        weights: Fixed-point (1e18) weight per coin, co-indexed with ``coins``
        trade_fee: Fixed-point (1e18) trade fee
        lp_type: Coin type of the pool's LP share coin
    """
    object_id: ObjectId
    name: str
    creator: Address
    coins: Tuple[CoinType, ...]
    weights: Tuple[int, ...]
    trade_fee: int
    lp_type: CoinType

    def __post_init__(self) -> None:
        if not isinstance(self.object_id, str) or not self.object_id:
            raise ValueError("object_id must be a non-empty string")
        object.__setattr__(self, "coins", tuple(self.coins))
        object.__setattr__(self, "weights", tuple(self.weights))
        if len(self.coins) != len(self.weights):
            raise ValueError(
                f"coins and weights must have the same length: {len(self.coins)} != {len(self.weights)}"
            )
        if len(set(self.coins)) != len(self.coins):
            raise ValueError(f"duplicate coin types in pool {self.object_id}")
        if any(w <= 0 for w in self.weights):
            raise ValueError(f"weights must be positive: {self.weights}")
        if self.trade_fee < 0 or self.trade_fee >= FIXED_ONE:
            raise ValueError(f"trade_fee must be in [0, 1e18): {self.trade_fee}")

    @property
    def size(self) -> int:
        return len(self.coins)

    def weight_of(self, coin: CoinType) -> int:
        """
        Get the fixed-point weight of a pool coin.

        Raises:
            ValueError: If coin is not in this pool
        """
        try:
            return self.weights[self.coins.index(coin)]
        except ValueError:
            raise ValueError(f"Coin {coin} not in pool {self.object_id}") from None

    def __repr__(self) -> str:
        return (
            f"PoolObject(object_id={self.object_id[:16]}..., name={self.name!r}, "
            f"size={self.size}, lp_type={self.lp_type})"
        )


@dataclass(frozen=True)
class PoolCoins:
    """
    Snapshot of a pool's reserves and LP supply.

    The SDK only ever reads snapshots; reserves change on-chain.
    """
    pool_id: ObjectId
    balances: Mapping[CoinType, Balance]
    lp_supply: Balance

    def __post_init__(self) -> None:
        balances = dict(self.balances)
        for coin, amount in balances.items():
            if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
                raise ValueError(f"Reserve for {coin} must be a non-negative int: {amount!r}")
        if not isinstance(self.lp_supply, int) or self.lp_supply < 0:
            raise ValueError(f"LP supply must be non-negative: {self.lp_supply}")
        object.__setattr__(self, "balances", balances)

    def get_reserve(self, coin: CoinType) -> Balance:
        """
        Get reserve for a specific coin.

        Raises:
            ValueError: If coin is not in this pool
        """
        if coin not in self.balances:
            raise ValueError(f"Coin {coin} not in pool {self.pool_id}")
        return self.balances[coin]


@dataclass(frozen=True)
class PoolDataPoint:
    """One bucket of a time series: bucket start (unix ms) and aggregated USD value."""
    time: float
    value: float


@dataclass(frozen=True)
class PoolStats:
    volume: float
    tvl: float
    supply_per_lps: Tuple[float, ...]
    lp_price: float
    fees: float
    apr_range: Tuple[float, float]
