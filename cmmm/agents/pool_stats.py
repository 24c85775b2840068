"""
Pool statistics queries: fetch coin metadata, then run the analytics engine.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from ..core.analytics import TimeUnit, compute_pool_stats, volume_series_for_timeframe
from ..core.prices import spot_price
from ..integration.config import ProtocolConfig
from ..integration.metadata import MetadataSource, fetch_decimals_and_prices
from ..state.coins import CoinType
from ..state.events import PoolTradeEvent
from ..state.pools import PoolCoins, PoolDataPoint, PoolObject, PoolStats, PoolVolumeTimeframe

logger = logging.getLogger(__name__)

PoolSnapshot = Tuple[PoolObject, PoolCoins, Sequence[PoolTradeEvent]]


class PoolStatsQueries:
    """Stats, volume charts and spot prices for pools, priced through a `MetadataSource`."""

    def __init__(self, config: ProtocolConfig, metadata: MetadataSource):
        self.config = config
        self.metadata = metadata

    async def fetch_pool_stats(
        self,
        pool: PoolObject,
        reserves: PoolCoins,
        trade_events: Sequence[PoolTradeEvent],
        *,
        fee_window_ms: int = TimeUnit.DAY.value,
    ) -> PoolStats:
        """Stats for one pool; LP coins are scaled by the deployment's ``lp_coin_decimals``."""
        decimals, prices = await fetch_decimals_and_prices(self.metadata, pool.coins)
        return compute_pool_stats(
            pool,
            reserves,
            trade_events,
            prices,
            decimals,
            lp_coin_decimals=self.config.lp_coin_decimals,
            fee_window_ms=fee_window_ms,
        )

    async def fetch_many_pool_stats(self, snapshots: Sequence[PoolSnapshot]) -> List[PoolStats]:
        """Stats for several pools, fetched concurrently; results follow input order."""
        return list(
            await asyncio.gather(*(self.fetch_pool_stats(pool, reserves, events) for pool, reserves, events in snapshots))
        )

    async def fetch_volume_series(
        self,
        pool: PoolObject,
        trade_events: Sequence[PoolTradeEvent],
        timeframe: PoolVolumeTimeframe,
        bucket_count: Optional[int] = None,
        *,
        now_ms: Optional[int] = None,
    ) -> List[PoolDataPoint]:
        """
        Volume chart for a preset timeframe.

        ``bucket_count`` defaults to one bucket per time unit of the timeframe
        (24 hourly buckets for 1D, 7 daily buckets for 1W, ...).
        """
        decimals, prices = await fetch_decimals_and_prices(self.metadata, pool.coins)
        count = timeframe.span[0] if bucket_count is None else bucket_count
        logger.debug("volume series for pool %s over %s in %d buckets", pool.object_id, timeframe.value, count)
        return volume_series_for_timeframe(
            pool, trade_events, timeframe, count, prices=prices, decimals_by_type=decimals, now_ms=now_ms
        )

    async def fetch_spot_price(
        self, pool: PoolObject, reserves: PoolCoins, coin_in: CoinType, coin_out: CoinType
    ) -> float:
        decimals = await self.metadata.fetch_decimals([coin_in, coin_out])
        return spot_price(pool, reserves.balances, coin_in, coin_out, decimals)
