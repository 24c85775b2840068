"""
Coin metadata collaborators: decimals and USD prices per coin type.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, Mapping, Optional, Protocol, Tuple

from ..errors import MissingMetadata, PriceNotFound
from ..state.coins import CoinDecimal, CoinMetadata, CoinType

logger = logging.getLogger(__name__)


class MetadataSource(Protocol):
    async def fetch_decimals(self, coin_types: Iterable[CoinType]) -> Dict[CoinType, CoinDecimal]:
        ...

    async def fetch_prices(self, coin_types: Iterable[CoinType]) -> Dict[CoinType, float]:
        ...


class StaticMetadataSource:
    """
    `MetadataSource` over in-memory tables.

    Lookups are strict: asking for a coin type the tables do not hold raises
    instead of returning a partial mapping.
    """

    def __init__(
        self,
        decimals: Optional[Mapping[CoinType, CoinDecimal]] = None,
        prices: Optional[Mapping[CoinType, float]] = None,
    ):
        self._decimals: Dict[CoinType, CoinDecimal] = dict(decimals or {})
        self._prices: Dict[CoinType, float] = dict(prices or {})

    @classmethod
    def from_metadata(cls, metadata: Iterable[CoinMetadata], prices: Optional[Mapping[CoinType, float]] = None) -> "StaticMetadataSource":
        return cls({m.coin_type: m.decimals for m in metadata}, prices)

    async def fetch_decimals(self, coin_types: Iterable[CoinType]) -> Dict[CoinType, CoinDecimal]:
        out: Dict[CoinType, CoinDecimal] = {}
        for coin in coin_types:
            if coin not in self._decimals:
                raise MissingMetadata(coin)
            out[coin] = self._decimals[coin]
        return out

    async def fetch_prices(self, coin_types: Iterable[CoinType]) -> Dict[CoinType, float]:
        out: Dict[CoinType, float] = {}
        for coin in coin_types:
            if coin not in self._prices:
                raise PriceNotFound(coin)
            out[coin] = self._prices[coin]
        return out


async def fetch_decimals_and_prices(
    source: MetadataSource, coin_types: Iterable[CoinType]
) -> Tuple[Dict[CoinType, CoinDecimal], Dict[CoinType, float]]:
    """Fetch decimals and prices for ``coin_types`` concurrently."""
    coins = list(dict.fromkeys(coin_types))
    decimals, prices = await asyncio.gather(source.fetch_decimals(coins), source.fetch_prices(coins))
    logger.debug("fetched metadata for %d coin type(s)", len(coins))
    return decimals, prices
