"""
Data models for the CMMM pool SDK
"""

from .coins import CoinMetadata, CoinObject, is_lp_coin
from .pools import PoolCoins, PoolDataPoint, PoolObject, PoolStats, PoolVolumeTimeframe
from .events import EventKind, EventType, PoolDepositEvent, PoolTradeEvent, PoolWithdrawEvent
from .orders import DcaOrder, DcaOrders, LimitOrder, OrderStatus
from .bundle import TransactionBundle

__all__ = [
    "CoinMetadata",
    "CoinObject",
    "is_lp_coin",
    "PoolCoins",
    "PoolDataPoint",
    "PoolObject",
    "PoolStats",
    "PoolVolumeTimeframe",
    "EventKind",
    "EventType",
    "PoolDepositEvent",
    "PoolTradeEvent",
    "PoolWithdrawEvent",
    "DcaOrder",
    "DcaOrders",
    "LimitOrder",
    "OrderStatus",
    "TransactionBundle",
]
