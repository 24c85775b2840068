"""
Wallet-facing actions for the CMMM pool SDK
"""

from .pool_actions import PoolActions
from .orders import OrderActions
from .pool_stats import PoolStatsQueries

__all__ = [
    "PoolActions",
    "OrderActions",
    "PoolStatsQueries",
]
