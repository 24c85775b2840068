"""
Core pool algorithms: normalization, pricing, analytics, slippage and bundle assembly
"""

from .decimals import (
    normalize_balance,
    normalize_balance_exact,
    balance_with_decimals_usd,
    denormalize_amount,
)
from .prices import resolve_price, price_in_pool, spot_price
from .analytics import (
    TimeUnit,
    compute_volume,
    compute_tvl,
    compute_lp_share_price,
    compute_supply_per_lps,
    compute_fees,
    compute_apr_range,
    compute_volume_series,
    volume_series_for_timeframe,
    compute_pool_stats,
)
from .slippage import normalize_slippage, denormalize_slippage, slippage_to_bps, min_amount_after_slippage
from .transactions import PoolTransactionBuilder, pool_entry_point

__all__ = [
    "normalize_balance",
    "normalize_balance_exact",
    "balance_with_decimals_usd",
    "denormalize_amount",
    "resolve_price",
    "price_in_pool",
    "spot_price",
    "TimeUnit",
    "compute_volume",
    "compute_tvl",
    "compute_lp_share_price",
    "compute_supply_per_lps",
    "compute_fees",
    "compute_apr_range",
    "compute_volume_series",
    "volume_series_for_timeframe",
    "compute_pool_stats",
    "normalize_slippage",
    "denormalize_slippage",
    "slippage_to_bps",
    "min_amount_after_slippage",
    "PoolTransactionBuilder",
    "pool_entry_point",
]
