"""
Integration layer: configuration, event decoding, coin selection, indexer and metadata
"""

from .config import ProtocolConfig, PoolsAddresses, LimitAddresses, DcaAddresses, IndexerConfig, load_config
from .events import EventClassifier, event_type_string
from .coin_selection import CoinSelection, CoinSelector, StaticCoinSource, add_coin_with_amount
from .indexer import IndexerClient, LimitOrderRequest, DcaOrderRequest
from .metadata import StaticMetadataSource, fetch_decimals_and_prices

__all__ = [
    "ProtocolConfig",
    "PoolsAddresses",
    "LimitAddresses",
    "DcaAddresses",
    "IndexerConfig",
    "load_config",
    "EventClassifier",
    "event_type_string",
    "CoinSelection",
    "CoinSelector",
    "StaticCoinSource",
    "add_coin_with_amount",
    "IndexerClient",
    "LimitOrderRequest",
    "DcaOrderRequest",
    "StaticMetadataSource",
    "fetch_decimals_and_prices",
]
