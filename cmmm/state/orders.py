"""
Limit and DCA order records as reported by the indexer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .coins import Address, Balance, CoinType, ObjectId
from .events import Timestamp


class OrderStatus(Enum):
    ACTIVE = "Active"
    CANCELED = "Canceled"
    FAILED = "Failed"
    FILLED = "Filled"
    EXPIRED = "Expired"


@dataclass(frozen=True)
class TxInfo:
    digest: str
    timestamp: Timestamp


@dataclass(frozen=True)
class LimitOrder:
    """
    A limit order tracked by the indexer.

    Attributes:
        object_id: On-chain order object id
        sell_coin / sell_amount: Allocated input coin and amount
        buy_coin / buy_min_amount_out: Requested output coin and minimum output
        created / finished: Creating and finishing transaction, if any
        expiry_timestamp_ms: Order expiry (unix ms)
    """
    object_id: ObjectId
    sell_coin: CoinType
    sell_amount: Balance
    buy_coin: CoinType
    buy_min_amount_out: Balance
    recipient: Address
    created: TxInfo
    finished: Optional[TxInfo]
    expiry_timestamp_ms: Timestamp
    status: OrderStatus


@dataclass(frozen=True)
class DcaTrade:
    input_coin: CoinType
    input_amount: Balance
    output_coin: CoinType
    output_amount: Balance
    tx: TxInfo

    @property
    def rate(self) -> float:
        """Output units received per input unit, in raw balances."""
        if self.input_amount == 0:
            return 0.0
        return self.output_amount / self.input_amount


@dataclass(frozen=True)
class DcaOrder:
    object_id: ObjectId
    allocated_coin: CoinType
    allocated_amount: Balance
    buy_coin: CoinType
    total_spent: Balance
    frequency_ms: int
    total_trades: int
    trades_remaining: int
    max_slippage_bps: int
    recipient: Address
    created: TxInfo
    trades: Tuple[DcaTrade, ...] = ()

    @property
    def progress(self) -> float:
        if self.total_trades <= 0:
            return 0.0
        return (self.total_trades - self.trades_remaining) / self.total_trades


@dataclass(frozen=True)
class DcaOrders:
    active: Tuple[DcaOrder, ...]
    past: Tuple[DcaOrder, ...]
