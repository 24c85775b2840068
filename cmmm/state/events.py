"""
Typed protocol event records.

Raw events arrive from the platform as JSON payloads tagged with a structured
type ``<package>::<module>::<EventName>``; see ``cmmm.integration.events``
for the classifier that produces these records.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from .coins import Address, Balance, CoinType, ObjectId, normalize_address


Timestamp = int  # unix milliseconds


class EventKind(Enum):
    """Event families the SDK knows how to decode."""
    TRADE = "TRADE"
    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    LIMIT_CREATED_ORDER = "LIMIT_CREATED_ORDER"
    DCA_CREATED_ORDER = "DCA_CREATED_ORDER"
    DCA_CLOSED_ORDER = "DCA_CLOSED_ORDER"
    DCA_EXECUTED_TRADE = "DCA_EXECUTED_TRADE"


@dataclass(frozen=True)
class EventType:
    """Structured event tag: package address, module and event struct name."""
    package: str
    module: str
    name: str

    def __post_init__(self) -> None:
        for label, v in (("package", self.package), ("module", self.module), ("name", self.name)):
            if not isinstance(v, str) or not v:
                raise ValueError(f"event type {label} must be a non-empty string")
        object.__setattr__(self, "package", normalize_address(self.package))

    @classmethod
    def parse(cls, tag: str) -> "EventType":
        """
        Parse ``package::module::Name`` (generic arguments are ignored).

        Raises:
            ValueError: If the tag does not have three ``::`` separated parts
        """
        if not isinstance(tag, str):
            raise ValueError(f"event type must be a string, got {type(tag)}")
        base = tag.split("<", 1)[0].strip()
        parts = base.split("::")
        if len(parts) != 3:
            raise ValueError(f"invalid event type: {tag!r}")
        return cls(package=parts[0], module=parts[1], name=parts[2])

    def __str__(self) -> str:
        return f"{self.package}::{self.module}::{self.name}"


@dataclass(frozen=True)
class PoolTradeEvent:
    pool_id: ObjectId
    trader: Address
    type_in: CoinType
    amount_in: Balance
    type_out: CoinType
    amount_out: Balance
    timestamp: Timestamp


@dataclass(frozen=True)
class PoolDepositEvent:
    pool_id: ObjectId
    depositor: Address
    types: Tuple[CoinType, ...]
    deposits: Tuple[Balance, ...]
    lp_minted: Balance
    timestamp: Timestamp


@dataclass(frozen=True)
class PoolWithdrawEvent:
    pool_id: ObjectId
    withdrawer: Address
    types: Tuple[CoinType, ...]
    withdrawn: Tuple[Balance, ...]
    lp_burned: Balance
    timestamp: Timestamp


@dataclass(frozen=True)
class LimitCreatedOrderEvent:
    order_id: ObjectId
    user: Address
    recipient: Address
    input_amount: Balance
    input_type: CoinType
    output_type: CoinType
    gas_amount: Balance
    timestamp: Timestamp


@dataclass(frozen=True)
class DcaCreatedOrderEvent:
    order_id: ObjectId
    owner: Address
    input_value: Balance
    input_type: CoinType
    output_type: CoinType
    gas_value: Balance
    frequency_ms: int
    start_timestamp_ms: Timestamp
    amount_per_trade: Balance
    max_allowable_slippage_bps: int
    min_amount_out: Balance
    max_amount_out: Balance
    remaining_trades: int
    timestamp: Timestamp


@dataclass(frozen=True)
class DcaClosedOrderEvent:
    order_id: ObjectId
    owner: Address
    remaining_value: Balance
    input_type: CoinType
    output_type: CoinType
    gas_value: Balance
    remaining_trades: int
    timestamp: Timestamp


@dataclass(frozen=True)
class DcaExecutedTradeEvent:
    order_id: ObjectId
    user: Address
    input_type: CoinType
    input_amount: Balance
    output_type: CoinType
    output_amount: Balance
    timestamp: Timestamp
