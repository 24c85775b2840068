"""
Event classification: raw platform events to typed records.

A raw event is the JSON object the platform returns for an emitted event:

    {
        "type": "0x<pkg>::events::SwapEvent",
        "parsedJson": {...},
        "timestampMs": "1700000000000",
        "sender": "0x...",
    }

The classifier matches the ``type`` tag (package address normalized, generic
arguments ignored) against the tags configured for the deployment and decodes
``parsedJson`` into the matching record. Unknown tags are not errors: a stream
of events from many protocols is expected, and only known tags are kept.
A known tag whose payload does not decode raises `EventParseError`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple, Union

from ..errors import EventParseError
from ..state.coins import CoinType, normalize_address
from ..state.events import (
    DcaClosedOrderEvent,
    DcaCreatedOrderEvent,
    DcaExecutedTradeEvent,
    EventKind,
    EventType,
    LimitCreatedOrderEvent,
    PoolDepositEvent,
    PoolTradeEvent,
    PoolWithdrawEvent,
    Timestamp,
)
from .config import ProtocolConfig

logger = logging.getLogger(__name__)

EventRecord = Union[
    PoolTradeEvent,
    PoolDepositEvent,
    PoolWithdrawEvent,
    LimitCreatedOrderEvent,
    DcaCreatedOrderEvent,
    DcaClosedOrderEvent,
    DcaExecutedTradeEvent,
]

POOL_EVENT_NAMES = {
    EventKind.TRADE: "SwapEvent",
    EventKind.DEPOSIT: "DepositEvent",
    EventKind.WITHDRAW: "WithdrawEvent",
}
LIMIT_EVENT_NAMES = {
    EventKind.LIMIT_CREATED_ORDER: "CreatedOrderEvent",
}
DCA_EVENT_NAMES = {
    EventKind.DCA_CREATED_ORDER: "CreatedOrderEvent",
    EventKind.DCA_CLOSED_ORDER: "ClosedOrderEvent",
    EventKind.DCA_EXECUTED_TRADE: "ExecutedTradeEvent",
}


def event_type_string(package: str, module: str, name: str) -> str:
    """Full tag ``<package>::<module>::<name>`` for an event struct."""
    return str(EventType(package=package, module=module, name=name))


# ----------------------------------------------------------------------
# Field helpers
# ----------------------------------------------------------------------


def _field(payload: Mapping[str, Any], name: str) -> Any:
    if name not in payload:
        raise ValueError(f"missing field {name!r}")
    return payload[name]


def _u64(value: Any, *, name: str) -> int:
    # u64 values are serialized as decimal strings.
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    if isinstance(value, int):
        out = value
    elif isinstance(value, str) and value.strip().isdigit():
        out = int(value.strip())
    else:
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if out < 0:
        raise ValueError(f"{name} must be non-negative")
    return out


def _str(value: Any, *, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string")
    return value


def _address(value: Any, *, name: str) -> str:
    return normalize_address(_str(value, name=name))


def _coin_type(value: Any, *, name: str) -> CoinType:
    # Type names come either as text or as the ASCII bytes of the text, and
    # never carry the 0x prefix.
    if isinstance(value, Mapping) and "name" in value:
        value = value["name"]
    if isinstance(value, list):
        if not all(isinstance(b, int) and 0 <= b < 128 for b in value):
            raise ValueError(f"{name} must be ASCII bytes")
        value = bytes(value).decode("ascii")
    text = _str(value, name=name)
    return text if text.startswith("0x") else "0x" + text


def _coin_types(value: Any, *, name: str) -> Tuple[CoinType, ...]:
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list")
    return tuple(_coin_type(v, name=f"{name}[{i}]") for i, v in enumerate(value))


def _u64s(value: Any, *, name: str) -> Tuple[int, ...]:
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list")
    return tuple(_u64(v, name=f"{name}[{i}]") for i, v in enumerate(value))


def _timestamp(raw: Mapping[str, Any]) -> Timestamp:
    return _u64(raw.get("timestampMs"), name="timestampMs")


# ----------------------------------------------------------------------
# Decoders, one per event kind
# ----------------------------------------------------------------------


def _decode_trade(p: Mapping[str, Any], ts: Timestamp) -> PoolTradeEvent:
    return PoolTradeEvent(
        pool_id=_address(_field(p, "pool_id"), name="pool_id"),
        trader=_address(_field(p, "trader"), name="trader"),
        type_in=_coin_type(_field(p, "type_in"), name="type_in"),
        amount_in=_u64(_field(p, "amount_in"), name="amount_in"),
        type_out=_coin_type(_field(p, "type_out"), name="type_out"),
        amount_out=_u64(_field(p, "amount_out"), name="amount_out"),
        timestamp=ts,
    )


def _decode_deposit(p: Mapping[str, Any], ts: Timestamp) -> PoolDepositEvent:
    types = _coin_types(_field(p, "types"), name="types")
    deposits = _u64s(_field(p, "deposits"), name="deposits")
    if len(types) != len(deposits):
        raise ValueError(f"types and deposits differ in length: {len(types)} != {len(deposits)}")
    return PoolDepositEvent(
        pool_id=_address(_field(p, "pool_id"), name="pool_id"),
        depositor=_address(_field(p, "depositor"), name="depositor"),
        types=types,
        deposits=deposits,
        lp_minted=_u64(_field(p, "lp_minted"), name="lp_minted"),
        timestamp=ts,
    )


def _decode_withdraw(p: Mapping[str, Any], ts: Timestamp) -> PoolWithdrawEvent:
    types = _coin_types(_field(p, "types"), name="types")
    withdrawn = _u64s(_field(p, "withdrawn"), name="withdrawn")
    if len(types) != len(withdrawn):
        raise ValueError(f"types and withdrawn differ in length: {len(types)} != {len(withdrawn)}")
    return PoolWithdrawEvent(
        pool_id=_address(_field(p, "pool_id"), name="pool_id"),
        withdrawer=_address(_field(p, "withdrawer"), name="withdrawer"),
        types=types,
        withdrawn=withdrawn,
        lp_burned=_u64(_field(p, "lp_burned"), name="lp_burned"),
        timestamp=ts,
    )


def _decode_limit_created(p: Mapping[str, Any], ts: Timestamp) -> LimitCreatedOrderEvent:
    return LimitCreatedOrderEvent(
        order_id=_address(_field(p, "order_id"), name="order_id"),
        user=_address(_field(p, "user"), name="user"),
        recipient=_address(_field(p, "recipient"), name="recipient"),
        input_amount=_u64(_field(p, "input_amount"), name="input_amount"),
        input_type=_coin_type(_field(p, "input_type"), name="input_type"),
        output_type=_coin_type(_field(p, "output_type"), name="output_type"),
        gas_amount=_u64(_field(p, "gas_amount"), name="gas_amount"),
        timestamp=ts,
    )


def _decode_dca_created(p: Mapping[str, Any], ts: Timestamp) -> DcaCreatedOrderEvent:
    return DcaCreatedOrderEvent(
        order_id=_address(_field(p, "order_id"), name="order_id"),
        owner=_address(_field(p, "owner"), name="owner"),
        input_value=_u64(_field(p, "input_value"), name="input_value"),
        input_type=_coin_type(_field(p, "input_type"), name="input_type"),
        output_type=_coin_type(_field(p, "output_type"), name="output_type"),
        gas_value=_u64(_field(p, "gas_value"), name="gas_value"),
        frequency_ms=_u64(_field(p, "frequency_ms"), name="frequency_ms"),
        start_timestamp_ms=_u64(_field(p, "start_timestamp_ms"), name="start_timestamp_ms"),
        amount_per_trade=_u64(_field(p, "amount_per_trade"), name="amount_per_trade"),
        max_allowable_slippage_bps=_u64(_field(p, "max_allowable_slippage_bps"), name="max_allowable_slippage_bps"),
        min_amount_out=_u64(_field(p, "min_amount_out"), name="min_amount_out"),
        max_amount_out=_u64(_field(p, "max_amount_out"), name="max_amount_out"),
        remaining_trades=_u64(_field(p, "remaining_trades"), name="remaining_trades"),
        timestamp=ts,
    )


def _decode_dca_closed(p: Mapping[str, Any], ts: Timestamp) -> DcaClosedOrderEvent:
    return DcaClosedOrderEvent(
        order_id=_address(_field(p, "order_id"), name="order_id"),
        owner=_address(_field(p, "owner"), name="owner"),
        remaining_value=_u64(_field(p, "remaining_value"), name="remaining_value"),
        input_type=_coin_type(_field(p, "input_type"), name="input_type"),
        output_type=_coin_type(_field(p, "output_type"), name="output_type"),
        gas_value=_u64(_field(p, "gas_value"), name="gas_value"),
        remaining_trades=_u64(_field(p, "remaining_trades"), name="remaining_trades"),
        timestamp=ts,
    )


def _decode_dca_executed(p: Mapping[str, Any], ts: Timestamp) -> DcaExecutedTradeEvent:
    return DcaExecutedTradeEvent(
        order_id=_address(_field(p, "order_id"), name="order_id"),
        user=_address(_field(p, "user"), name="user"),
        input_type=_coin_type(_field(p, "input_type"), name="input_type"),
        input_amount=_u64(_field(p, "input_amount"), name="input_amount"),
        output_type=_coin_type(_field(p, "output_type"), name="output_type"),
        output_amount=_u64(_field(p, "output_amount"), name="output_amount"),
        timestamp=ts,
    )


_DECODERS: Dict[EventKind, Callable[[Mapping[str, Any], Timestamp], EventRecord]] = {
    EventKind.TRADE: _decode_trade,
    EventKind.DEPOSIT: _decode_deposit,
    EventKind.WITHDRAW: _decode_withdraw,
    EventKind.LIMIT_CREATED_ORDER: _decode_limit_created,
    EventKind.DCA_CREATED_ORDER: _decode_dca_created,
    EventKind.DCA_CLOSED_ORDER: _decode_dca_closed,
    EventKind.DCA_EXECUTED_TRADE: _decode_dca_executed,
}


class EventClassifier:
    """
    Classifies raw events against the tags configured for one deployment.

    Pool tags always exist; limit and DCA tags are registered only when the
    deployment configures those protocols.
    """

    def __init__(self, config: ProtocolConfig):
        self._kinds: Dict[EventType, EventKind] = {}
        pools = config.pools
        for kind, name in POOL_EVENT_NAMES.items():
            self._register(EventType(pools.events_package_id, pools.events_module, name), kind)
        if config.limit is not None:
            for kind, name in LIMIT_EVENT_NAMES.items():
                self._register(EventType(config.limit.package_id, config.limit.events_module, name), kind)
        if config.dca is not None:
            for kind, name in DCA_EVENT_NAMES.items():
                self._register(EventType(config.dca.package_id, config.dca.events_module, name), kind)

    def _register(self, event_type: EventType, kind: EventKind) -> None:
        if event_type in self._kinds and self._kinds[event_type] != kind:
            raise ValueError(f"event type {event_type} registered for both {self._kinds[event_type]} and {kind}")
        self._kinds[event_type] = kind

    @property
    def event_types(self) -> Dict[EventKind, str]:
        """Configured tag per event kind."""
        return {kind: str(t) for t, kind in self._kinds.items()}

    def kind_of(self, tag: str) -> Optional[EventKind]:
        """Event kind for a type tag, or None if the tag is not one of ours."""
        try:
            event_type = EventType.parse(tag)
        except ValueError:
            return None
        return self._kinds.get(event_type)

    def classify(self, raw: Mapping[str, Any]) -> Optional[EventRecord]:
        """
        Decode one raw event.

        Returns:
            The typed record, or None if the event's tag is not recognized

        Raises:
            EventParseError: If the tag is recognized but the payload is malformed
        """
        if not isinstance(raw, Mapping):
            raise EventParseError(f"event must be an object, got {type(raw)}")
        tag = raw.get("type")
        kind = self.kind_of(tag) if isinstance(tag, str) else None
        if kind is None:
            logger.debug("ignoring unrecognized event type %r", tag)
            return None
        payload = raw.get("parsedJson")
        try:
            if not isinstance(payload, Mapping):
                raise ValueError("parsedJson must be an object")
            return _DECODERS[kind](payload, _timestamp(raw))
        except (TypeError, ValueError, UnicodeDecodeError) as e:
            raise EventParseError(f"Failed to parse {kind.value} event {tag}: {e}") from e

    def classify_many(
        self,
        raws: Iterable[Mapping[str, Any]],
        kinds: Optional[Iterable[EventKind]] = None,
    ) -> List[EventRecord]:
        """
        Decode a heterogeneous event stream, keeping only ``kinds`` (all known kinds by default).

        Input order is preserved.
        """
        wanted: Optional[Set[EventKind]] = set(kinds) if kinds is not None else None
        out: List[EventRecord] = []
        skipped = 0
        for i, raw in enumerate(raws):
            tag = raw.get("type") if isinstance(raw, Mapping) else None
            kind = self.kind_of(tag) if isinstance(tag, str) else None
            if kind is None or (wanted is not None and kind not in wanted):
                skipped += 1
                continue
            try:
                record = self.classify(raw)
            except EventParseError as e:
                raise EventParseError(f"Failed to parse event {i}: {e}") from e
            if record is not None:
                out.append(record)
        if skipped:
            logger.debug("skipped %d event(s) outside the requested kinds", skipped)
        return out

    def trade_events(self, raws: Iterable[Mapping[str, Any]]) -> List[PoolTradeEvent]:
        return [e for e in self.classify_many(raws, [EventKind.TRADE]) if isinstance(e, PoolTradeEvent)]
