# [TESTER] v1

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
import pytest

from cmmm.errors import IndexerError
from cmmm.integration.config import IndexerConfig
from cmmm.integration.indexer import IndexerClient, LimitOrderRequest
from cmmm.state.bundle import TransactionBundle
from cmmm.state.orders import OrderStatus

WALLET = "0x" + "33" * 32
USDC = "0x5d4b::coin::COIN"
SUI = "0x2::sui::SUI"


class FakeResponse:
    def __init__(self, status: int, body: Any, reason: str = "OK"):
        self.status = status
        self.reason = reason
        self._body = body

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None

    async def text(self) -> str:
        return self._body if isinstance(self._body, str) else json.dumps(self._body)

    async def json(self, content_type: Optional[str] = "application/json") -> Any:
        if isinstance(self._body, str):
            return json.loads(self._body)
        return self._body


class FakeSession:
    """Replays queued responses and records every POST."""

    def __init__(self, *responses: Any):
        self.responses = list(responses)
        self.requests: List[Tuple[str, Dict[str, Any]]] = []
        self.closed = False

    def post(self, url: str, json: Dict[str, Any], headers: Dict[str, str]) -> FakeResponse:
        self.requests.append((url, json))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


def _client(*responses: Any) -> Tuple[IndexerClient, FakeSession]:
    session = FakeSession(*responses)
    return IndexerClient(IndexerConfig("https://indexer.example/api"), session=session), session


def _limit_order(object_id: str, created_ts: int, status: str = "Active") -> Dict[str, Any]:
    return {
        "order_object_id": object_id,
        "coin_sell": USDC,
        "coin_sell_amount": "1000",
        "coin_buy": SUI,
        "coin_buy_min_amount_out": "495",
        "recipient": WALLET,
        "create_order_tx_info": {"digest": f"D{created_ts}", "timestamp": created_ts},
        "expiry_timestamp_ms": "1800000000000",
        "status": status,
    }


def test_fetch_indexer_posts_json_to_path() -> None:
    client, session = _client(FakeResponse(200, {"ok": 1}))
    assert asyncio.run(client.fetch_indexer("limit/active", {"a": 1})) == {"ok": 1}
    assert session.requests == [("https://indexer.example/api/limit/active", {"a": 1})]


def test_fetch_indexer_non_2xx_raises() -> None:
    client, _ = _client(FakeResponse(502, "upstream down", reason="Bad Gateway"))
    with pytest.raises(IndexerError, match=r"\[502\].*upstream down") as excinfo:
        asyncio.run(client.fetch_indexer("dca/orders", {}))
    assert excinfo.value.status == 502
    assert excinfo.value.path == "dca/orders"


def test_fetch_indexer_empty_error_body_uses_reason() -> None:
    client, _ = _client(FakeResponse(404, "", reason="Not Found"))
    with pytest.raises(IndexerError, match="Not Found"):
        asyncio.run(client.fetch_indexer("limit/active", {}))


def test_fetch_indexer_invalid_json_raises() -> None:
    client, _ = _client(FakeResponse(200, "<html>"))
    with pytest.raises(IndexerError, match="invalid JSON"):
        asyncio.run(client.fetch_indexer("limit/active", {}))


def test_fetch_indexer_transport_errors_raise() -> None:
    client, _ = _client(aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError())
    with pytest.raises(IndexerError, match="refused"):
        asyncio.run(client.fetch_indexer("limit/active", {}))
    with pytest.raises(IndexerError, match="timed out"):
        asyncio.run(client.fetch_indexer("limit/active", {}))


def test_shared_session_is_not_closed() -> None:
    client, session = _client()
    asyncio.run(client.close())
    assert not session.closed


def test_active_limit_orders_are_newest_first() -> None:
    body = {"orders": [_limit_order("0x1", 100), _limit_order("0x2", 300), _limit_order("0x3", 200)]}
    client, session = _client(FakeResponse(200, body))
    orders = asyncio.run(client.fetch_active_limit_orders(WALLET, "Ynl0ZXM=", "sig"))

    assert [o.object_id for o in orders] == ["0x2", "0x3", "0x1"]
    assert orders[0].sell_amount == 1000
    assert orders[0].status is OrderStatus.ACTIVE
    assert orders[0].finished is None
    assert session.requests[0][1] == {"wallet_address": WALLET, "bytes": "Ynl0ZXM=", "signature": "sig"}


def test_executed_limit_orders_parse_finish_info() -> None:
    order = _limit_order("0x1", 100, status="Filled")
    order["finish_order_tx_info"] = {"digest": "F", "timestamp": "150"}
    client, session = _client(FakeResponse(200, {"orders": [order]}))
    orders = asyncio.run(client.fetch_executed_limit_orders(WALLET))

    assert orders[0].finished is not None and orders[0].finished.timestamp == 150
    assert orders[0].status is OrderStatus.FILLED
    assert session.requests[0][1] == {"user_address": WALLET}


def test_malformed_order_reports_index() -> None:
    bad = _limit_order("0x2", 200)
    del bad["coin_buy"]
    client, _ = _client(FakeResponse(200, {"orders": [_limit_order("0x1", 100), bad]}))
    with pytest.raises(IndexerError, match="Failed to parse order 1: coin_buy"):
        asyncio.run(client.fetch_executed_limit_orders(WALLET))


def test_unknown_order_status_is_rejected() -> None:
    client, _ = _client(FakeResponse(200, {"orders": [_limit_order("0x1", 1, status="Pending")]}))
    with pytest.raises(IndexerError, match="unknown order status"):
        asyncio.run(client.fetch_executed_limit_orders(WALLET))


def test_missing_orders_list_raises() -> None:
    client, _ = _client(FakeResponse(200, {"unexpected": True}))
    with pytest.raises(IndexerError, match="orders must be a list"):
        asyncio.run(client.fetch_executed_limit_orders(WALLET))


def test_dca_orders_split_active_and_past() -> None:
    def order(object_id: str, ts: int) -> Dict[str, Any]:
        return {
            "order_object_id": object_id,
            "coin_sell": USDC,
            "coin_sell_amount": "900",
            "coin_buy": SUI,
            "total_spent": "300",
            "frequency_ms": 60000,
            "total_trades": 3,
            "trades_remaining": 2,
            "max_slippage_bps": 100,
            "recipient": WALLET,
            "create_order_tx_info": {"digest": "D", "timestamp": ts},
            "trades": [
                {
                    "input_coin": USDC,
                    "input_amount": "300",
                    "output_coin": SUI,
                    "output_amount": "150",
                    "tx_info": {"digest": "T", "timestamp": ts + 1},
                }
            ],
        }

    body = {"active": [order("0xa", 1), order("0xb", 2)], "past": []}
    client, _ = _client(FakeResponse(200, body))
    orders = asyncio.run(client.fetch_dca_orders(WALLET))

    assert [o.object_id for o in orders.active] == ["0xb", "0xa"]
    assert orders.past == ()
    assert orders.active[0].trades[0].rate == 0.5


def test_cancel_expects_boolean() -> None:
    client, session = _client(FakeResponse(200, True), FakeResponse(200, {"ok": True}))
    assert asyncio.run(client.cancel_limit_order(WALLET, "sig", "Ynl0ZXM="))
    with pytest.raises(IndexerError, match="expected a boolean"):
        asyncio.run(client.close_dca_order(WALLET, "0xa", "sig", "Ynl0ZXM="))
    assert session.requests[1][1]["order_id"] == "0xa"


def _order_bundle() -> Tuple[TransactionBundle, LimitOrderRequest]:
    bundle = TransactionBundle(sender=WALLET, gas_budget=50_000_000)
    input_coin, gas_coin = bundle.split_coins(bundle.gas, [TransactionBundle.pure(1000), TransactionBundle.pure(25)])
    request = LimitOrderRequest(
        bundle=bundle,
        input_coin=input_coin,
        input_coin_type=SUI,
        output_coin_type=USDC,
        gas_coin=gas_coin,
        owner=WALLET,
        recipient=WALLET,
        min_amount_out=1990,
        expiry_timestamp_ms=1_800_000_000_000,
    )
    return bundle, request


def test_create_limit_order_round_trip() -> None:
    bundle, request = _order_bundle()
    completed = TransactionBundle()
    for cmd in bundle.commands:
        completed.split_coins(cmd.coin, list(cmd.amounts))
    completed.move_call(package="0xc1", module="orders", function="create_order", arguments=[TransactionBundle.pure(1)])

    client, session = _client(FakeResponse(200, {"tx_data": completed.to_kind_b64()}))
    result = asyncio.run(client.create_limit_order(request))

    assert result.sender == WALLET
    assert result.gas_budget == 50_000_000
    assert len(result) == 2
    sent = session.requests[0][1]
    assert sent["tx_kind"] == bundle.to_kind_b64()
    assert sent["order"]["input_coin"] == {"NestedResult": [0, 0]}
    assert sent["order"]["gas_coin"] == {"NestedResult": [0, 1]}
    assert sent["order"]["min_amount_out"] == "1990"


def test_create_limit_order_rejects_bad_tx_data() -> None:
    _, request = _order_bundle()
    client, _ = _client(FakeResponse(200, {"tx_data": "***"}))
    with pytest.raises(IndexerError, match="invalid tx_data"):
        asyncio.run(client.create_limit_order(request))
