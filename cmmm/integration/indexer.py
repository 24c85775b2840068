"""
Indexer client: JSON over HTTP for limit and DCA order state.

Every call is a POST of a JSON body to ``<base_url>/<path>``. A non-2xx
status, a transport failure or a body that is not JSON raises `IndexerError`;
nothing is retried here.

Order creation is a round trip: the caller's bundle is sent as base64
transaction-kind bytes (``tx_kind``), the indexer appends its own commands and
returns the full kind as ``tx_data``, which is decoded back into a bundle that
inherits the caller's sender and gas budget.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp

from ..errors import IndexerError
from ..state.bundle import Argument, TransactionBundle, argument_to_dict
from ..state.coins import Address, Balance, CoinType, ObjectId
from ..state.orders import DcaOrder, DcaOrders, DcaTrade, LimitOrder, OrderStatus, TxInfo
from .config import IndexerConfig

logger = logging.getLogger(__name__)


LIMIT_CREATE_PATH = "limit/create"
LIMIT_CANCEL_PATH = "limit/cancel"
LIMIT_ACTIVE_PATH = "limit/active"
LIMIT_EXECUTED_PATH = "limit/executed"
DCA_CREATE_PATH = "dca/create"
DCA_CANCEL_PATH = "dca/cancel"
DCA_ORDERS_PATH = "dca/orders"


@dataclass(frozen=True)
class LimitOrderRequest:
    """
    Inputs for ``limit/create``.

    ``bundle`` already holds the commands producing ``input_coin`` and
    ``gas_coin``.
    """
    bundle: TransactionBundle
    input_coin: Argument
    input_coin_type: CoinType
    output_coin_type: CoinType
    gas_coin: Argument
    owner: Address
    recipient: Address
    min_amount_out: Balance
    expiry_timestamp_ms: int


@dataclass(frozen=True)
class DcaOrderRequest:
    """Inputs for ``dca/create``; see `LimitOrderRequest` for the coin arguments."""
    bundle: TransactionBundle
    input_coin: Argument
    input_coin_type: CoinType
    output_coin_type: CoinType
    gas_coin: Argument
    owner: Address
    recipient: Address
    frequency_ms: int
    delay_timestamp_ms: int
    amount_per_trade: Balance
    number_of_trades: int
    max_allowable_slippage_bps: int
    min_amount_out: Balance
    max_amount_out: Balance
    public_key: str = ""


# ----------------------------------------------------------------------
# Response parsing
# ----------------------------------------------------------------------


def _require_str(value: Any, *, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string")
    return value


def _require_int(value: Any, *, name: str) -> int:
    # Amounts arrive as integers or as decimal strings.
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an int")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValueError(f"{name} must be an int")


def _require_dict(value: Any, *, name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"{name} must be an object")
    return value


def _require_list(value: Any, *, name: str) -> List[Any]:
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a list")
    return value


def _tx_info(value: Any, *, name: str) -> TxInfo:
    d = _require_dict(value, name=name)
    return TxInfo(
        digest=_require_str(d.get("digest"), name=f"{name}.digest"),
        timestamp=_require_int(d.get("timestamp"), name=f"{name}.timestamp"),
    )


def _parse_limit_order(d: Mapping[str, Any]) -> LimitOrder:
    d = _require_dict(d, name="order")
    finished = d.get("finish_order_tx_info")
    try:
        status = OrderStatus(d.get("status"))
    except ValueError:
        raise ValueError(f"unknown order status {d.get('status')!r}") from None
    return LimitOrder(
        object_id=_require_str(d.get("order_object_id"), name="order_object_id"),
        sell_coin=_require_str(d.get("coin_sell"), name="coin_sell"),
        sell_amount=_require_int(d.get("coin_sell_amount"), name="coin_sell_amount"),
        buy_coin=_require_str(d.get("coin_buy"), name="coin_buy"),
        buy_min_amount_out=_require_int(d.get("coin_buy_min_amount_out"), name="coin_buy_min_amount_out"),
        recipient=_require_str(d.get("recipient"), name="recipient"),
        created=_tx_info(d.get("create_order_tx_info"), name="create_order_tx_info"),
        finished=_tx_info(finished, name="finish_order_tx_info") if finished else None,
        expiry_timestamp_ms=_require_int(d.get("expiry_timestamp_ms"), name="expiry_timestamp_ms"),
        status=status,
    )


def _parse_dca_trade(d: Any) -> DcaTrade:
    d = _require_dict(d, name="trade")
    return DcaTrade(
        input_coin=_require_str(d.get("input_coin"), name="input_coin"),
        input_amount=_require_int(d.get("input_amount"), name="input_amount"),
        output_coin=_require_str(d.get("output_coin"), name="output_coin"),
        output_amount=_require_int(d.get("output_amount"), name="output_amount"),
        tx=_tx_info(d.get("tx_info"), name="tx_info"),
    )


def _parse_dca_order(d: Any) -> DcaOrder:
    d = _require_dict(d, name="order")
    return DcaOrder(
        object_id=_require_str(d.get("order_object_id"), name="order_object_id"),
        allocated_coin=_require_str(d.get("coin_sell"), name="coin_sell"),
        allocated_amount=_require_int(d.get("coin_sell_amount"), name="coin_sell_amount"),
        buy_coin=_require_str(d.get("coin_buy"), name="coin_buy"),
        total_spent=_require_int(d.get("total_spent"), name="total_spent"),
        frequency_ms=_require_int(d.get("frequency_ms"), name="frequency_ms"),
        total_trades=_require_int(d.get("total_trades"), name="total_trades"),
        trades_remaining=_require_int(d.get("trades_remaining"), name="trades_remaining"),
        max_slippage_bps=_require_int(d.get("max_slippage_bps"), name="max_slippage_bps"),
        recipient=_require_str(d.get("recipient"), name="recipient"),
        created=_tx_info(d.get("create_order_tx_info"), name="create_order_tx_info"),
        trades=tuple(_parse_dca_trade(t) for t in _require_list(d.get("trades", []), name="trades")),
    )


def _parse_all(path: str, items: Any, parse) -> List[Any]:
    try:
        raw = _require_list(items, name="orders")
    except ValueError as e:
        raise IndexerError(path, str(e)) from e
    out = []
    for i, item in enumerate(raw):
        try:
            out.append(parse(item))
        except (TypeError, ValueError) as e:
            raise IndexerError(path, f"Failed to parse order {i}: {e}") from e
    # Newest first.
    out.sort(key=lambda o: o.created.timestamp, reverse=True)
    return out


class IndexerClient:
    """
    Async indexer client.

    Pass an ``aiohttp.ClientSession`` to share one; otherwise the client opens
    its own on first use and closes it in `close()` / on context exit.
    """

    def __init__(self, config: IndexerConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "IndexerClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_s)
            )
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def fetch_indexer(self, path: str, body: Dict[str, Any]) -> Any:
        """
        POST ``body`` as JSON to ``path`` and return the decoded JSON response.

        Raises:
            IndexerError: On non-2xx status, transport failure, timeout or non-JSON body
        """
        url = self.config.url_for(path)
        session = self._ensure_session()
        logger.debug("POST %s", url)
        try:
            async with session.post(url, json=body, headers={"Content-Type": "application/json"}) as response:
                if not (200 <= response.status < 300):
                    text = await response.text()
                    logger.warning("indexer %s failed: %s", path, response.status)
                    raise IndexerError(path, text[:200] or str(response.reason), status=response.status)
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    logger.warning("indexer %s returned a non-JSON body", path)
                    raise IndexerError(path, f"invalid JSON body: {e}", status=response.status) from e
        except aiohttp.ClientError as e:
            logger.warning("indexer %s transport error: %s", path, e)
            raise IndexerError(path, str(e)) from e
        except asyncio.TimeoutError as e:
            logger.warning("indexer %s timed out", path)
            raise IndexerError(path, "request timed out") from e

    async def _fetch_bundle(self, path: str, body: Dict[str, Any], origin: TransactionBundle) -> TransactionBundle:
        response = await self.fetch_indexer(path, body)
        try:
            tx_data = _require_str(_require_dict(response, name="response").get("tx_data"), name="tx_data")
            bundle = TransactionBundle.from_kind_b64(tx_data)
        except ValueError as e:
            raise IndexerError(path, f"invalid tx_data: {e}") from e
        bundle.transfer_metadata(origin)
        return bundle

    async def _fetch_bool(self, path: str, body: Dict[str, Any]) -> bool:
        response = await self.fetch_indexer(path, body)
        if not isinstance(response, bool):
            raise IndexerError(path, f"expected a boolean, got {type(response).__name__}")
        return response

    # ------------------------------------------------------------------
    # Limit orders
    # ------------------------------------------------------------------

    async def create_limit_order(self, request: LimitOrderRequest) -> TransactionBundle:
        body = {
            "tx_kind": request.bundle.to_kind_b64(),
            "order": {
                "input_coin": argument_to_dict(request.input_coin),
                "input_coin_type": request.input_coin_type,
                "output_coin_type": request.output_coin_type,
                "gas_coin": argument_to_dict(request.gas_coin),
                "owner": request.owner,
                "recipient": request.recipient,
                "min_amount_out": str(request.min_amount_out),
                "expiry_timestamp_ms": request.expiry_timestamp_ms,
            },
        }
        return await self._fetch_bundle(LIMIT_CREATE_PATH, body, request.bundle)

    async def cancel_limit_order(self, wallet: Address, signature: str, bytes_b64: str) -> bool:
        return await self._fetch_bool(
            LIMIT_CANCEL_PATH,
            {"wallet_address": wallet, "signature": signature, "bytes": bytes_b64},
        )

    async def fetch_active_limit_orders(self, wallet: Address, bytes_b64: str, signature: str) -> List[LimitOrder]:
        """Active orders of ``wallet``, newest first. The signed bytes prove wallet ownership."""
        response = await self.fetch_indexer(
            LIMIT_ACTIVE_PATH,
            {"wallet_address": wallet, "bytes": bytes_b64, "signature": signature},
        )
        orders = response.get("orders") if isinstance(response, Mapping) else None
        return _parse_all(LIMIT_ACTIVE_PATH, orders, _parse_limit_order)

    async def fetch_executed_limit_orders(self, wallet: Address) -> List[LimitOrder]:
        response = await self.fetch_indexer(LIMIT_EXECUTED_PATH, {"user_address": wallet})
        orders = response.get("orders") if isinstance(response, Mapping) else None
        return _parse_all(LIMIT_EXECUTED_PATH, orders, _parse_limit_order)

    # ------------------------------------------------------------------
    # DCA orders
    # ------------------------------------------------------------------

    async def create_dca_order(self, request: DcaOrderRequest) -> TransactionBundle:
        body = {
            "tx_kind": request.bundle.to_kind_b64(),
            "order": {
                "input_coin": argument_to_dict(request.input_coin),
                "input_coin_type": request.input_coin_type,
                "output_coin_type": request.output_coin_type,
                "gas_coin": argument_to_dict(request.gas_coin),
                "owner": request.owner,
                "recipient": request.recipient,
                "frequency_ms": request.frequency_ms,
                "delay_timestamp_ms": request.delay_timestamp_ms,
                "amount_per_trade": str(request.amount_per_trade),
                "number_of_trades": request.number_of_trades,
                "max_allowable_slippage_bps": request.max_allowable_slippage_bps,
                "min_amount_out": str(request.min_amount_out),
                "max_amount_out": str(request.max_amount_out),
                "public_key": request.public_key,
            },
        }
        return await self._fetch_bundle(DCA_CREATE_PATH, body, request.bundle)

    async def close_dca_order(self, wallet: Address, order_id: ObjectId, signature: str, bytes_b64: str) -> bool:
        return await self._fetch_bool(
            DCA_CANCEL_PATH,
            {"wallet_address": wallet, "order_id": order_id, "signature": signature, "bytes": bytes_b64},
        )

    async def fetch_dca_orders(self, wallet: Address) -> DcaOrders:
        """Active and past DCA orders of ``wallet``, each newest first."""
        response = await self.fetch_indexer(DCA_ORDERS_PATH, {"wallet_address": wallet})
        if not isinstance(response, Mapping):
            raise IndexerError(DCA_ORDERS_PATH, "response must be an object")
        return DcaOrders(
            active=tuple(_parse_all(DCA_ORDERS_PATH, response.get("active"), _parse_dca_order)),
            past=tuple(_parse_all(DCA_ORDERS_PATH, response.get("past"), _parse_dca_order)),
        )
