# [TESTER] v1

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import List, Optional

import pytest

from cmmm.agents.orders import ORDER_GAS_AMOUNT, U64_MAX, OrderActions
from cmmm.errors import ConfigurationError, InsufficientBalance, InvalidSlippage
from cmmm.integration.coin_selection import StaticCoinSource
from cmmm.integration.config import DcaAddresses, IndexerConfig, LimitAddresses, PoolsAddresses, ProtocolConfig
from cmmm.integration.indexer import DcaOrderRequest, LimitOrderRequest
from cmmm.state.bundle import GasCoin, NestedResult, ObjectArg, PureArg, SplitCoins, TransactionBundle
from cmmm.state.coins import SUI_COIN_TYPE, CoinObject

WALLET = "0x" + "33" * 32
OTHER = "0x" + "44" * 32
USDC = "0x5d4b::coin::COIN"
SUI = SUI_COIN_TYPE


class FakeIndexer:
    """Echoes the caller's bundle back and records the request."""

    def __init__(self) -> None:
        self.requests: List[object] = []

    async def create_limit_order(self, request: LimitOrderRequest) -> TransactionBundle:
        self.requests.append(request)
        return request.bundle

    async def create_dca_order(self, request: DcaOrderRequest) -> TransactionBundle:
        self.requests.append(request)
        return request.bundle


def _config(*, orders: bool = True) -> ProtocolConfig:
    return ProtocolConfig(
        pools=PoolsAddresses(
            package_id="0xaa",
            protocol_fee_vault_id="0xb1",
            treasury_id="0xb2",
            insurance_fund_id="0xb3",
        ),
        indexer=IndexerConfig("https://indexer.example"),
        limit=LimitAddresses(package_id="0xc1") if orders else None,
        dca=DcaAddresses(package_id="0xd1") if orders else None,
    )


def _actions(config: Optional[ProtocolConfig] = None, coins: Optional[List[CoinObject]] = None) -> tuple:
    config = config or _config()
    source = StaticCoinSource({WALLET: coins or [CoinObject("0xc1", USDC, 10_000_000)]})
    indexer = FakeIndexer()
    return OrderActions(config, source, indexer), indexer


def test_limit_order_selects_gas_and_input() -> None:
    actions, indexer = _actions()
    tx = asyncio.run(
        actions.fetch_build_create_limit_order_tx(
            wallet=WALLET,
            allocate_coin_type=USDC,
            allocate_coin_amount=1_000_000,
            buy_coin_type=SUI,
            expected_amount_out=2000,
            slippage=0.005,
            expiry_timestamp_ms=1_800_000_000_000,
        )
    )

    (request,) = indexer.requests
    assert tx is request.bundle
    assert tx.sender == WALLET
    assert tx.commands == (
        SplitCoins(coin=GasCoin(), amounts=(PureArg(ORDER_GAS_AMOUNT),)),
        SplitCoins(coin=ObjectArg("0xc1"), amounts=(PureArg(1_000_000),)),
    )
    assert request.gas_coin == NestedResult(0, 0)
    assert request.input_coin == NestedResult(1, 0)
    assert request.min_amount_out == 1990
    assert request.recipient == WALLET


def test_limit_order_native_input_is_split_once() -> None:
    actions, indexer = _actions()
    tx = asyncio.run(
        actions.fetch_build_create_limit_order_tx(
            wallet=WALLET,
            allocate_coin_type=SUI,
            allocate_coin_amount=5_000,
            buy_coin_type=USDC,
            expected_amount_out=100,
            slippage=0.0,
            expiry_timestamp_ms=1,
            recipient=OTHER,
            gas_amount=7,
        )
    )

    assert tx.commands == (SplitCoins(coin=GasCoin(), amounts=(PureArg(7), PureArg(5_000))),)
    request = indexer.requests[0]
    assert request.gas_coin == NestedResult(0, 0)
    assert request.input_coin == NestedResult(0, 1)
    assert request.recipient == OTHER
    assert request.min_amount_out == 100


def test_limit_order_requires_configured_protocol() -> None:
    actions, indexer = _actions(_config(orders=False))
    with pytest.raises(ConfigurationError, match="limit"):
        asyncio.run(
            actions.fetch_build_create_limit_order_tx(
                wallet=WALLET,
                allocate_coin_type=USDC,
                allocate_coin_amount=1,
                buy_coin_type=SUI,
                expected_amount_out=1,
                slippage=0.01,
                expiry_timestamp_ms=1,
            )
        )
    assert indexer.requests == []


def test_limit_order_insufficient_balance_never_reaches_indexer() -> None:
    actions, indexer = _actions()
    with pytest.raises(InsufficientBalance):
        asyncio.run(
            actions.fetch_build_create_limit_order_tx(
                wallet=WALLET,
                allocate_coin_type=USDC,
                allocate_coin_amount=10_000_001,
                buy_coin_type=SUI,
                expected_amount_out=1,
                slippage=0.01,
                expiry_timestamp_ms=1,
            )
        )
    assert indexer.requests == []


def test_dca_order_request() -> None:
    actions, indexer = _actions()
    asyncio.run(
        actions.fetch_build_create_dca_order_tx(
            wallet=WALLET,
            allocate_coin_type=USDC,
            allocate_coin_amount=1_000,
            buy_coin_type=SUI,
            frequency_ms=3_600_000,
            trades_amount=3,
            max_slippage=0.01,
            delay_time_ms=60_000,
        )
    )

    (request,) = indexer.requests
    assert isinstance(request, DcaOrderRequest)
    assert request.amount_per_trade == 333
    assert request.number_of_trades == 3
    assert request.max_allowable_slippage_bps == 100
    assert request.delay_timestamp_ms == 60_000
    assert request.min_amount_out == 0
    assert request.max_amount_out == U64_MAX


def test_dca_order_validation() -> None:
    actions, indexer = _actions()

    def build(**overrides):
        kwargs = dict(
            wallet=WALLET,
            allocate_coin_type=USDC,
            allocate_coin_amount=1_000,
            buy_coin_type=SUI,
            frequency_ms=1,
            trades_amount=3,
            max_slippage=0.01,
        )
        kwargs.update(overrides)
        return asyncio.run(actions.fetch_build_create_dca_order_tx(**kwargs))

    with pytest.raises(ValueError, match="too small"):
        build(allocate_coin_amount=2)
    with pytest.raises(ValueError, match="trades_amount"):
        build(trades_amount=0)
    with pytest.raises(ValueError, match="exceeds max_amount_out"):
        build(min_amount_out=10, max_amount_out=5)
    with pytest.raises(InvalidSlippage):
        build(max_slippage=-0.1)
    assert indexer.requests == []


def test_dca_order_requires_configured_protocol() -> None:
    actions, _ = _actions(_config(orders=False))
    with pytest.raises(ConfigurationError, match="DCA"):
        asyncio.run(
            actions.fetch_build_create_dca_order_tx(
                wallet=WALLET,
                allocate_coin_type=USDC,
                allocate_coin_amount=1_000,
                buy_coin_type=SUI,
                frequency_ms=1,
                trades_amount=1,
                max_slippage=0.01,
            )
        )


def test_limit_order_gas_from_wallet_when_gas_coin_disabled() -> None:
    config = replace(_config(), use_gas_coin_for_native=False)
    coins = [CoinObject("0xc1", USDC, 10_000_000), CoinObject("0xs1", SUI, 1_000_000_000)]
    actions, indexer = _actions(config, coins)
    tx = asyncio.run(
        actions.fetch_build_create_limit_order_tx(
            wallet=WALLET,
            allocate_coin_type=USDC,
            allocate_coin_amount=1_000_000,
            buy_coin_type=SUI,
            expected_amount_out=2000,
            slippage=0.005,
            expiry_timestamp_ms=1_800_000_000_000,
        )
    )

    assert tx.commands[0] == SplitCoins(coin=ObjectArg("0xs1"), amounts=(PureArg(ORDER_GAS_AMOUNT),))
    assert all(c.coin != GasCoin() for c in tx.commands)
    assert indexer.requests[0].gas_coin == NestedResult(0, 0)
