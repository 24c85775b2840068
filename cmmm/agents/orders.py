"""
Limit and DCA order transactions.

Order creation needs two coins in the bundle: the allocated input and a gas
coin that pays the keeper executing the order. Both are selected up front,
split into the bundle, and the bundle is then sent to the indexer, which
returns the final transaction kind.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..core.slippage import min_amount_after_slippage, slippage_to_bps
from ..integration.coin_selection import CoinSelector, CoinSource, add_coin_with_amount, add_coins_with_amounts
from ..integration.config import ProtocolConfig
from ..integration.indexer import DcaOrderRequest, IndexerClient, LimitOrderRequest
from ..state.bundle import Argument, TransactionBundle
from ..state.coins import Address, Balance, CoinType

logger = logging.getLogger(__name__)

# Native-coin amount set aside for the keeper that executes an order.
ORDER_GAS_AMOUNT = 250_000_000

U64_MAX = 2**64 - 1


def _require_positive(value: int, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValueError(f"{name} must be a positive int: {value!r}")
    return value


class OrderActions:
    """Builds limit and DCA order bundles through the indexer."""

    def __init__(self, config: ProtocolConfig, coins: CoinSource, indexer: IndexerClient):
        self.config = config
        self.selector = CoinSelector.for_config(coins, config)
        self.indexer = indexer

    async def _gas_and_input(
        self, wallet: Address, input_type: CoinType, input_amount: Balance, gas_amount: Balance
    ) -> Tuple[TransactionBundle, Argument, Argument]:
        native = self.config.native_coin_type
        bundle = TransactionBundle(sender=wallet)
        if input_type == native:
            # One selection, two splits: never merge the same coins twice.
            selection = await self.selector.select(wallet, native, gas_amount + input_amount)
            gas_coin, input_coin = add_coins_with_amounts(bundle, selection, [gas_amount, input_amount])
            return bundle, gas_coin, input_coin
        gas_sel, input_sel = await self.selector.select_many(
            wallet, [(native, gas_amount), (input_type, input_amount)]
        )
        gas_coin = add_coin_with_amount(bundle, gas_sel)
        input_coin = add_coin_with_amount(bundle, input_sel)
        return bundle, gas_coin, input_coin

    async def fetch_build_create_limit_order_tx(
        self,
        *,
        wallet: Address,
        allocate_coin_type: CoinType,
        allocate_coin_amount: Balance,
        buy_coin_type: CoinType,
        expected_amount_out: Balance,
        slippage: float,
        expiry_timestamp_ms: int,
        recipient: Optional[Address] = None,
        gas_amount: Balance = ORDER_GAS_AMOUNT,
    ) -> TransactionBundle:
        """
        Create a limit order selling ``allocate_coin_amount`` for at least
        ``expected_amount_out * (1 - slippage)`` of ``buy_coin_type``.

        Raises:
            ConfigurationError: If the deployment has no limit-order protocol
            InvalidSlippage: If slippage is outside [0, 1)
            InsufficientBalance: If the wallet cannot cover the input or the gas coin
            IndexerError: If the indexer rejects the order
        """
        self.config.require_limit()
        _require_positive(allocate_coin_amount, "allocate_coin_amount")
        _require_positive(expiry_timestamp_ms, "expiry_timestamp_ms")
        min_out = min_amount_after_slippage(expected_amount_out, slippage)

        bundle, gas_coin, input_coin = await self._gas_and_input(
            wallet, allocate_coin_type, allocate_coin_amount, gas_amount
        )
        request = LimitOrderRequest(
            bundle=bundle,
            input_coin=input_coin,
            input_coin_type=allocate_coin_type,
            output_coin_type=buy_coin_type,
            gas_coin=gas_coin,
            owner=wallet,
            recipient=recipient or wallet,
            min_amount_out=min_out,
            expiry_timestamp_ms=expiry_timestamp_ms,
        )
        tx = await self.indexer.create_limit_order(request)
        logger.info("created limit order %s -> %s for %s", allocate_coin_type, buy_coin_type, wallet)
        return tx

    async def fetch_build_create_dca_order_tx(
        self,
        *,
        wallet: Address,
        allocate_coin_type: CoinType,
        allocate_coin_amount: Balance,
        buy_coin_type: CoinType,
        frequency_ms: int,
        trades_amount: int,
        max_slippage: float,
        delay_time_ms: int = 0,
        min_amount_out: Balance = 0,
        max_amount_out: Balance = U64_MAX,
        recipient: Optional[Address] = None,
        public_key: str = "",
        gas_amount: Balance = ORDER_GAS_AMOUNT,
    ) -> TransactionBundle:
        """
        Create a DCA order spending ``allocate_coin_amount`` over ``trades_amount``
        equal trades, one every ``frequency_ms``.

        Raises:
            ConfigurationError: If the deployment has no DCA protocol
            ValueError: If the allocation is too small for the number of trades
            InvalidSlippage: If max_slippage is outside [0, 1)
            InsufficientBalance: If the wallet cannot cover the input or the gas coin
            IndexerError: If the indexer rejects the order
        """
        self.config.require_dca()
        _require_positive(frequency_ms, "frequency_ms")
        _require_positive(trades_amount, "trades_amount")
        _require_positive(allocate_coin_amount, "allocate_coin_amount")
        if delay_time_ms < 0:
            raise ValueError(f"delay_time_ms must be non-negative: {delay_time_ms}")
        if min_amount_out > max_amount_out:
            raise ValueError(f"min_amount_out {min_amount_out} exceeds max_amount_out {max_amount_out}")
        amount_per_trade = allocate_coin_amount // trades_amount
        if amount_per_trade == 0:
            raise ValueError(f"allocation {allocate_coin_amount} too small for {trades_amount} trades")
        bps = slippage_to_bps(max_slippage)

        bundle, gas_coin, input_coin = await self._gas_and_input(
            wallet, allocate_coin_type, allocate_coin_amount, gas_amount
        )
        request = DcaOrderRequest(
            bundle=bundle,
            input_coin=input_coin,
            input_coin_type=allocate_coin_type,
            output_coin_type=buy_coin_type,
            gas_coin=gas_coin,
            owner=wallet,
            recipient=recipient or wallet,
            frequency_ms=frequency_ms,
            delay_timestamp_ms=delay_time_ms,
            amount_per_trade=amount_per_trade,
            number_of_trades=trades_amount,
            max_allowable_slippage_bps=bps,
            min_amount_out=min_amount_out,
            max_amount_out=max_amount_out,
            public_key=public_key,
        )
        tx = await self.indexer.create_dca_order(request)
        logger.info("created DCA order %s -> %s (%d trades) for %s", allocate_coin_type, buy_coin_type, trades_amount, wallet)
        return tx
