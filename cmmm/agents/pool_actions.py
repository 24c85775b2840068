"""
Fetch-then-assemble pool transactions for a wallet.

Each call validates its inputs, gathers every coin selection it needs, and
only then assembles a fresh bundle. A failed selection (or a cancelled task)
surfaces to the caller and no bundle is returned.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..core.slippage import normalize_slippage
from ..core.transactions import PoolTransactionBuilder, pool_entry_point
from ..errors import ArityMismatch
from ..integration.coin_selection import CoinSelector, CoinSource, add_coin_with_amount
from ..integration.config import ProtocolConfig
from ..state.bundle import TransactionBundle
from ..state.coins import Address, Balance, CoinType
from ..state.pools import PoolObject

logger = logging.getLogger(__name__)


def _require_pool_coins(pool: PoolObject, coin_types: Sequence[CoinType]) -> None:
    for coin in coin_types:
        pool.weight_of(coin)


class PoolActions:
    """
    Builds trade, deposit and withdraw bundles for wallets.

    Coins are selected through ``coins`` following the deployment's
    native-coin settings (``native_coin_type``, ``use_gas_coin_for_native``).
    """

    def __init__(self, config: ProtocolConfig, coins: CoinSource):
        self.config = config
        self.selector = CoinSelector.for_config(coins, config)
        self.builder = PoolTransactionBuilder(config)

    async def fetch_build_trade_tx(
        self,
        *,
        wallet: Address,
        pool: PoolObject,
        coin_in_type: CoinType,
        coin_in_amount: Balance,
        coin_out_type: CoinType,
        expected_out: Balance,
        slippage: float,
        budget: Optional[int] = None,
    ) -> TransactionBundle:
        """
        Swap ``coin_in_amount`` of ``coin_in_type`` for ``coin_out_type``.

        Raises:
            ValueError: If either coin is not in the pool
            InvalidSlippage: If slippage is outside [0, 1)
            InsufficientBalance: If the wallet cannot cover ``coin_in_amount``
        """
        _require_pool_coins(pool, [coin_in_type, coin_out_type])
        normalize_slippage(slippage)

        selection = await self.selector.select(wallet, coin_in_type, coin_in_amount)

        bundle = TransactionBundle(sender=wallet)
        coin_in = add_coin_with_amount(bundle, selection)
        self.builder.build_trade(
            bundle,
            pool_id=pool.object_id,
            coin_in=coin_in,
            coin_in_type=coin_in_type,
            expected_out=expected_out,
            coin_out_type=coin_out_type,
            lp_type=pool.lp_type,
            slippage=slippage,
            budget=budget,
        )
        logger.info("built trade %s -> %s in pool %s for %s", coin_in_type, coin_out_type, pool.object_id, wallet)
        return bundle

    async def fetch_build_deposit_tx(
        self,
        *,
        wallet: Address,
        pool: PoolObject,
        coin_types: Sequence[CoinType],
        amounts: Sequence[Balance],
        expected_lp_ratio: int,
        slippage: float,
        budget: Optional[int] = None,
    ) -> TransactionBundle:
        """
        Deposit ``amounts`` of ``coin_types`` (co-indexed) into ``pool``.

        Raises:
            ArityMismatch: If amounts and coin types differ in length or do not cover the pool
            InvalidSlippage: If slippage is outside [0, 1)
            InsufficientBalance: If the wallet cannot cover an amount
        """
        if len(coin_types) != len(amounts):
            raise ArityMismatch(len(coin_types), len(amounts), what="amounts")
        pool_entry_point("deposit", len(coin_types), pool.coins)
        _require_pool_coins(pool, coin_types)
        normalize_slippage(slippage)

        selections = await self.selector.select_many(wallet, list(zip(coin_types, amounts)))

        bundle = TransactionBundle(sender=wallet)
        coin_args = [add_coin_with_amount(bundle, s) for s in selections]
        self.builder.build_deposit(
            bundle,
            pool_id=pool.object_id,
            coin_args=coin_args,
            coin_types=coin_types,
            expected_lp_ratio=expected_lp_ratio,
            lp_type=pool.lp_type,
            slippage=slippage,
            budget=budget,
            pool_coins=pool.coins,
        )
        logger.info("built %d-coin deposit into pool %s for %s", len(coin_types), pool.object_id, wallet)
        return bundle

    async def fetch_build_withdraw_tx(
        self,
        *,
        wallet: Address,
        pool: PoolObject,
        lp_coin_amount: Balance,
        coin_out_types: Sequence[CoinType],
        expected_amounts_out: Sequence[Balance],
        slippage: float,
        budget: Optional[int] = None,
    ) -> TransactionBundle:
        """
        Burn ``lp_coin_amount`` LP coins for the pool's coins.

        Raises:
            ArityMismatch: If expected amounts and output types differ in length or do not cover the pool
            InvalidSlippage: If slippage is outside [0, 1)
            InsufficientBalance: If the wallet holds fewer LP coins than ``lp_coin_amount``
        """
        if len(coin_out_types) != len(expected_amounts_out):
            raise ArityMismatch(len(coin_out_types), len(expected_amounts_out), what="expected amounts")
        pool_entry_point("withdraw", len(coin_out_types), pool.coins)
        _require_pool_coins(pool, coin_out_types)
        normalize_slippage(slippage)

        selection = await self.selector.select(wallet, pool.lp_type, lp_coin_amount)

        bundle = TransactionBundle(sender=wallet)
        lp_coin = add_coin_with_amount(bundle, selection)
        self.builder.build_withdraw(
            bundle,
            pool_id=pool.object_id,
            lp_coin=lp_coin,
            lp_type=pool.lp_type,
            expected_amounts_out=expected_amounts_out,
            coin_out_types=coin_out_types,
            slippage=slippage,
            budget=budget,
            pool_coins=pool.coins,
        )
        logger.info("built %d-coin withdraw from pool %s for %s", len(coin_out_types), pool.object_id, wallet)
        return bundle
