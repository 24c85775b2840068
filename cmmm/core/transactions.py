"""
Transaction assembly for pool trades, deposits and withdrawals.

The builder only appends commands to a caller-owned `TransactionBundle`; it
never touches the network and never mutates pool state. Every input is
validated before the first command is appended, so a rejected call leaves the
bundle exactly as it was.

Entry points live in the pool package's interface module:

    swap_exact_in               type args [lp, coin_in, coin_out]
    deposit_<N>_coins           type args [lp, coin_1 .. coin_N]
    withdraw_<N>_coins          type args [lp, coin_1 .. coin_N]

Value arguments always start with the pool and the three shared protocol
objects (fee vault, treasury, insurance fund), and always end with the
normalized slippage.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

from ..errors import ArityMismatch
from ..state.bundle import Argument, TransactionBundle
from ..state.coins import Balance, CoinType, ObjectId
from ..state.pools import MAX_POOL_SIZE, MIN_POOL_SIZE
from .slippage import normalize_slippage

if TYPE_CHECKING:
    from ..integration.config import ProtocolConfig


POOL_ACTIONS = ("deposit", "withdraw")
SWAP_ENTRY_POINT = "swap_exact_in"


def pool_entry_point(action: str, pool_size: int, pool_coins: Optional[Sequence[CoinType]] = None) -> str:
    """
    Name of the N-ary pool entry point for ``action``.

    Args:
        action: "deposit" or "withdraw"
        pool_size: Number of coins the call moves
        pool_coins: Live pool coin list; when given, ``pool_size`` must match it

    Raises:
        ValueError: If the action is unknown or the size is outside the supported range
        ArityMismatch: If ``pool_size`` disagrees with the live pool
    """
    if action not in POOL_ACTIONS:
        raise ValueError(f"unknown pool action: {action!r}")
    if not isinstance(pool_size, int) or isinstance(pool_size, bool):
        raise TypeError("pool_size must be an int")
    if pool_coins is not None and len(pool_coins) != pool_size:
        raise ArityMismatch(len(pool_coins), pool_size, what="pool coins")
    if not (MIN_POOL_SIZE <= pool_size <= MAX_POOL_SIZE):
        raise ValueError(
            f"pool size {pool_size} outside supported range [{MIN_POOL_SIZE}, {MAX_POOL_SIZE}]"
        )
    return f"{action}_{pool_size}_coins"


def _require_amount(value: Balance, name: str) -> Balance:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"{name} must be a non-negative int: {value!r}")
    return value


class PoolTransactionBuilder:
    """Appends pool entry-point calls to transaction bundles."""

    def __init__(self, config: "ProtocolConfig"):
        self.config = config

    def _gas_budget(self, budget: Optional[int]) -> int:
        gas = self.config.gas_budget if budget is None else budget
        if not isinstance(gas, int) or isinstance(gas, bool) or gas <= 0:
            raise ValueError(f"gas budget must be a positive int: {gas!r}")
        return gas

    def _protocol_args(self, pool_id: ObjectId) -> List[Argument]:
        pools = self.config.pools
        return [
            TransactionBundle.object(pool_id),
            TransactionBundle.object(pools.protocol_fee_vault_id),
            TransactionBundle.object(pools.treasury_id),
            TransactionBundle.object(pools.insurance_fund_id),
        ]

    def _call(self, bundle: TransactionBundle, function: str, type_args: Sequence[str], args: Sequence[Argument]) -> None:
        bundle.move_call(
            package=self.config.pools.package_id,
            module=self.config.pools.interface_module,
            function=function,
            type_arguments=type_args,
            arguments=args,
        )

    def build_trade(
        self,
        bundle: TransactionBundle,
        *,
        pool_id: ObjectId,
        coin_in: Argument,
        coin_in_type: CoinType,
        expected_out: Balance,
        coin_out_type: CoinType,
        lp_type: CoinType,
        slippage: float,
        budget: Optional[int] = None,
    ) -> TransactionBundle:
        """
        Append an exact-input swap.

        Raises:
            InvalidSlippage: If slippage is outside [0, 1)
        """
        encoded = normalize_slippage(slippage)
        _require_amount(expected_out, "expected_out")
        gas = self._gas_budget(budget)

        args = self._protocol_args(pool_id)
        args.append(coin_in)
        args.append(TransactionBundle.pure(expected_out))
        args.append(TransactionBundle.pure(encoded))
        self._call(bundle, SWAP_ENTRY_POINT, [lp_type, coin_in_type, coin_out_type], args)
        bundle.set_gas_budget(gas)
        return bundle

    def build_deposit(
        self,
        bundle: TransactionBundle,
        *,
        pool_id: ObjectId,
        coin_args: Sequence[Argument],
        coin_types: Sequence[CoinType],
        expected_lp_ratio: int,
        lp_type: CoinType,
        slippage: float,
        budget: Optional[int] = None,
        pool_coins: Optional[Sequence[CoinType]] = None,
    ) -> TransactionBundle:
        """
        Append a multi-coin deposit.

        Raises:
            ArityMismatch: If coin arguments and coin types differ in length,
                or their count disagrees with ``pool_coins``
            InvalidSlippage: If slippage is outside [0, 1)
        """
        if len(coin_args) != len(coin_types):
            raise ArityMismatch(len(coin_types), len(coin_args))
        function = pool_entry_point("deposit", len(coin_types), pool_coins)
        encoded = normalize_slippage(slippage)
        _require_amount(expected_lp_ratio, "expected_lp_ratio")
        gas = self._gas_budget(budget)

        args = self._protocol_args(pool_id)
        args.extend(coin_args)
        args.append(TransactionBundle.pure(expected_lp_ratio))
        args.append(TransactionBundle.pure(encoded))
        self._call(bundle, function, [lp_type, *coin_types], args)
        bundle.set_gas_budget(gas)
        return bundle

    def build_withdraw(
        self,
        bundle: TransactionBundle,
        *,
        pool_id: ObjectId,
        lp_coin: Argument,
        lp_type: CoinType,
        expected_amounts_out: Sequence[Balance],
        coin_out_types: Sequence[CoinType],
        slippage: float,
        budget: Optional[int] = None,
        pool_coins: Optional[Sequence[CoinType]] = None,
    ) -> TransactionBundle:
        """
        Append a multi-coin withdrawal burning ``lp_coin``.

        Raises:
            ArityMismatch: If expected amounts and output types differ in length
            InvalidSlippage: If slippage is outside [0, 1)
        """
        if len(expected_amounts_out) != len(coin_out_types):
            raise ArityMismatch(len(coin_out_types), len(expected_amounts_out), what="expected amounts")
        function = pool_entry_point("withdraw", len(coin_out_types), pool_coins)
        encoded = normalize_slippage(slippage)
        amounts = tuple(_require_amount(a, "expected amount out") for a in expected_amounts_out)
        gas = self._gas_budget(budget)

        args = self._protocol_args(pool_id)
        args.append(lp_coin)
        args.append(TransactionBundle.pure(amounts))
        args.append(TransactionBundle.pure(encoded))
        self._call(bundle, function, [lp_type, *coin_out_types], args)
        bundle.set_gas_budget(gas)
        return bundle
