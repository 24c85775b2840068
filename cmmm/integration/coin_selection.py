"""
Coin selection: finding wallet coins that cover an amount, and turning them
into a single exact-amount coin inside a bundle.

Wallets hold a coin type as many separate coin objects. To pay ``amount`` the
selector picks objects (largest first) until their sum covers it; assembly then
merges the picked objects into the first one and splits ``amount`` off it.
The platform's native coin can instead be split off the gas coin.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from ..errors import InsufficientBalance
from ..state.bundle import Argument, TransactionBundle
from ..state.coins import SUI_COIN_TYPE, Address, Balance, CoinObject, CoinType
from .config import ProtocolConfig

logger = logging.getLogger(__name__)


class CoinSource(Protocol):
    """Anything that can list the coin objects a wallet owns for one coin type."""

    async def fetch_coins(self, wallet: Address, coin_type: CoinType) -> List[CoinObject]:
        ...


@dataclass(frozen=True)
class CoinSelection:
    """
    Coins chosen to pay ``amount`` of ``coin_type``.

    When ``use_gas_coin`` is set the amount is split off the gas coin and
    ``coins`` is empty.
    """
    coin_type: CoinType
    amount: Balance
    coins: Tuple[CoinObject, ...] = ()
    use_gas_coin: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "coins", tuple(self.coins))
        if not isinstance(self.amount, int) or isinstance(self.amount, bool) or self.amount < 0:
            raise ValueError(f"amount must be a non-negative int: {self.amount!r}")
        if not self.use_gas_coin and not self.coins:
            raise ValueError("selection needs at least one coin or the gas coin")

    @property
    def total(self) -> Balance:
        return sum(c.balance for c in self.coins)


class CoinSelector:
    """Picks wallet coins through a `CoinSource`."""

    def __init__(
        self,
        source: CoinSource,
        *,
        native_coin_type: CoinType = SUI_COIN_TYPE,
        use_gas_coin_for_native: bool = True,
    ):
        self.source = source
        self.native_coin_type = native_coin_type
        self.use_gas_coin_for_native = use_gas_coin_for_native

    @classmethod
    def for_config(cls, source: CoinSource, config: ProtocolConfig) -> "CoinSelector":
        """Selector following a deployment's native-coin settings."""
        return cls(
            source,
            native_coin_type=config.native_coin_type,
            use_gas_coin_for_native=config.use_gas_coin_for_native,
        )

    async def select(self, wallet: Address, coin_type: CoinType, amount: Balance) -> CoinSelection:
        """
        Select coins of ``coin_type`` covering ``amount``.

        Raises:
            InsufficientBalance: If the wallet's coins of this type sum to less than ``amount``
        """
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise ValueError(f"amount must be a non-negative int: {amount!r}")
        if coin_type == self.native_coin_type and self.use_gas_coin_for_native:
            return CoinSelection(coin_type=coin_type, amount=amount, use_gas_coin=True)

        coins = [c for c in await self.source.fetch_coins(wallet, coin_type) if c.coin_type == coin_type]
        coins.sort(key=lambda c: (-c.balance, c.object_id))

        picked: List[CoinObject] = []
        total = 0
        for coin in coins:
            if picked and total >= amount:
                break
            picked.append(coin)
            total += coin.balance
        if not picked or total < amount:
            raise InsufficientBalance(coin_type, amount, sum(c.balance for c in coins))

        logger.debug("selected %d coin(s) of %s covering %d for %s", len(picked), coin_type, amount, wallet)
        return CoinSelection(coin_type=coin_type, amount=amount, coins=tuple(picked))

    async def select_many(
        self, wallet: Address, requests: Sequence[Tuple[CoinType, Balance]]
    ) -> List[CoinSelection]:
        """
        Select coins for several (coin type, amount) pairs concurrently.

        A coin type may appear only once, so the same coin objects are never
        handed out twice. The first failure cancels the remaining selections,
        waits for them to finish, and then propagates; partial results are
        discarded.
        """
        seen = set()
        for coin_type, _ in requests:
            if coin_type in seen:
                raise ValueError(f"duplicate coin type in selection requests: {coin_type}")
            seen.add(coin_type)
        tasks = [asyncio.ensure_future(self.select(wallet, t, a)) for t, a in requests]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise


def add_coins_with_amounts(
    bundle: TransactionBundle, selection: CoinSelection, amounts: Sequence[Balance]
) -> List[Argument]:
    """
    Append the commands splitting one coin per entry of ``amounts`` off the selection.

    ``amounts`` must sum to at most ``selection.amount``.

    Returns:
        References to the split-off coins, in ``amounts`` order
    """
    if not amounts:
        raise ValueError("at least one amount is required")
    if sum(amounts) > selection.amount:
        raise ValueError(f"amounts sum to {sum(amounts)}, more than the selected {selection.amount}")
    pures = [TransactionBundle.pure(a) for a in amounts]
    if selection.use_gas_coin:
        return list(bundle.split_coins(bundle.gas, pures))

    primary = TransactionBundle.object(selection.coins[0].object_id)
    rest = [TransactionBundle.object(c.object_id) for c in selection.coins[1:]]
    if rest:
        bundle.merge_coins(primary, rest)
    return list(bundle.split_coins(primary, pures))


def add_coin_with_amount(bundle: TransactionBundle, selection: CoinSelection) -> Argument:
    """
    Append the commands producing one coin worth exactly ``selection.amount``.

    Returns:
        Reference to the split-off coin
    """
    return add_coins_with_amounts(bundle, selection, [selection.amount])[0]


class StaticCoinSource:
    """In-memory `CoinSource` over a fixed wallet snapshot."""

    def __init__(self, coins_by_wallet: Optional[Dict[Address, Sequence[CoinObject]]] = None):
        self._coins: Dict[Address, List[CoinObject]] = {
            wallet: list(coins) for wallet, coins in (coins_by_wallet or {}).items()
        }

    async def fetch_coins(self, wallet: Address, coin_type: CoinType) -> List[CoinObject]:
        return [c for c in self._coins.get(wallet, []) if c.coin_type == coin_type]
