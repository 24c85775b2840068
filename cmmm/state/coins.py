"""
Coin identifiers, amounts and metadata.

Coin types follow the Move convention ``<address>::<module>::<Name>``,
optionally followed by generic arguments (``...::Name<T>``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


# Type aliases
CoinType = str  # "<address>::<module>::<Name>"
Balance = int  # Non-negative integer in the coin's smallest unit (arbitrary precision)
CoinDecimal = int  # Power-of-ten scale of a coin type
ObjectId = str  # 32-byte hex object identifier (0x...)
Address = str  # Account address (0x...)

SUI_COIN_TYPE = "0x2::sui::SUI"

# Pools mint LP coins from a module whose name carries this tag.
DEFAULT_LP_MODULE_TAG = "af_lp"


def normalize_address(address: str) -> str:
    """Lower-case an address and make sure it carries the 0x prefix."""
    if not isinstance(address, str) or not address.strip():
        raise ValueError("address must be a non-empty string")
    a = address.strip().lower()
    if not a.startswith("0x"):
        a = "0x" + a
    return a


def split_coin_type(coin_type: CoinType) -> Tuple[str, str, str]:
    """
    Split a coin type into (address, module, name).

    Generic arguments are dropped from the name.

    Raises:
        ValueError: If the coin type is not of the form addr::module::Name
    """
    if not isinstance(coin_type, str):
        raise ValueError(f"coin type must be a string, got {type(coin_type)}")
    base = coin_type.split("<", 1)[0].strip()
    parts = base.split("::")
    if len(parts) != 3 or not all(parts):
        raise ValueError(f"invalid coin type: {coin_type!r}")
    address, module, name = parts
    return normalize_address(address), module, name


def normalize_coin_type(coin_type: CoinType) -> CoinType:
    """Canonical form of a coin type: 0x-prefixed lower-case address, generics kept verbatim."""
    address, module, name = split_coin_type(coin_type)
    generics = ""
    if "<" in coin_type:
        generics = "<" + coin_type.split("<", 1)[1]
    return f"{address}::{module}::{name}{generics}"


def coin_symbol(coin_type: CoinType) -> str:
    """Trailing struct name of a coin type, e.g. ``SUI`` for ``0x2::sui::SUI``."""
    return split_coin_type(coin_type)[2]


def is_lp_coin(coin_type: CoinType, lp_module_tag: str = DEFAULT_LP_MODULE_TAG) -> bool:
    """
    Classify a coin type as a liquidity-pool share coin.

    LP coins are published from a module whose name contains ``lp_module_tag``.
    Unparseable coin types are never LP coins.
    """
    try:
        _, module, _ = split_coin_type(coin_type)
    except ValueError:
        return False
    return lp_module_tag.lower() in module.lower()


@dataclass(frozen=True)
class CoinMetadata:
    """Decimals and display data for a coin type."""

    coin_type: CoinType
    decimals: CoinDecimal
    symbol: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.decimals, int) or isinstance(self.decimals, bool):
            raise TypeError("decimals must be an int")
        if self.decimals < 0:
            raise ValueError(f"decimals must be non-negative: {self.decimals}")


@dataclass(frozen=True)
class CoinObject:
    """A coin object owned by a wallet: an object id holding a balance of one coin type."""

    object_id: ObjectId
    coin_type: CoinType
    balance: Balance

    def __post_init__(self) -> None:
        if not isinstance(self.object_id, str) or not self.object_id:
            raise ValueError("object_id must be a non-empty string")
        if not isinstance(self.balance, int) or isinstance(self.balance, bool) or self.balance < 0:
            raise ValueError(f"balance must be a non-negative int: {self.balance!r}")
