"""Exception types for the CMMM pool SDK.

Input contract violations subclass the builtin a caller would naturally
catch (``ValueError`` / ``LookupError``). Failures coming from external
collaborators (coin selection, indexer) are surfaced unchanged and never
retried here.
"""

from __future__ import annotations

from typing import Optional


class CmmmError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(CmmmError):
    """Raised when required addresses or metadata are missing at construction."""


class ArityMismatch(CmmmError, ValueError):
    """Raised when coin argument lists do not line up with each other or the pool size."""

    def __init__(self, expected: int, actual: int, *, what: str = "coins") -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"invalid {what} size: {actual} != {expected}")


class PriceNotFound(CmmmError, LookupError):
    """Raised when a coin is absent from the price table matching its classification."""

    def __init__(self, coin_type: str) -> None:
        self.coin_type = coin_type
        super().__init__(f"no price for coin type {coin_type!r}")


class MissingMetadata(CmmmError, LookupError):
    """Raised when decimals for a coin in scope were not supplied."""

    def __init__(self, coin_type: str) -> None:
        self.coin_type = coin_type
        super().__init__(f"no decimals for coin type {coin_type!r}")


class InvalidSlippage(CmmmError, ValueError):
    """Raised for slippage values outside ``[0, 1)``."""

    def __init__(self, slippage: object) -> None:
        self.slippage = slippage
        super().__init__(f"slippage must be in [0, 1): {slippage!r}")


class InsufficientBalance(CmmmError):
    """Raised by coin selection when a wallet cannot cover the requested amount."""

    def __init__(self, coin_type: str, requested: int, available: int) -> None:
        self.coin_type = coin_type
        self.requested = requested
        self.available = available
        super().__init__(
            f"insufficient balance of {coin_type}: requested {requested}, available {available}"
        )


class IndexerError(CmmmError):
    """Raised when an indexer request fails or returns an unusable body."""

    def __init__(self, path: str, message: str, *, status: Optional[int] = None) -> None:
        self.path = path
        self.status = status
        prefix = f"indexer {path}" if status is None else f"indexer {path} [{status}]"
        super().__init__(f"{prefix}: {message}")


class EventParseError(CmmmError, ValueError):
    """Raised when a recognized event carries a malformed payload."""


class BundleError(CmmmError, ValueError):
    """Raised when a transaction bundle would reference a command result that does not exist yet."""
