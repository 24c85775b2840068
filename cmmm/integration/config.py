"""
Protocol configuration: package and shared-object addresses, indexer endpoint,
gas budgets and coin conventions.

Configuration is immutable once built. It can be constructed directly, from a
mapping, or from a YAML file; a handful of environment variables override the
indexer settings so deployments can repoint a client without editing files:

- ``CMMM_CONFIG``: path of the YAML file used by `load_config()` when no path is given
- ``CMMM_INDEXER_URL``: indexer base URL
- ``CMMM_INDEXER_TIMEOUT_S``: indexer request timeout in seconds
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from ..errors import ConfigurationError
from ..state.coins import DEFAULT_LP_MODULE_TAG, SUI_COIN_TYPE, CoinDecimal, CoinType, ObjectId, is_lp_coin, normalize_address

logger = logging.getLogger(__name__)

DEFAULT_GAS_BUDGET = 50_000_000
DEFAULT_LP_COIN_DECIMALS = 9
DEFAULT_INDEXER_TIMEOUT_S = 10


def _env_int(name: str, default: int, *, lo: int, hi: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        v = int(raw.strip())
    except ValueError:
        return int(default)
    if v < lo:
        return int(lo)
    if v > hi:
        return int(hi)
    return int(v)


def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def _require_address(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"{name} is required")
    try:
        return normalize_address(value)
    except ValueError as e:
        raise ConfigurationError(f"{name}: {e}") from e


def _require_mapping(data: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{name} must be a mapping, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class PoolsAddresses:
    """
    Addresses of the pool protocol.

    Attributes:
        package_id: Package exposing the pool entry points
        protocol_fee_vault_id: Shared protocol fee vault object
        treasury_id: Shared treasury object
        insurance_fund_id: Shared insurance fund object
        events_package_id: Package that emits pool events (defaults to ``package_id``)
    """
    package_id: ObjectId
    protocol_fee_vault_id: ObjectId
    treasury_id: ObjectId
    insurance_fund_id: ObjectId
    events_package_id: Optional[ObjectId] = None
    interface_module: str = "interface"
    events_module: str = "events"

    def __post_init__(self) -> None:
        for name in ("package_id", "protocol_fee_vault_id", "treasury_id", "insurance_fund_id"):
            object.__setattr__(self, name, _require_address(getattr(self, name), f"pools.{name}"))
        events_pkg = self.events_package_id or self.package_id
        object.__setattr__(self, "events_package_id", _require_address(events_pkg, "pools.events_package_id"))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PoolsAddresses":
        data = _require_mapping(data, "pools")
        return cls(
            package_id=data.get("package_id"),
            protocol_fee_vault_id=data.get("protocol_fee_vault_id"),
            treasury_id=data.get("treasury_id"),
            insurance_fund_id=data.get("insurance_fund_id"),
            events_package_id=data.get("events_package_id"),
            interface_module=str(data.get("interface_module", "interface")),
            events_module=str(data.get("events_module", "events")),
        )


@dataclass(frozen=True)
class LimitAddresses:
    """Limit-order protocol: the package whose events module reports created orders."""
    package_id: ObjectId
    events_module: str = "events"

    def __post_init__(self) -> None:
        object.__setattr__(self, "package_id", _require_address(self.package_id, "limit.package_id"))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LimitAddresses":
        data = _require_mapping(data, "limit")
        return cls(package_id=data.get("package_id"), events_module=str(data.get("events_module", "events")))


@dataclass(frozen=True)
class DcaAddresses:
    """DCA protocol: the package whose events module reports order lifecycle."""
    package_id: ObjectId
    events_module: str = "events"

    def __post_init__(self) -> None:
        object.__setattr__(self, "package_id", _require_address(self.package_id, "dca.package_id"))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DcaAddresses":
        data = _require_mapping(data, "dca")
        return cls(package_id=data.get("package_id"), events_module=str(data.get("events_module", "events")))


@dataclass(frozen=True)
class IndexerConfig:
    base_url: str
    timeout_s: int = DEFAULT_INDEXER_TIMEOUT_S

    def __post_init__(self) -> None:
        if not isinstance(self.base_url, str) or not self.base_url.strip():
            raise ConfigurationError("indexer.base_url is required")
        url = self.base_url.strip().rstrip("/")
        if not url.startswith(("http://", "https://")):
            raise ConfigurationError(f"indexer.base_url must be an http(s) URL: {self.base_url!r}")
        object.__setattr__(self, "base_url", url)
        if not isinstance(self.timeout_s, int) or isinstance(self.timeout_s, bool) or self.timeout_s <= 0:
            raise ConfigurationError(f"indexer.timeout_s must be a positive int: {self.timeout_s!r}")

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "IndexerConfig":
        data = _require_mapping(data, "indexer")
        return cls(
            base_url=data.get("base_url"),
            timeout_s=int(data.get("timeout_s", DEFAULT_INDEXER_TIMEOUT_S)),
        )


@dataclass(frozen=True)
class ProtocolConfig:
    """
    Everything the SDK needs to know about a deployment.

    Attributes:
        pools: Pool protocol addresses (required)
        indexer: Indexer endpoint (required)
        limit: Limit-order protocol addresses, if the deployment has one
        dca: DCA protocol addresses, if the deployment has one
        gas_budget: Default gas budget for assembled bundles
        native_coin_type: Coin type paid as gas
        use_gas_coin_for_native: Draw native-coin inputs from the gas coin
        lp_module_tag: Module-name tag identifying LP share coins
        lp_coin_decimals: Decimals of every LP share coin
    """
    pools: PoolsAddresses
    indexer: IndexerConfig
    limit: Optional[LimitAddresses] = None
    dca: Optional[DcaAddresses] = None
    gas_budget: int = DEFAULT_GAS_BUDGET
    native_coin_type: str = SUI_COIN_TYPE
    use_gas_coin_for_native: bool = True
    lp_module_tag: str = DEFAULT_LP_MODULE_TAG
    lp_coin_decimals: CoinDecimal = DEFAULT_LP_COIN_DECIMALS

    def __post_init__(self) -> None:
        if not isinstance(self.pools, PoolsAddresses):
            raise ConfigurationError("pools addresses are required")
        if not isinstance(self.indexer, IndexerConfig):
            raise ConfigurationError("indexer config is required")
        if not isinstance(self.gas_budget, int) or isinstance(self.gas_budget, bool) or self.gas_budget <= 0:
            raise ConfigurationError(f"gas_budget must be a positive int: {self.gas_budget!r}")
        if not isinstance(self.lp_coin_decimals, int) or self.lp_coin_decimals < 0:
            raise ConfigurationError(f"lp_coin_decimals must be a non-negative int: {self.lp_coin_decimals!r}")
        if not self.lp_module_tag:
            raise ConfigurationError("lp_module_tag must be non-empty")

    def is_lp_coin(self, coin_type: CoinType) -> bool:
        """LP-coin classifier for this deployment, usable as `resolve_price(..., is_lp=...)`."""
        return is_lp_coin(coin_type, self.lp_module_tag)

    def require_limit(self) -> LimitAddresses:
        if self.limit is None:
            raise ConfigurationError("limit-order addresses are not configured")
        return self.limit

    def require_dca(self) -> DcaAddresses:
        if self.dca is None:
            raise ConfigurationError("DCA addresses are not configured")
        return self.dca

    def with_env_overrides(self) -> "ProtocolConfig":
        """Apply ``CMMM_INDEXER_URL`` / ``CMMM_INDEXER_TIMEOUT_S`` on top of this config."""
        indexer = IndexerConfig(
            base_url=_env_str("CMMM_INDEXER_URL", self.indexer.base_url),
            timeout_s=_env_int("CMMM_INDEXER_TIMEOUT_S", self.indexer.timeout_s, lo=1, hi=600),
        )
        if indexer == self.indexer:
            return self
        logger.info("indexer overridden from environment: %s (timeout %ss)", indexer.base_url, indexer.timeout_s)
        return replace(self, indexer=indexer)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ProtocolConfig":
        """
        Build a config from a plain mapping (e.g. parsed YAML).

        Raises:
            ConfigurationError: If a required section or address is missing
        """
        data = _require_mapping(data, "config")
        if "pools" not in data:
            raise ConfigurationError("config is missing the 'pools' section")
        if "indexer" not in data:
            raise ConfigurationError("config is missing the 'indexer' section")
        try:
            return cls(
                pools=PoolsAddresses.from_mapping(data["pools"]),
                indexer=IndexerConfig.from_mapping(data["indexer"]),
                limit=LimitAddresses.from_mapping(data["limit"]) if data.get("limit") else None,
                dca=DcaAddresses.from_mapping(data["dca"]) if data.get("dca") else None,
                gas_budget=int(data.get("gas_budget", DEFAULT_GAS_BUDGET)),
                native_coin_type=str(data.get("native_coin_type", SUI_COIN_TYPE)),
                use_gas_coin_for_native=bool(data.get("use_gas_coin_for_native", True)),
                lp_module_tag=str(data.get("lp_module_tag", DEFAULT_LP_MODULE_TAG)),
                lp_coin_decimals=int(data.get("lp_coin_decimals", DEFAULT_LP_COIN_DECIMALS)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid config: {e}") from e


def load_config(path: Optional[Union[str, Path]] = None, *, env_overrides: bool = True) -> ProtocolConfig:
    """
    Load a `ProtocolConfig` from YAML.

    When ``path`` is omitted, ``CMMM_CONFIG`` names the file.

    Raises:
        ConfigurationError: If no file is given, it cannot be read, or its content is invalid
    """
    if path is None:
        path = _env_str("CMMM_CONFIG", "")
        if not path:
            raise ConfigurationError("no config path given and CMMM_CONFIG is not set")
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"cannot read config {p}: {e}") from e
    try:
        obj = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"invalid YAML in {p}: {e}") from e
    config = ProtocolConfig.from_mapping(obj)
    logger.debug("loaded protocol config from %s", p)
    return config.with_env_overrides() if env_overrides else config
