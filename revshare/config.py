"""Network configuration consumed by the upgrade planner.

Predeployed proxy slots and gas budgets differ between networks, so they are
injected through :class:`NetworkConfig` instead of being compiled into the
planner. The defaults match the OP-stack predeploy layout.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from eth_utils import to_checksum_address

from .artifacts import ArtifactName
from .errors import ConfigurationError

_LOG = logging.getLogger(__name__)

MAX_UINT64 = (1 << 64) - 1
DEFAULT_SALT_NAMESPACE = "RevShare"
CONFIG_ENV = "REVSHARE_NETWORK_CONFIG"


def _normalize_address(value: object, field_name: str) -> str:
    if not isinstance(value, str) or not value.startswith("0x") or len(value) != 42:
        raise ConfigurationError(f"{field_name} must be a 0x-prefixed 20-byte address")
    try:
        return to_checksum_address(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{field_name} is not valid hex: {value}") from exc


@dataclass(frozen=True)
class VaultSlot:
    """One of the four predeployed fee vault proxies on every domain."""

    artifact: ArtifactName
    proxy: str


@dataclass
class GasBudgets:
    """Fixed L2 gas budgets attached to each emitted call."""

    withdrawer_deploy: int = 1_000_000
    calculator_deploy: int = 1_000_000
    fee_splitter_deploy: int = 2_500_000
    fee_vault_deploy: int = 1_500_000
    upgrade: int = 200_000
    setter: int = 75_000

    def __post_init__(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ConfigurationError(f"gas.{item.name} must be a positive integer")
            if value > MAX_UINT64:
                raise ConfigurationError(f"gas.{item.name} must fit in uint64")

    def deploy_budget(self, artifact: ArtifactName) -> int:
        if artifact is ArtifactName.L1_WITHDRAWER:
            return self.withdrawer_deploy
        if artifact is ArtifactName.REVENUE_CALCULATOR:
            return self.calculator_deploy
        if artifact is ArtifactName.FEE_SPLITTER:
            return self.fee_splitter_deploy
        return self.fee_vault_deploy

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "GasBudgets":
        aliases = {
            "withdrawerDeploy": "withdrawer_deploy",
            "calculatorDeploy": "calculator_deploy",
            "feeSplitterDeploy": "fee_splitter_deploy",
            "feeVaultDeploy": "fee_vault_deploy",
        }
        known = {item.name for item in fields(cls)}
        kwargs: Dict[str, int] = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name not in known:
                raise ConfigurationError(f"unknown gas budget: {key}")
            kwargs[name] = int(value)
        return cls(**kwargs)


@dataclass
class NetworkConfig:
    """Predeploy addresses and gas budgets for one network family."""

    create2_deployer: str = "0x13b0D85CcB8bf860b6b79AF3029fCA081AE9beF2"
    proxy_admin: str = "0x4200000000000000000000000000000000000018"
    fee_splitter: str = "0x420000000000000000000000000000000000002B"
    sequencer_fee_vault: str = "0x4200000000000000000000000000000000000011"
    base_fee_vault: str = "0x4200000000000000000000000000000000000019"
    l1_fee_vault: str = "0x420000000000000000000000000000000000001A"
    operator_fee_vault: str = "0x420000000000000000000000000000000000001b"
    multicall: str = "0xcA11bde05977b3631167028862bE2a173976CA11"
    salt_namespace: str = DEFAULT_SALT_NAMESPACE
    gas: GasBudgets = field(default_factory=GasBudgets)

    def __post_init__(self) -> None:
        for name in (
            "create2_deployer",
            "proxy_admin",
            "fee_splitter",
            "sequencer_fee_vault",
            "base_fee_vault",
            "l1_fee_vault",
            "operator_fee_vault",
            "multicall",
        ):
            setattr(self, name, _normalize_address(getattr(self, name), name))
        if not isinstance(self.salt_namespace, str) or not self.salt_namespace.strip():
            raise ConfigurationError("salt_namespace must be a non-empty string")
        proxies = [slot.proxy for slot in self.vault_slots()]
        if len(set(proxies)) != len(proxies):
            raise ConfigurationError("fee vault proxies must be distinct")
        if self.fee_splitter in proxies:
            raise ConfigurationError("fee_splitter must not overlap a fee vault proxy")

    def vault_slots(self) -> Tuple[VaultSlot, ...]:
        """Return the fee vault slots in canonical emission order."""

        return (
            VaultSlot(ArtifactName.SEQUENCER_FEE_VAULT, self.sequencer_fee_vault),
            VaultSlot(ArtifactName.BASE_FEE_VAULT, self.base_fee_vault),
            VaultSlot(ArtifactName.L1_FEE_VAULT, self.l1_fee_vault),
            VaultSlot(ArtifactName.OPERATOR_FEE_VAULT, self.operator_fee_vault),
        )

    def slot_for(self, proxy: str) -> Optional[VaultSlot]:
        target = proxy.lower()
        for slot in self.vault_slots():
            if slot.proxy.lower() == target:
                return slot
        return None

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "NetworkConfig":
        def _resolve(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data:
                    return data[key]
            return default

        defaults = cls.__dataclass_fields__
        gas_payload = _resolve("gas", "gasBudgets", default={}) or {}
        if not isinstance(gas_payload, dict):
            raise ConfigurationError("gas budgets must be a mapping")
        return cls(
            create2_deployer=str(
                _resolve("create2_deployer", "create2Deployer", default=defaults["create2_deployer"].default)
            ),
            proxy_admin=str(_resolve("proxy_admin", "proxyAdmin", default=defaults["proxy_admin"].default)),
            fee_splitter=str(_resolve("fee_splitter", "feeSplitter", default=defaults["fee_splitter"].default)),
            sequencer_fee_vault=str(
                _resolve("sequencer_fee_vault", "sequencerFeeVault", default=defaults["sequencer_fee_vault"].default)
            ),
            base_fee_vault=str(_resolve("base_fee_vault", "baseFeeVault", default=defaults["base_fee_vault"].default)),
            l1_fee_vault=str(_resolve("l1_fee_vault", "l1FeeVault", default=defaults["l1_fee_vault"].default)),
            operator_fee_vault=str(
                _resolve("operator_fee_vault", "operatorFeeVault", default=defaults["operator_fee_vault"].default)
            ),
            multicall=str(_resolve("multicall", "multicall3", default=defaults["multicall"].default)),
            salt_namespace=str(
                _resolve("salt_namespace", "saltNamespace", default=defaults["salt_namespace"].default)
            ),
            gas=GasBudgets.from_mapping(gas_payload),
        )


def load_config(path: str | Path) -> NetworkConfig:
    """Load a network configuration from a YAML (or JSON) file."""

    text = Path(path).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("network configuration must be a mapping")
    return NetworkConfig.from_mapping(data)


def load_network_config(path: Optional[Path] = None) -> NetworkConfig:
    """Load the configuration from ``path``, ``$REVSHARE_NETWORK_CONFIG`` or defaults."""

    if path is None:
        override = os.environ.get(CONFIG_ENV)
        if not override:
            return NetworkConfig()
        path = Path(override)
    if not path.exists():
        _LOG.warning("Network configuration %s missing; using OP-stack defaults", path)
        return NetworkConfig()
    return load_config(path)


__all__ = [
    "CONFIG_ENV",
    "DEFAULT_SALT_NAMESPACE",
    "GasBudgets",
    "MAX_UINT64",
    "NetworkConfig",
    "VaultSlot",
    "load_config",
    "load_network_config",
]
