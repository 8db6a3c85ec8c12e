"""Shared fixtures for the revenue-share upgrader tests."""

from __future__ import annotations

from typing import Callable, Dict, List

import pytest

from revshare.artifacts import ArtifactCatalog, ArtifactName
from revshare.config import NetworkConfig
from revshare.fanout import FleetUpgrader
from revshare.models import L1WithdrawerConfig, VaultUpgradeSpec, WithdrawalNetwork
from revshare.planner import UpgradePlanner
from revshare.relay import RecordingRelay

WITHDRAWAL_RECIPIENT = "0x00000000000000000000000000000000000000aa"
VAULT_RECIPIENT = "0x00000000000000000000000000000000000000cc"


def _bytecodes() -> Dict[str, str]:
    return {
        name.value: "0x6080604052" + f"{position:02x}" * 8
        for position, name in enumerate(ArtifactName, start=1)
    }


@pytest.fixture()
def bytecodes() -> Dict[str, str]:
    return _bytecodes()


@pytest.fixture()
def network() -> NetworkConfig:
    return NetworkConfig()


@pytest.fixture()
def catalog() -> ArtifactCatalog:
    return ArtifactCatalog.from_mapping(_bytecodes())


@pytest.fixture()
def planner(network: NetworkConfig, catalog: ArtifactCatalog) -> UpgradePlanner:
    return UpgradePlanner(network, catalog)


@pytest.fixture()
def relay() -> RecordingRelay:
    return RecordingRelay()


@pytest.fixture()
def upgrader(planner: UpgradePlanner, relay: RecordingRelay) -> FleetUpgrader:
    return FleetUpgrader(planner, relay)


@pytest.fixture()
def withdrawer() -> L1WithdrawerConfig:
    return L1WithdrawerConfig(
        min_withdrawal_amount=2 * 10**18,
        recipient=WITHDRAWAL_RECIPIENT,
        gas_limit=800_000,
    )


@pytest.fixture()
def make_vault_specs(network: NetworkConfig) -> Callable[..., List[VaultUpgradeSpec]]:
    """Return a builder for one spec per predeployed vault, in canonical order."""

    def _build(**overrides) -> List[VaultUpgradeSpec]:
        specs = []
        for position, slot in enumerate(network.vault_slots()):
            payload = {
                "proxy": slot.proxy,
                "recipient": VAULT_RECIPIENT,
                "min_withdrawal_amount": (position + 1) * 10**17,
                "withdrawal_network": WithdrawalNetwork.L2,
            }
            payload.update(overrides)
            specs.append(VaultUpgradeSpec(**payload))
        return specs

    return _build


@pytest.fixture()
def vault_specs(make_vault_specs) -> List[VaultUpgradeSpec]:
    return make_vault_specs()
