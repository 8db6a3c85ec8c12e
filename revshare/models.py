"""Caller-facing parameter models for fleet upgrades."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Optional
from uuid import uuid4

from eth_utils import is_address, to_checksum_address
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .create2 import apply_l1_to_l2_alias, is_zero_address

MAX_UINT256 = (1 << 256) - 1


def normalize_address(value: object) -> str:
    """Return ``value`` checksummed, rejecting anything that is not 20 bytes of hex."""

    if isinstance(value, bytes) and len(value) == 20:
        return to_checksum_address(value)
    if not isinstance(value, str) or not is_address(value.strip().lower()):
        raise ValueError(f"expected a 0x-prefixed 20-byte address, received {value!r}")
    return to_checksum_address(value.strip().lower())


class TransitionMode(str, Enum):
    """Instruction sequence shapes the planner knows how to emit."""

    DEPLOY_ONLY_DISABLED = "deploy_only_disabled"
    ENABLE_ON_ALREADY_UPGRADED = "enable_on_already_upgraded"
    DEPLOY_AND_ENABLE_ATOMICALLY = "deploy_and_enable_atomically"
    DEPLOY_CUSTOM_THEN_DISABLED = "deploy_custom_then_disabled"

    @property
    def enables_router(self) -> bool:
        return self in (
            TransitionMode.ENABLE_ON_ALREADY_UPGRADED,
            TransitionMode.DEPLOY_AND_ENABLE_ATOMICALLY,
        )


class WithdrawalNetwork(IntEnum):
    """Where a fee vault sends its balance when withdrawn."""

    L1 = 0
    L2 = 1


class L1WithdrawerConfig(BaseModel):
    """Constructor parameters of the withdrawal aggregator."""

    model_config = ConfigDict(frozen=True)

    min_withdrawal_amount: int = Field(default=0, ge=0, le=MAX_UINT256)
    recipient: str
    gas_limit: int

    @field_validator("recipient", mode="before")
    @classmethod
    def _normalize_recipient(cls, value: object) -> str:
        return normalize_address(value)


class VaultUpgradeSpec(BaseModel):
    """Target configuration for one predeployed fee vault proxy."""

    model_config = ConfigDict(frozen=True)

    proxy: str
    recipient: str
    min_withdrawal_amount: int = Field(default=0, ge=0, le=MAX_UINT256)
    withdrawal_network: WithdrawalNetwork = WithdrawalNetwork.L1

    @field_validator("proxy", "recipient", mode="before")
    @classmethod
    def _normalize(cls, value: object) -> str:
        return normalize_address(value)


@dataclass(frozen=True)
class CallerContext:
    """Identity on whose behalf the batch is dispatched.

    The operator multisig executes the orchestrator by delegation, so the
    sender is passed in explicitly rather than read from the environment.
    """

    sender: Optional[str] = None
    correlation_id: str = field(default_factory=lambda: str(uuid4()))
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def l2_sender(self) -> Optional[str]:
        if is_zero_address(self.sender):
            return None
        return apply_l1_to_l2_alias(normalize_address(self.sender))


__all__ = [
    "CallerContext",
    "L1WithdrawerConfig",
    "MAX_UINT256",
    "TransitionMode",
    "VaultUpgradeSpec",
    "WithdrawalNetwork",
    "normalize_address",
]
