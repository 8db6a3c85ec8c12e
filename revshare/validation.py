"""Fail-fast input checks run before any remote call is built.

Checks always run in the same order so a malformed request reports the same
failure no matter which mode it was submitted under:

1. fleet shape (empty fleet, parallel sequence lengths, remainders passed to
   a mode that takes none)
2. per domain, in fleet order: domain identity (zero, malformed), withdrawer
   (presence, recipient, gas budget), remainder recipient (presence, zero,
   malformed), salt namespace, vault specs (presence, count, then per spec:
   proxy zero, unknown slot, duplicate slot, recipient zero, disabled router).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Sized, Tuple

from .config import NetworkConfig, VaultSlot
from .create2 import is_zero_address
from .errors import (
    ArrayLengthMismatchError,
    DisabledRouterRecipientError,
    DomainZeroError,
    DuplicateVaultTargetError,
    EmptyFleetError,
    GasLimitInvalidError,
    InvalidAddressError,
    MissingParameterError,
    RecipientZeroError,
    SaltNamespaceEmptyError,
    UnexpectedParameterError,
    UnknownVaultTargetError,
    VaultCountInvalidError,
    VaultProxyZeroError,
)
from .models import L1WithdrawerConfig, TransitionMode, VaultUpgradeSpec, normalize_address

MAX_UINT32 = (1 << 32) - 1
VAULT_COUNT = 4


@dataclass(frozen=True)
class ValidationPolicy:
    """Versioned knobs for checks that changed between orchestrator generations."""

    version: int
    max_withdrawal_gas_limit: int = MAX_UINT32
    reject_router_recipient_when_disabled: bool = True


POLICY_V1 = ValidationPolicy(version=1, reject_router_recipient_when_disabled=False)
POLICY_V2 = ValidationPolicy(version=2)
POLICIES: Dict[int, ValidationPolicy] = {policy.version: policy for policy in (POLICY_V1, POLICY_V2)}
CURRENT_POLICY = POLICY_V2


def get_policy(version: Optional[int] = None) -> ValidationPolicy:
    if version is None:
        return CURRENT_POLICY
    try:
        return POLICIES[version]
    except KeyError:
        raise ValueError(f"unknown validation policy version: {version}") from None


def validate_fleet_shape(domains: Sized, *parallel: Optional[Sized]) -> None:
    if len(domains) == 0:
        raise EmptyFleetError("at least one domain is required")
    expected = len(domains)
    for sequence in parallel:
        if sequence is None:
            continue
        if len(sequence) != expected:
            raise ArrayLengthMismatchError(
                f"parallel inputs must match the {expected} domains, received {len(sequence)}"
            )


def validate_remainders_allowed(mode: TransitionMode, remainders: Optional[Sized]) -> None:
    if remainders is not None and not mode.enables_router:
        raise UnexpectedParameterError(f"{mode.value} routes no revenue and takes no remainder recipients")


def _checked_address(value: object, role: str, *, index: Optional[int]) -> str:
    try:
        return normalize_address(value)
    except ValueError as exc:
        raise InvalidAddressError(f"{role} is not a 20-byte address: {value!r}", index=index) from exc


def validate_domain(domain: object, *, index: Optional[int] = None) -> str:
    """Return the checksummed portal address of ``domain``."""

    if is_zero_address(domain):
        raise DomainZeroError("domain portal must not be the zero address", index=index)
    return _checked_address(domain, "domain portal", index=index)


def validate_withdrawer(
    config: Optional[L1WithdrawerConfig],
    policy: ValidationPolicy,
    *,
    index: Optional[int] = None,
) -> L1WithdrawerConfig:
    if config is None:
        raise MissingParameterError("withdrawer configuration is required", index=index)
    if is_zero_address(config.recipient):
        raise RecipientZeroError("withdrawer recipient must not be the zero address", index=index)
    if config.gas_limit <= 0 or config.gas_limit > policy.max_withdrawal_gas_limit:
        raise GasLimitInvalidError(
            f"withdrawer gas limit must be in 1..{policy.max_withdrawal_gas_limit}", index=index
        )
    return config


def validate_remainder(remainder: object, *, index: Optional[int] = None) -> str:
    if remainder is None:
        raise MissingParameterError("remainder recipient is required", index=index)
    if is_zero_address(remainder):
        raise RecipientZeroError("remainder recipient must not be the zero address", index=index)
    return _checked_address(remainder, "remainder recipient", index=index)


def validate_namespace(namespace: Optional[str], *, index: Optional[int] = None) -> str:
    if namespace is None or not namespace.strip():
        raise SaltNamespaceEmptyError("a non-empty salt namespace is required", index=index)
    return namespace


def validate_vault_specs(
    specs: Optional[Sequence[VaultUpgradeSpec]],
    network: NetworkConfig,
    policy: ValidationPolicy,
    *,
    index: Optional[int] = None,
) -> Tuple[Tuple[VaultSlot, VaultUpgradeSpec], ...]:
    """Match every spec to its predeployed slot, returned in canonical slot order."""

    if specs is None:
        raise MissingParameterError("fee vault specs are required", index=index)
    if len(specs) != VAULT_COUNT:
        raise VaultCountInvalidError(f"exactly {VAULT_COUNT} fee vault specs are required", index=index)
    matched: Dict[str, Tuple[VaultSlot, VaultUpgradeSpec]] = {}
    for spec in specs:
        if is_zero_address(spec.proxy):
            raise VaultProxyZeroError("fee vault proxy must not be the zero address", index=index)
        slot = network.slot_for(spec.proxy)
        if slot is None:
            raise UnknownVaultTargetError(f"{spec.proxy} is not a recognized fee vault proxy", index=index)
        if slot.proxy in matched:
            raise DuplicateVaultTargetError(f"{spec.proxy} is targeted more than once", index=index)
        if is_zero_address(spec.recipient):
            raise RecipientZeroError(f"recipient for {slot.artifact.value} must not be zero", index=index)
        if policy.reject_router_recipient_when_disabled and spec.recipient.lower() == network.fee_splitter.lower():
            raise DisabledRouterRecipientError(
                f"{slot.artifact.value} would send fees to the router before it has a calculator", index=index
            )
        matched[slot.proxy] = (slot, spec)
    return tuple(matched[slot.proxy] for slot in network.vault_slots())


__all__ = [
    "CURRENT_POLICY",
    "MAX_UINT32",
    "POLICIES",
    "POLICY_V1",
    "POLICY_V2",
    "VAULT_COUNT",
    "ValidationPolicy",
    "get_policy",
    "validate_domain",
    "validate_fleet_shape",
    "validate_namespace",
    "validate_remainder",
    "validate_remainders_allowed",
    "validate_vault_specs",
    "validate_withdrawer",
]
