"""Encoding of the remote calls the planner emits and the deposits that carry them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Sequence

import eth_abi
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from .config import MAX_UINT64

DEPLOY_SIGNATURE = "deploy(uint256,bytes32,bytes)"
UPGRADE_AND_CALL_SIGNATURE = "upgradeAndCall(address,address,bytes)"
FEE_VAULT_INITIALIZE_SIGNATURE = "initialize(address,uint256,uint8)"
FEE_SPLITTER_INITIALIZE_SIGNATURE = "initialize(address)"
SET_SHARES_CALCULATOR_SIGNATURE = "setSharesCalculator(address)"
SET_RECIPIENT_SIGNATURE = "setRecipient(address)"
SET_MIN_WITHDRAWAL_AMOUNT_SIGNATURE = "setMinWithdrawalAmount(uint256)"
SET_WITHDRAWAL_NETWORK_SIGNATURE = "setWithdrawalNetwork(uint8)"
DEPOSIT_TRANSACTION_SIGNATURE = "depositTransaction(address,uint256,uint64,bool,bytes)"


class CallAction(str, Enum):
    """What a remote call does on its domain."""

    DEPLOY = "deploy"
    UPGRADE_ROUTER = "upgrade_router"
    SET_ROUTER_CALCULATOR = "set_router_calculator"
    UPGRADE_VAULT = "upgrade_vault"
    SET_VAULT_RECIPIENT = "set_vault_recipient"
    SET_VAULT_MIN_WITHDRAWAL = "set_vault_min_withdrawal"
    SET_VAULT_NETWORK = "set_vault_network"


@lru_cache(maxsize=None)
def selector(signature: str) -> bytes:
    return function_signature_to_4byte_selector(signature)


def encode_function_call(signature: str, types: Sequence[str], args: Sequence[Any]) -> bytes:
    """ABI-encode a call to ``signature``."""

    return selector(signature) + eth_abi.encode(list(types), list(args))


@dataclass(frozen=True)
class RemoteCall:
    """A single instruction executed on a remote domain.

    ``value`` is always zero and ``is_creation`` always false: contracts are
    created through the deterministic deployer, never by raw creation deposits.
    """

    target: str
    gas_limit: int
    data: bytes
    action: CallAction = field(compare=False)
    label: str = field(default="", compare=False)
    value: int = 0
    is_creation: bool = False

    def __post_init__(self) -> None:
        if not 0 < self.gas_limit <= MAX_UINT64:
            raise ValueError(f"gas limit {self.gas_limit} for {self.label or self.action.value} must fit uint64")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "value": self.value,
            "gasLimit": self.gas_limit,
            "isCreation": self.is_creation,
            "data": "0x" + self.data.hex(),
            "action": self.action.value,
            "label": self.label,
        }


def encode_deploy(deployer: str, salt: bytes, init_code: bytes, gas_limit: int, *, label: str) -> RemoteCall:
    """Deploy ``init_code`` through the remote deterministic deployer."""

    data = encode_function_call(DEPLOY_SIGNATURE, ("uint256", "bytes32", "bytes"), (0, salt, init_code))
    return RemoteCall(
        target=to_checksum_address(deployer),
        gas_limit=gas_limit,
        data=data,
        action=CallAction.DEPLOY,
        label=label,
    )


def encode_call(
    target: str,
    signature: str,
    types: Sequence[str],
    args: Sequence[Any],
    gas_limit: int,
    *,
    action: CallAction,
    label: str,
) -> RemoteCall:
    """Invoke ``signature`` on an address already known to exist remotely."""

    return RemoteCall(
        target=to_checksum_address(target),
        gas_limit=gas_limit,
        data=encode_function_call(signature, types, args),
        action=action,
        label=label,
    )


def upgrade_and_call(
    proxy_admin: str,
    proxy: str,
    implementation: str,
    init_data: bytes,
    gas_limit: int,
    *,
    action: CallAction,
    label: str,
) -> RemoteCall:
    return encode_call(
        proxy_admin,
        UPGRADE_AND_CALL_SIGNATURE,
        ("address", "address", "bytes"),
        (proxy, implementation, init_data),
        gas_limit,
        action=action,
        label=label,
    )


def fee_vault_initialize(recipient: str, min_withdrawal_amount: int, network: int) -> bytes:
    return encode_function_call(
        FEE_VAULT_INITIALIZE_SIGNATURE,
        ("address", "uint256", "uint8"),
        (recipient, min_withdrawal_amount, int(network)),
    )


def fee_splitter_initialize(calculator: str) -> bytes:
    return encode_function_call(FEE_SPLITTER_INITIALIZE_SIGNATURE, ("address",), (calculator,))


def set_shares_calculator(router: str, calculator: str, gas_limit: int, *, label: str) -> RemoteCall:
    return encode_call(
        router,
        SET_SHARES_CALCULATOR_SIGNATURE,
        ("address",),
        (calculator,),
        gas_limit,
        action=CallAction.SET_ROUTER_CALCULATOR,
        label=label,
    )


def set_recipient(vault: str, recipient: str, gas_limit: int, *, label: str) -> RemoteCall:
    return encode_call(
        vault,
        SET_RECIPIENT_SIGNATURE,
        ("address",),
        (recipient,),
        gas_limit,
        action=CallAction.SET_VAULT_RECIPIENT,
        label=label,
    )


def set_min_withdrawal_amount(vault: str, amount: int, gas_limit: int, *, label: str) -> RemoteCall:
    return encode_call(
        vault,
        SET_MIN_WITHDRAWAL_AMOUNT_SIGNATURE,
        ("uint256",),
        (amount,),
        gas_limit,
        action=CallAction.SET_VAULT_MIN_WITHDRAWAL,
        label=label,
    )


def set_withdrawal_network(vault: str, network: int, gas_limit: int, *, label: str) -> RemoteCall:
    return encode_call(
        vault,
        SET_WITHDRAWAL_NETWORK_SIGNATURE,
        ("uint8",),
        (int(network),),
        gas_limit,
        action=CallAction.SET_VAULT_NETWORK,
        label=label,
    )


@dataclass(frozen=True)
class PortalMessage:
    """A remote call addressed to one domain's inbound portal."""

    portal: str
    call: RemoteCall

    def calldata(self) -> bytes:
        return encode_function_call(
            DEPOSIT_TRANSACTION_SIGNATURE,
            ("address", "uint256", "uint64", "bool", "bytes"),
            (self.call.target, self.call.value, self.call.gas_limit, self.call.is_creation, self.call.data),
        )

    def to_call(self) -> Dict[str, Any]:
        """Return the coordinating-domain call as a transaction-like mapping."""

        return {"to": self.portal, "value": 0, "data": "0x" + self.calldata().hex()}


__all__ = [
    "CallAction",
    "PortalMessage",
    "RemoteCall",
    "encode_call",
    "encode_deploy",
    "encode_function_call",
    "fee_splitter_initialize",
    "fee_vault_initialize",
    "selector",
    "set_min_withdrawal_amount",
    "set_recipient",
    "set_shares_calculator",
    "set_withdrawal_network",
    "upgrade_and_call",
]
