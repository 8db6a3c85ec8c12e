"""Planning and dispatch of revenue-share upgrades across a fleet of L2 domains."""

from .artifacts import Artifact, ArtifactCatalog, ArtifactName
from .config import GasBudgets, NetworkConfig, load_config, load_network_config
from .create2 import apply_l1_to_l2_alias, derive_address, derive_salt
from .encoder import CallAction, PortalMessage, RemoteCall
from .errors import (
    ArrayLengthMismatchError,
    ArtifactMissingError,
    ConfigurationError,
    DisabledRouterRecipientError,
    DispatchError,
    DomainZeroError,
    DuplicateVaultTargetError,
    EmptyFleetError,
    GasLimitInvalidError,
    InvalidAddressError,
    MissingParameterError,
    OrderingViolationError,
    RecipientZeroError,
    RevShareError,
    SaltNamespaceEmptyError,
    UnexpectedParameterError,
    UnknownVaultTargetError,
    UpgradeValidationError,
    VaultCountInvalidError,
    VaultProxyZeroError,
)
from .fanout import FleetResult, FleetUpgrader
from .logging_utils import bind_context, configure_logging
from .models import CallerContext, L1WithdrawerConfig, TransitionMode, VaultUpgradeSpec, WithdrawalNetwork
from .planner import DomainPlan, UpgradePlanner
from .relay import MulticallBatchRelay, RecordingRelay, Relay, Web3Relay
from .validation import CURRENT_POLICY, ValidationPolicy, get_policy

__all__ = [
    "ArrayLengthMismatchError",
    "Artifact",
    "ArtifactCatalog",
    "ArtifactMissingError",
    "ArtifactName",
    "CURRENT_POLICY",
    "CallAction",
    "CallerContext",
    "ConfigurationError",
    "DisabledRouterRecipientError",
    "DispatchError",
    "DomainPlan",
    "DomainZeroError",
    "DuplicateVaultTargetError",
    "EmptyFleetError",
    "FleetResult",
    "FleetUpgrader",
    "GasBudgets",
    "GasLimitInvalidError",
    "InvalidAddressError",
    "L1WithdrawerConfig",
    "MissingParameterError",
    "MulticallBatchRelay",
    "NetworkConfig",
    "OrderingViolationError",
    "PortalMessage",
    "RecipientZeroError",
    "RecordingRelay",
    "Relay",
    "RemoteCall",
    "RevShareError",
    "SaltNamespaceEmptyError",
    "UnexpectedParameterError",
    "TransitionMode",
    "UnknownVaultTargetError",
    "UpgradePlanner",
    "UpgradeValidationError",
    "ValidationPolicy",
    "VaultCountInvalidError",
    "VaultProxyZeroError",
    "VaultUpgradeSpec",
    "Web3Relay",
    "WithdrawalNetwork",
    "apply_l1_to_l2_alias",
    "bind_context",
    "configure_logging",
    "derive_address",
    "derive_salt",
    "get_policy",
    "load_config",
    "load_network_config",
]
