"""Exception taxonomy for the revenue-share upgrader."""

from __future__ import annotations

from typing import Optional


class RevShareError(Exception):
    """Base class for every failure raised by this package."""


class ConfigurationError(RevShareError):
    """Raised when network or artifact configuration is unusable."""


class ArtifactMissingError(ConfigurationError):
    """Raised when the artifact catalog lacks a required payload."""

    def __init__(self, name: str) -> None:
        super().__init__(f"artifact {name} is missing or empty")
        self.name = name


class UpgradeValidationError(RevShareError, ValueError):
    """Pre-dispatch validation failure.

    ``code`` is the stable failure reason surfaced to callers; ``index`` points
    at the offending fleet entry when the failure is tied to one domain.
    """

    code = "UpgradeValidation"

    def __init__(self, message: str, *, index: Optional[int] = None) -> None:
        if index is not None:
            message = f"{message} (domain #{index})"
        super().__init__(message)
        self.index = index


class EmptyFleetError(UpgradeValidationError):
    code = "EmptyFleet"


class ArrayLengthMismatchError(UpgradeValidationError):
    code = "ArrayLengthMismatch"


class DomainZeroError(UpgradeValidationError):
    code = "DomainZero"


class RecipientZeroError(UpgradeValidationError):
    code = "RecipientZero"


class VaultProxyZeroError(UpgradeValidationError):
    code = "VaultProxyZero"


class UnknownVaultTargetError(UpgradeValidationError):
    code = "UnknownVaultTarget"


class DuplicateVaultTargetError(UpgradeValidationError):
    code = "DuplicateVaultTarget"


class VaultCountInvalidError(UpgradeValidationError):
    code = "VaultCountInvalid"


class GasLimitInvalidError(UpgradeValidationError):
    code = "GasLimitInvalid"


class SaltNamespaceEmptyError(UpgradeValidationError):
    code = "SaltNamespaceEmpty"


class DisabledRouterRecipientError(UpgradeValidationError):
    code = "DisabledRouterRecipient"


class MissingParameterError(UpgradeValidationError):
    code = "MissingParameter"


class UnexpectedParameterError(UpgradeValidationError):
    code = "UnexpectedParameter"


class InvalidAddressError(UpgradeValidationError):
    code = "InvalidAddress"


class OrderingViolationError(RevShareError):
    """Raised when a planned sequence would redirect fees to an unwired router."""


class DispatchError(RevShareError):
    """Raised when the outbound relay refuses a batch on the coordinating domain."""

    def __init__(self, message: str, *, sent: int = 0) -> None:
        super().__init__(message)
        self.sent = sent


__all__ = [
    "ArrayLengthMismatchError",
    "ArtifactMissingError",
    "ConfigurationError",
    "DisabledRouterRecipientError",
    "DispatchError",
    "DomainZeroError",
    "DuplicateVaultTargetError",
    "EmptyFleetError",
    "GasLimitInvalidError",
    "InvalidAddressError",
    "MissingParameterError",
    "OrderingViolationError",
    "RecipientZeroError",
    "RevShareError",
    "SaltNamespaceEmptyError",
    "UnexpectedParameterError",
    "UnknownVaultTargetError",
    "UpgradeValidationError",
    "VaultCountInvalidError",
    "VaultProxyZeroError",
]
