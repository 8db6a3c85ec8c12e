"""Registry of deployable revenue-share contract payloads."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Tuple

import eth_abi
from eth_utils import to_bytes

from .errors import ArtifactMissingError, ConfigurationError

_LOG = logging.getLogger(__name__)


class ArtifactName(str, Enum):
    """Symbolic contract names; also the per-artifact component of every salt."""

    L1_WITHDRAWER = "L1Withdrawer"
    REVENUE_CALCULATOR = "SuperchainRevSharesCalculator"
    FEE_SPLITTER = "FeeSplitter"
    SEQUENCER_FEE_VAULT = "SequencerFeeVault"
    BASE_FEE_VAULT = "BaseFeeVault"
    L1_FEE_VAULT = "L1FeeVault"
    OPERATOR_FEE_VAULT = "OperatorFeeVault"


FEE_VAULT_ARTIFACTS: Tuple[ArtifactName, ...] = (
    ArtifactName.SEQUENCER_FEE_VAULT,
    ArtifactName.BASE_FEE_VAULT,
    ArtifactName.L1_FEE_VAULT,
    ArtifactName.OPERATOR_FEE_VAULT,
)

# L1Withdrawer(minWithdrawalAmount, recipient, withdrawalGasLimit)
# SuperchainRevSharesCalculator(shareRecipient, remainderRecipient)
CONSTRUCTOR_TYPES: Dict[ArtifactName, Tuple[str, ...]] = {
    ArtifactName.L1_WITHDRAWER: ("uint256", "address", "uint32"),
    ArtifactName.REVENUE_CALCULATOR: ("address", "address"),
}


@dataclass(frozen=True)
class Artifact:
    """Creation bytecode of one contract, without constructor arguments."""

    name: ArtifactName
    bytecode: bytes

    @property
    def constructor_types(self) -> Tuple[str, ...]:
        return CONSTRUCTOR_TYPES.get(self.name, ())

    def init_code(self, *args: Any) -> bytes:
        """Return the bytecode with ABI-encoded constructor arguments appended."""

        types = self.constructor_types
        if len(args) != len(types):
            raise ValueError(f"{self.name.value} expects {len(types)} constructor arguments, received {len(args)}")
        if not types:
            return self.bytecode
        return self.bytecode + eth_abi.encode(list(types), list(args))


def _coerce_bytecode(raw: object, name: str) -> bytes:
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if not text or text == "0x":
            return b""
        try:
            return to_bytes(hexstr=text)
        except ValueError as exc:
            raise ConfigurationError(f"bytecode for {name} is not valid hex") from exc
    raise ConfigurationError(f"bytecode for {name} must be hex text or bytes")


class ArtifactCatalog(Mapping[ArtifactName, Artifact]):
    """Fixed set of the seven deployable payloads.

    Every artifact must be present; a partial catalog would let the planner
    emit a sequence that deploys some components but not the ones they rely on.
    """

    def __init__(self, bytecodes: Mapping[ArtifactName | str, bytes | str]) -> None:
        artifacts: Dict[ArtifactName, Artifact] = {}
        for key, raw in bytecodes.items():
            try:
                name = ArtifactName(key)
            except ValueError as exc:
                raise ConfigurationError(f"unknown artifact: {key}") from exc
            artifacts[name] = Artifact(name=name, bytecode=_coerce_bytecode(raw, name.value))
        for name in ArtifactName:
            artifact = artifacts.get(name)
            if artifact is None or not artifact.bytecode:
                raise ArtifactMissingError(name.value)
        self._artifacts = artifacts

    def __getitem__(self, name: ArtifactName) -> Artifact:
        return self._artifacts[ArtifactName(name)]

    def __iter__(self) -> Iterator[ArtifactName]:
        return iter(ArtifactName)

    def __len__(self) -> int:
        return len(self._artifacts)

    @classmethod
    def from_mapping(cls, data: Mapping[str, str]) -> "ArtifactCatalog":
        return cls(dict(data))

    @classmethod
    def from_forge_output(cls, out_dir: str | Path) -> "ArtifactCatalog":
        """Load creation bytecode from a Foundry ``out/`` directory."""

        root = Path(out_dir)
        bytecodes: Dict[ArtifactName, str] = {}
        for name in ArtifactName:
            path = root / f"{name.value}.sol" / f"{name.value}.json"
            if not path.exists():
                raise ArtifactMissingError(name.value)
            payload = json.loads(path.read_text(encoding="utf-8"))
            bytecode = payload.get("bytecode")
            if isinstance(bytecode, dict):
                bytecode = bytecode.get("object")
            if not isinstance(bytecode, str):
                raise ArtifactMissingError(name.value)
            bytecodes[name] = bytecode
        _LOG.debug("Loaded %s artifacts from %s", len(bytecodes), root)
        return cls(bytecodes)


__all__ = [
    "Artifact",
    "ArtifactCatalog",
    "ArtifactName",
    "CONSTRUCTOR_TYPES",
    "FEE_VAULT_ARTIFACTS",
]
