"""Adapters for the coordinating domain's outbound relay.

The relay itself is an external collaborator: it accepts deposits in order and
promises eventual, exactly-once execution on the remote domain, with no return
channel. These adapters only turn a batch of :class:`PortalMessage` objects
into something the coordinating domain can execute.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional, Sequence

import eth_abi
from eth_utils import to_checksum_address
from web3 import Web3

from .encoder import PortalMessage, selector
from .errors import DispatchError
from .models import CallerContext

_LOG = logging.getLogger(__name__)

AGGREGATE3_SIGNATURE = "aggregate3((address,bool,bytes)[])"


class Relay(ABC):
    """Accepts a batch of portal messages for dispatch."""

    @abstractmethod
    def dispatch(self, messages: Sequence[PortalMessage], context: Optional[CallerContext] = None) -> None:
        """Hand the batch over, raising :class:`DispatchError` if it is refused."""


class RecordingRelay(Relay):
    """Keeps dispatched messages in memory; used for dry runs and tests.

    A batch is staged and only appended to :attr:`dispatched` once every
    message in it was accepted, so a refused batch leaves no trace.
    """

    def __init__(self) -> None:
        self.dispatched: List[PortalMessage] = []
        self.batches: List[List[PortalMessage]] = []

    def accept(self, message: PortalMessage) -> None:
        """Hook for subclasses that want to refuse individual messages."""

    def dispatch(self, messages: Sequence[PortalMessage], context: Optional[CallerContext] = None) -> None:
        staged: List[PortalMessage] = []
        for message in messages:
            self.accept(message)
            staged.append(message)
        self.batches.append(staged)
        self.dispatched.extend(staged)


class Operation(IntEnum):
    CALL = 0
    DELEGATECALL = 1


@dataclass(frozen=True)
class BatchTransaction:
    """Single coordinating-domain transaction carrying a whole batch."""

    to: str
    data: bytes
    operation: Operation = Operation.DELEGATECALL
    value: int = 0
    message_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "to": self.to,
            "value": self.value,
            "data": "0x" + self.data.hex(),
            "operation": int(self.operation),
        }


def encode_aggregate3(messages: Sequence[PortalMessage]) -> bytes:
    calls = [(to_checksum_address(message.portal), False, message.calldata()) for message in messages]
    return selector(AGGREGATE3_SIGNATURE) + eth_abi.encode(["(address,bool,bytes)[]"], [calls])


class MulticallBatchRelay(Relay):
    """Packs every dispatch into one Multicall3 ``aggregate3`` payload.

    The operator multisig DELEGATECALLs the payload, so every deposit is sent
    by the multisig itself and either all of them are emitted or none is.
    """

    def __init__(self, multicall: str) -> None:
        self._multicall = to_checksum_address(multicall)
        self.transactions: List[BatchTransaction] = []

    def dispatch(self, messages: Sequence[PortalMessage], context: Optional[CallerContext] = None) -> None:
        if not messages:
            raise DispatchError("refusing to build an empty batch")
        transaction = BatchTransaction(
            to=self._multicall,
            data=encode_aggregate3(messages),
            message_count=len(messages),
        )
        self.transactions.append(transaction)
        _LOG.debug(
            "Built aggregate3 batch with %s deposits",
            len(messages),
            extra={"event": "batch", "data": {"count": len(messages)}},
        )


class Web3Relay(Relay):
    """Sends deposits directly from an unlocked account on a development network.

    Deposits go out as separate transactions, so this relay is not atomic. A
    batch spanning more than one domain is refused, and every deposit is
    simulated with ``eth_call`` before the first one is sent. A send failing
    part-way through is logged at ERROR and reported through
    :attr:`DispatchError.sent`. Use :class:`MulticallBatchRelay` wherever
    all-or-nothing dispatch matters.
    """

    def __init__(self, web3: Web3, *, sender: str) -> None:
        self._web3 = web3
        self._sender = to_checksum_address(sender)
        self.transaction_hashes: List[str] = []

    def _transaction(self, message: PortalMessage) -> Dict[str, Any]:
        return {
            "from": self._sender,
            "to": to_checksum_address(message.portal),
            "value": 0,
            "data": "0x" + message.calldata().hex(),
        }

    def dispatch(self, messages: Sequence[PortalMessage], context: Optional[CallerContext] = None) -> None:
        portals = {to_checksum_address(message.portal) for message in messages}
        if len(portals) > 1:
            raise DispatchError(
                f"batch spans {len(portals)} domains; sequential sends cannot keep it all-or-nothing"
            )
        transactions = [self._transaction(message) for message in messages]
        for position, tx in enumerate(transactions):
            try:
                self._web3.eth.call(tx)
            except Exception as exc:
                raise DispatchError(f"deposit #{position} to {tx['to']} would revert: {exc}") from exc
        sent = 0
        for tx in transactions:
            try:
                tx_hash = self._web3.eth.send_transaction(tx)
            except Exception as exc:
                _LOG.error(
                    "Partial dispatch: %s of %s deposits to %s already sent",
                    sent,
                    len(transactions),
                    tx["to"],
                    extra={"event": "partial_dispatch", "data": {"sent": sent, "total": len(transactions)}},
                )
                raise DispatchError(f"sending deposit #{sent} failed: {exc}", sent=sent) from exc
            self.transaction_hashes.append(Web3.to_hex(tx_hash))
            sent += 1
        _LOG.info("Sent %s deposits from %s", sent, self._sender)


__all__ = [
    "AGGREGATE3_SIGNATURE",
    "BatchTransaction",
    "MulticallBatchRelay",
    "Operation",
    "RecordingRelay",
    "Relay",
    "Web3Relay",
    "encode_aggregate3",
]
