"""Per-domain upgrade planning.

Given one domain and a :class:`~revshare.models.TransitionMode`, the planner
produces the ordered remote calls that (re)configure the revenue-share
contracts on that domain. The calls execute asynchronously and their
individual outcomes are never observed, so the only safety lever is the order
they are emitted in: the fee splitter always has a calculator before any fee
vault is pointed at it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .artifacts import ArtifactCatalog, ArtifactName
from .config import NetworkConfig, VaultSlot
from .create2 import ZERO_ADDRESS, derive_address, derive_salt
from .encoder import (
    CallAction,
    PortalMessage,
    RemoteCall,
    encode_deploy,
    fee_splitter_initialize,
    fee_vault_initialize,
    set_min_withdrawal_amount,
    set_recipient,
    set_shares_calculator,
    set_withdrawal_network,
    upgrade_and_call,
)
from .errors import OrderingViolationError, UnexpectedParameterError
from .models import (
    CallerContext,
    L1WithdrawerConfig,
    TransitionMode,
    VaultUpgradeSpec,
    WithdrawalNetwork,
)
from .validation import (
    CURRENT_POLICY,
    ValidationPolicy,
    validate_domain,
    validate_namespace,
    validate_remainder,
    validate_vault_specs,
    validate_withdrawer,
)

_LOG = logging.getLogger(__name__)

_ROUTER_WIRING = frozenset({CallAction.UPGRADE_ROUTER, CallAction.SET_ROUTER_CALCULATOR})
_VAULT_REDIRECTS = frozenset({CallAction.UPGRADE_VAULT, CallAction.SET_VAULT_RECIPIENT})


@dataclass(frozen=True)
class DeployedArtifact:
    """An artifact whose remote address was derived ahead of deployment."""

    name: ArtifactName
    salt: bytes
    init_code: bytes
    address: str


@dataclass(frozen=True)
class DomainPlan:
    """Ordered remote calls for one domain."""

    domain: str
    mode: TransitionMode
    namespace: str
    calls: Tuple[RemoteCall, ...]
    addresses: Mapping[str, str] = field(default_factory=dict)
    l2_sender: Optional[str] = None

    def __len__(self) -> int:
        return len(self.calls)

    def messages(self) -> Tuple[PortalMessage, ...]:
        return tuple(PortalMessage(portal=self.domain, call=call) for call in self.calls)

    def indexes_of(self, *actions: CallAction) -> List[int]:
        wanted = set(actions)
        return [idx for idx, call in enumerate(self.calls) if call.action in wanted]

    def summary(self) -> Dict[str, object]:
        return {
            "domain": self.domain,
            "mode": self.mode.value,
            "namespace": self.namespace,
            "calls": len(self.calls),
            "addresses": dict(self.addresses),
            "l2Sender": self.l2_sender,
        }


@dataclass
class _PlanState:
    domain: str
    mode: TransitionMode
    namespace: str
    withdrawer: Optional[L1WithdrawerConfig] = None
    remainder: Optional[str] = None
    vaults: Tuple[Tuple[VaultSlot, VaultUpgradeSpec], ...] = ()
    deployed: Dict[ArtifactName, DeployedArtifact] = field(default_factory=dict)
    calls: List[RemoteCall] = field(default_factory=list)


_Step = Callable[["UpgradePlanner", _PlanState], None]


class UpgradePlanner:
    """Builds the remote call sequence for a single domain."""

    def __init__(
        self,
        network: NetworkConfig,
        catalog: ArtifactCatalog,
        *,
        policy: ValidationPolicy = CURRENT_POLICY,
    ) -> None:
        self._network = network
        self._catalog = catalog
        self._policy = policy

    @property
    def network(self) -> NetworkConfig:
        return self._network

    @property
    def policy(self) -> ValidationPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def predict_address(self, name: ArtifactName, *args: object, namespace: Optional[str] = None) -> str:
        """Return where ``name`` built with ``args`` lands on any domain."""

        return self._derive(ArtifactName(name), namespace or self._network.salt_namespace, *args).address

    def plan(
        self,
        domain: str,
        mode: TransitionMode,
        *,
        withdrawer: Optional[L1WithdrawerConfig] = None,
        remainder: Optional[str] = None,
        vaults: Optional[Sequence[VaultUpgradeSpec]] = None,
        namespace: Optional[str] = None,
        context: Optional[CallerContext] = None,
        index: Optional[int] = None,
    ) -> DomainPlan:
        """Validate the inputs for ``mode`` and return the domain's plan.

        Nothing is built unless every check passes, so a failure leaves no
        partial sequence behind.
        """

        mode = TransitionMode(mode)
        state = self._prepare(
            domain,
            mode,
            withdrawer=withdrawer,
            remainder=remainder,
            vaults=vaults,
            namespace=namespace,
            index=index,
        )
        for step in _SEQUENCES[mode]:
            step(self, state)
        calls = tuple(state.calls)
        _check_ordering(mode, calls)

        plan = DomainPlan(
            domain=state.domain,
            mode=mode,
            namespace=state.namespace,
            calls=calls,
            addresses={name.value: artifact.address for name, artifact in state.deployed.items()},
            l2_sender=context.l2_sender if context else None,
        )
        _LOG.info(
            "Planned %s calls for domain %s (%s)",
            len(calls),
            plan.domain,
            mode.value,
            extra={
                "event": "plan",
                "data": plan.summary(),
            },
        )
        return plan

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _prepare(
        self,
        domain: str,
        mode: TransitionMode,
        *,
        withdrawer: Optional[L1WithdrawerConfig],
        remainder: Optional[str],
        vaults: Optional[Sequence[VaultUpgradeSpec]],
        namespace: Optional[str],
        index: Optional[int],
    ) -> _PlanState:
        portal = validate_domain(domain, index=index)

        if mode.enables_router:
            withdrawer = validate_withdrawer(withdrawer, self._policy, index=index)
            remainder = validate_remainder(remainder, index=index)
        elif remainder is not None:
            raise UnexpectedParameterError(f"{mode.value} takes no remainder recipient", index=index)

        if mode is TransitionMode.DEPLOY_CUSTOM_THEN_DISABLED:
            resolved_namespace = validate_namespace(namespace, index=index)
        elif namespace is not None:
            resolved_namespace = validate_namespace(namespace, index=index)
        else:
            resolved_namespace = self._network.salt_namespace

        matched: Tuple[Tuple[VaultSlot, VaultUpgradeSpec], ...] = ()
        if not mode.enables_router:
            matched = validate_vault_specs(vaults, self._network, self._policy, index=index)

        return _PlanState(
            domain=portal,
            mode=mode,
            namespace=resolved_namespace,
            withdrawer=withdrawer,
            remainder=remainder,
            vaults=matched,
        )

    # ------------------------------------------------------------------
    # Sequence steps
    # ------------------------------------------------------------------

    def _derive(self, name: ArtifactName, namespace: str, *args: object) -> DeployedArtifact:
        init_code = self._catalog[name].init_code(*args)
        salt = derive_salt(namespace, name.value)
        address = derive_address(self._network.create2_deployer, salt, init_code)
        return DeployedArtifact(name=name, salt=salt, init_code=init_code, address=address)

    def _deploy(self, state: _PlanState, name: ArtifactName, *args: object) -> DeployedArtifact:
        artifact = self._derive(name, state.namespace, *args)
        state.deployed[name] = artifact
        state.calls.append(
            encode_deploy(
                self._network.create2_deployer,
                artifact.salt,
                artifact.init_code,
                self._network.gas.deploy_budget(name),
                label=f"deploy {name.value}",
            )
        )
        return artifact

    def _deploy_withdrawer(self, state: _PlanState) -> None:
        config = state.withdrawer
        assert config is not None
        self._deploy(
            state,
            ArtifactName.L1_WITHDRAWER,
            config.min_withdrawal_amount,
            config.recipient,
            config.gas_limit,
        )

    def _deploy_calculator(self, state: _PlanState) -> None:
        withdrawer = state.deployed[ArtifactName.L1_WITHDRAWER]
        self._deploy(state, ArtifactName.REVENUE_CALCULATOR, withdrawer.address, state.remainder)

    def _deploy_router(self, state: _PlanState) -> None:
        self._deploy(state, ArtifactName.FEE_SPLITTER)

    def _upgrade_router(self, state: _PlanState, calculator: str) -> None:
        implementation = state.deployed[ArtifactName.FEE_SPLITTER].address
        state.calls.append(
            upgrade_and_call(
                self._network.proxy_admin,
                self._network.fee_splitter,
                implementation,
                fee_splitter_initialize(calculator),
                self._network.gas.upgrade,
                action=CallAction.UPGRADE_ROUTER,
                label=f"upgrade {ArtifactName.FEE_SPLITTER.value}",
            )
        )

    def _enable_router(self, state: _PlanState) -> None:
        self._upgrade_router(state, state.deployed[ArtifactName.REVENUE_CALCULATOR].address)

    def _disable_router(self, state: _PlanState) -> None:
        self._upgrade_router(state, ZERO_ADDRESS)

    def _set_router_calculator(self, state: _PlanState) -> None:
        calculator = state.deployed[ArtifactName.REVENUE_CALCULATOR].address
        state.calls.append(
            set_shares_calculator(
                self._network.fee_splitter,
                calculator,
                self._network.gas.setter,
                label=f"{ArtifactName.FEE_SPLITTER.value}.setSharesCalculator",
            )
        )

    def _upgrade_vault(
        self,
        state: _PlanState,
        slot: VaultSlot,
        recipient: str,
        min_withdrawal_amount: int,
        network: WithdrawalNetwork,
    ) -> None:
        implementation = self._deploy(state, slot.artifact)
        state.calls.append(
            upgrade_and_call(
                self._network.proxy_admin,
                slot.proxy,
                implementation.address,
                fee_vault_initialize(recipient, min_withdrawal_amount, network),
                self._network.gas.upgrade,
                action=CallAction.UPGRADE_VAULT,
                label=f"upgrade {slot.artifact.value}",
            )
        )

    def _upgrade_vaults_to_router(self, state: _PlanState) -> None:
        for slot in self._network.vault_slots():
            self._upgrade_vault(state, slot, self._network.fee_splitter, 0, WithdrawalNetwork.L1)

    def _upgrade_vaults_from_specs(self, state: _PlanState) -> None:
        for slot, spec in state.vaults:
            self._upgrade_vault(state, slot, spec.recipient, spec.min_withdrawal_amount, spec.withdrawal_network)

    def _point_vaults_at_router(self, state: _PlanState) -> None:
        gas = self._network.gas.setter
        for slot in self._network.vault_slots():
            name = slot.artifact.value
            state.calls.append(set_recipient(slot.proxy, self._network.fee_splitter, gas, label=f"{name}.setRecipient"))
            state.calls.append(set_min_withdrawal_amount(slot.proxy, 0, gas, label=f"{name}.setMinWithdrawalAmount"))
            state.calls.append(
                set_withdrawal_network(slot.proxy, WithdrawalNetwork.L1, gas, label=f"{name}.setWithdrawalNetwork")
            )


_DISABLED_SEQUENCE: Tuple[_Step, ...] = (
    UpgradePlanner._upgrade_vaults_from_specs,
    UpgradePlanner._deploy_router,
    UpgradePlanner._disable_router,
)

_SEQUENCES: Dict[TransitionMode, Tuple[_Step, ...]] = {
    TransitionMode.DEPLOY_AND_ENABLE_ATOMICALLY: (
        UpgradePlanner._deploy_withdrawer,
        UpgradePlanner._deploy_calculator,
        UpgradePlanner._deploy_router,
        UpgradePlanner._enable_router,
        UpgradePlanner._upgrade_vaults_to_router,
    ),
    TransitionMode.ENABLE_ON_ALREADY_UPGRADED: (
        UpgradePlanner._deploy_withdrawer,
        UpgradePlanner._deploy_calculator,
        UpgradePlanner._set_router_calculator,
        UpgradePlanner._point_vaults_at_router,
    ),
    TransitionMode.DEPLOY_ONLY_DISABLED: _DISABLED_SEQUENCE,
    TransitionMode.DEPLOY_CUSTOM_THEN_DISABLED: _DISABLED_SEQUENCE,
}


def _check_ordering(mode: TransitionMode, calls: Sequence[RemoteCall]) -> None:
    wiring = [idx for idx, call in enumerate(calls) if call.action in _ROUTER_WIRING]
    redirects = [idx for idx, call in enumerate(calls) if call.action in _VAULT_REDIRECTS]
    if mode.enables_router:
        if not wiring:
            raise OrderingViolationError(f"{mode.value} never wires the fee splitter")
        if redirects and min(redirects) < wiring[0]:
            raise OrderingViolationError(f"{mode.value} redirects a fee vault before the fee splitter is wired")
    elif wiring and wiring[-1] != len(calls) - 1:
        raise OrderingViolationError(f"{mode.value} must leave the fee splitter initialization last")


__all__ = ["DeployedArtifact", "DomainPlan", "UpgradePlanner"]
