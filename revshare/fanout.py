"""Fleet-wide fan-out of the per-domain planner."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from prometheus_client import CollectorRegistry, Counter

from .encoder import PortalMessage, RemoteCall
from .errors import DispatchError, UpgradeValidationError
from .logging_utils import bind_context
from .models import CallerContext, L1WithdrawerConfig, TransitionMode, VaultUpgradeSpec
from .planner import DomainPlan, UpgradePlanner
from .relay import Relay
from .validation import validate_fleet_shape, validate_remainders_allowed

_LOG = logging.getLogger(__name__)

DomainParams = Union[L1WithdrawerConfig, Sequence[VaultUpgradeSpec]]


@dataclass(frozen=True)
class FleetResult:
    """Plans for every domain of one fleet invocation, in fleet order."""

    mode: TransitionMode
    plans: Tuple[DomainPlan, ...]

    def __len__(self) -> int:
        return len(self.plans)

    def calls(self) -> Tuple[RemoteCall, ...]:
        return tuple(call for plan in self.plans for call in plan.calls)

    def messages(self) -> Tuple[PortalMessage, ...]:
        return tuple(message for plan in self.plans for message in plan.messages())


class FleetUpgrader:
    """Validates a whole fleet, plans every domain, then dispatches once.

    Either every domain's messages reach the relay in one batch or the call
    fails before the relay is touched. Once dispatched, each domain executes
    on its own schedule; nothing here coordinates domains with each other.
    """

    def __init__(
        self,
        planner: UpgradePlanner,
        relay: Relay,
        *,
        registry: Optional[CollectorRegistry] = None,
    ) -> None:
        self._planner = planner
        self._relay = relay
        self._metrics_registry = registry or CollectorRegistry()
        self._dispatched_calls = Counter(
            "revshare_dispatched_calls_total",
            "Count of remote calls handed to the relay",
            labelnames=("action",),
            registry=self._metrics_registry,
        )
        self._rejections = Counter(
            "revshare_rejections_total",
            "Count of fleet requests rejected before dispatch",
            labelnames=("code",),
            registry=self._metrics_registry,
        )
        self._dispatches = Counter(
            "revshare_dispatches_total",
            "Count of batches handed to the relay",
            labelnames=("outcome",),
            registry=self._metrics_registry,
        )

    @property
    def metrics_registry(self) -> CollectorRegistry:
        return self._metrics_registry

    def run(
        self,
        mode: TransitionMode,
        domains: Sequence[str],
        params: Sequence[DomainParams],
        remainders: Optional[Sequence[str]] = None,
        *,
        namespace: Optional[str] = None,
        context: Optional[CallerContext] = None,
    ) -> FleetResult:
        """Plan ``mode`` for every domain and dispatch the combined batch."""

        mode = TransitionMode(mode)
        context = context or CallerContext()
        with bind_context(context):
            try:
                validate_fleet_shape(domains, params, remainders)
                validate_remainders_allowed(mode, remainders)
                plans = tuple(
                    self._plan_domain(mode, index, domain, params[index], remainders, namespace, context)
                    for index, domain in enumerate(domains)
                )
            except UpgradeValidationError as exc:
                self._rejections.labels(exc.code).inc()
                _LOG.warning(
                    "Rejected %s fleet request: %s",
                    mode.value,
                    exc,
                    extra={"event": "rejected", "data": {"code": exc.code, "index": exc.index}},
                )
                raise

            result = FleetResult(mode=mode, plans=plans)
            messages = result.messages()
            try:
                self._relay.dispatch(messages, context)
            except DispatchError:
                self._dispatches.labels("failed").inc()
                _LOG.error("Relay refused batch of %s messages", len(messages), extra={"event": "dispatch_failed"})
                raise
            self._dispatches.labels("ok").inc()
            for call in result.calls():
                self._dispatched_calls.labels(call.action.value).inc()
            _LOG.info(
                "Dispatched %s messages across %s domains",
                len(messages),
                len(plans),
                extra={"event": "dispatched", "data": {"mode": mode.value, "domains": len(plans)}},
            )
            return result

    def _plan_domain(
        self,
        mode: TransitionMode,
        index: int,
        domain: str,
        params: DomainParams,
        remainders: Optional[Sequence[str]],
        namespace: Optional[str],
        context: CallerContext,
    ) -> DomainPlan:
        if mode.enables_router:
            return self._planner.plan(
                domain,
                mode,
                withdrawer=params if isinstance(params, L1WithdrawerConfig) else None,
                remainder=remainders[index] if remainders is not None else None,
                namespace=namespace,
                context=context,
                index=index,
            )
        return self._planner.plan(
            domain,
            mode,
            vaults=None if isinstance(params, L1WithdrawerConfig) else list(params),
            namespace=namespace,
            context=context,
            index=index,
        )

    # ------------------------------------------------------------------
    # Mode shortcuts
    # ------------------------------------------------------------------

    def deploy_and_enable(
        self,
        domains: Sequence[str],
        withdrawers: Sequence[L1WithdrawerConfig],
        remainders: Sequence[str],
        *,
        context: Optional[CallerContext] = None,
    ) -> FleetResult:
        return self.run(TransitionMode.DEPLOY_AND_ENABLE_ATOMICALLY, domains, withdrawers, remainders, context=context)

    def enable(
        self,
        domains: Sequence[str],
        withdrawers: Sequence[L1WithdrawerConfig],
        remainders: Sequence[str],
        *,
        context: Optional[CallerContext] = None,
    ) -> FleetResult:
        return self.run(TransitionMode.ENABLE_ON_ALREADY_UPGRADED, domains, withdrawers, remainders, context=context)

    def deploy_disabled(
        self,
        domains: Sequence[str],
        vaults: Sequence[Sequence[VaultUpgradeSpec]],
        *,
        namespace: Optional[str] = None,
        context: Optional[CallerContext] = None,
    ) -> FleetResult:
        return self.run(
            TransitionMode.DEPLOY_ONLY_DISABLED,
            domains,
            vaults,
            namespace=namespace,
            context=context,
        )

    def deploy_custom_disabled(
        self,
        domains: Sequence[str],
        vaults: Sequence[Sequence[VaultUpgradeSpec]],
        *,
        namespace: str,
        context: Optional[CallerContext] = None,
    ) -> FleetResult:
        return self.run(
            TransitionMode.DEPLOY_CUSTOM_THEN_DISABLED,
            domains,
            vaults,
            namespace=namespace,
            context=context,
        )


__all__ = ["DomainParams", "FleetResult", "FleetUpgrader"]
