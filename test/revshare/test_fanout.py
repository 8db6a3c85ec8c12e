from __future__ import annotations

import pytest

from revshare.artifacts import ArtifactName
from revshare.errors import (
    ArrayLengthMismatchError,
    DispatchError,
    DomainZeroError,
    EmptyFleetError,
    InvalidAddressError,
    MissingParameterError,
    RecipientZeroError,
    UnexpectedParameterError,
    UnknownVaultTargetError,
)
from revshare.fanout import FleetUpgrader
from revshare.models import CallerContext, TransitionMode
from revshare.relay import RecordingRelay

PORTAL_A = "0x1000000000000000000000000000000000000001"
PORTAL_B = "0x2000000000000000000000000000000000000002"
PORTAL_C = "0x3000000000000000000000000000000000000003"
REMAINDER = "0x00000000000000000000000000000000000000bb"
ZERO = "0x0000000000000000000000000000000000000000"


class RefusingRelay(RecordingRelay):
    def __init__(self, portal: str) -> None:
        super().__init__()
        self._portal = portal

    def accept(self, message) -> None:
        if message.portal == self._portal:
            raise DispatchError(f"portal {message.portal} is paused")


def _sample(upgrader, name, labels):
    return upgrader.metrics_registry.get_sample_value(name, labels)


def _assert_nothing_dispatched(relay):
    assert relay.dispatched == []
    assert relay.batches == []


def test_single_domain_deploy_and_enable(upgrader, relay, withdrawer):
    result = upgrader.deploy_and_enable([PORTAL_A], [withdrawer], [REMAINDER])

    assert len(result) == 1
    assert len(result.calls()) == 12
    assert len(relay.batches) == 1
    assert [message.portal for message in relay.dispatched] == [PORTAL_A] * 12
    assert [message.call for message in relay.dispatched] == list(result.plans[0].calls)


def test_two_domains_are_dispatched_in_order(upgrader, relay, withdrawer):
    result = upgrader.deploy_and_enable([PORTAL_A, PORTAL_B], [withdrawer, withdrawer], [REMAINDER, REMAINDER])

    assert len(relay.dispatched) == 24
    assert [message.portal for message in relay.dispatched] == [PORTAL_A] * 12 + [PORTAL_B] * 12
    # Salts carry no domain component, so the same inputs land on the same addresses.
    assert result.plans[0].addresses == result.plans[1].addresses


def test_mismatched_remainders_dispatch_nothing(upgrader, relay, withdrawer):
    with pytest.raises(ArrayLengthMismatchError):
        upgrader.enable([PORTAL_A, PORTAL_B, PORTAL_C], [withdrawer] * 3, [REMAINDER, REMAINDER])

    _assert_nothing_dispatched(relay)
    assert _sample(upgrader, "revshare_rejections_total", {"code": "ArrayLengthMismatch"}) == 1.0


def test_unknown_vault_target_dispatches_nothing(upgrader, relay, vault_specs):
    stranger = vault_specs[0].model_copy(update={"proxy": "0x4200000000000000000000000000000000000042"})
    with pytest.raises(UnknownVaultTargetError):
        upgrader.deploy_disabled([PORTAL_A], [[stranger] + vault_specs[1:]])
    _assert_nothing_dispatched(relay)


def test_late_failure_discards_earlier_domains(upgrader, relay, withdrawer):
    with pytest.raises(DomainZeroError) as excinfo:
        upgrader.deploy_and_enable([PORTAL_A, ZERO], [withdrawer, withdrawer], [REMAINDER, REMAINDER])

    assert excinfo.value.index == 1
    _assert_nothing_dispatched(relay)


def test_zero_remainder_is_rejected(upgrader, relay, withdrawer):
    with pytest.raises(RecipientZeroError):
        upgrader.enable([PORTAL_A], [withdrawer], [ZERO])
    _assert_nothing_dispatched(relay)


def test_empty_fleet_is_rejected(upgrader, relay):
    with pytest.raises(EmptyFleetError):
        upgrader.deploy_disabled([], [])
    _assert_nothing_dispatched(relay)


def test_params_must_match_mode(upgrader, relay, withdrawer, vault_specs):
    with pytest.raises(MissingParameterError):
        upgrader.run(TransitionMode.ENABLE_ON_ALREADY_UPGRADED, [PORTAL_A], [vault_specs], [REMAINDER])
    with pytest.raises(MissingParameterError):
        upgrader.run(TransitionMode.DEPLOY_ONLY_DISABLED, [PORTAL_A], [withdrawer])
    _assert_nothing_dispatched(relay)


def test_predicted_address_is_reused(upgrader, planner, withdrawer):
    first = planner.predict_address(ArtifactName.FEE_SPLITTER)
    second = planner.predict_address(ArtifactName.FEE_SPLITTER)
    result = upgrader.deploy_and_enable([PORTAL_A], [withdrawer], [REMAINDER])

    assert first == second == result.plans[0].addresses["FeeSplitter"]


def test_custom_namespace_applies_to_every_domain(upgrader, relay, vault_specs):
    result = upgrader.deploy_custom_disabled([PORTAL_A, PORTAL_B], [vault_specs, vault_specs], namespace="Custom")

    assert [plan.namespace for plan in result.plans] == ["Custom", "Custom"]
    assert len(relay.dispatched) == 20
    assert result.plans[0].calls[-1].action.value == "upgrade_router"


def test_relay_refusal_surfaces_and_records_nothing(planner, withdrawer):
    relay = RefusingRelay(PORTAL_B)
    upgrader = FleetUpgrader(planner, relay)

    with pytest.raises(DispatchError):
        upgrader.deploy_and_enable([PORTAL_A, PORTAL_B], [withdrawer, withdrawer], [REMAINDER, REMAINDER])

    _assert_nothing_dispatched(relay)
    assert _sample(upgrader, "revshare_dispatches_total", {"outcome": "failed"}) == 1.0
    assert _sample(upgrader, "revshare_dispatches_total", {"outcome": "ok"}) is None


def test_dispatch_metrics(upgrader, withdrawer):
    upgrader.deploy_and_enable([PORTAL_A], [withdrawer], [REMAINDER])

    assert _sample(upgrader, "revshare_dispatches_total", {"outcome": "ok"}) == 1.0
    assert _sample(upgrader, "revshare_dispatched_calls_total", {"action": "deploy"}) == 7.0
    assert _sample(upgrader, "revshare_dispatched_calls_total", {"action": "upgrade_router"}) == 1.0
    assert _sample(upgrader, "revshare_dispatched_calls_total", {"action": "upgrade_vault"}) == 4.0


def test_identical_requests_produce_identical_batches(planner, withdrawer):
    first_relay, second_relay = RecordingRelay(), RecordingRelay()
    FleetUpgrader(planner, first_relay).deploy_and_enable([PORTAL_A], [withdrawer], [REMAINDER])
    FleetUpgrader(planner, second_relay).deploy_and_enable([PORTAL_A], [withdrawer], [REMAINDER])

    assert [message.calldata() for message in first_relay.dispatched] == [
        message.calldata() for message in second_relay.dispatched
    ]


def test_context_sender_is_aliased_on_every_plan(upgrader, withdrawer):
    context = CallerContext(sender="0x0000000000000000000000000000000000001234")
    result = upgrader.deploy_and_enable([PORTAL_A, PORTAL_B], [withdrawer] * 2, [REMAINDER] * 2, context=context)

    assert {plan.l2_sender.lower() for plan in result.plans} == {"0x1111000000000000000000000000000000002345"}


def test_malformed_domain_is_rejected_by_name(upgrader, relay, withdrawer):
    with pytest.raises(InvalidAddressError) as excinfo:
        upgrader.deploy_and_enable([PORTAL_A, "0x1234"], [withdrawer] * 2, [REMAINDER] * 2)

    assert excinfo.value.index == 1
    _assert_nothing_dispatched(relay)
    assert _sample(upgrader, "revshare_rejections_total", {"code": "InvalidAddress"}) == 1.0


def test_raw_zero_domain_is_rejected(upgrader, relay, withdrawer):
    with pytest.raises(DomainZeroError):
        upgrader.deploy_and_enable([b"\x00" * 20], [withdrawer], [REMAINDER])
    _assert_nothing_dispatched(relay)


def test_disabled_modes_refuse_remainders(upgrader, relay, vault_specs):
    with pytest.raises(UnexpectedParameterError):
        upgrader.run(TransitionMode.DEPLOY_ONLY_DISABLED, [PORTAL_A], [vault_specs], [REMAINDER])

    _assert_nothing_dispatched(relay)
    assert _sample(upgrader, "revshare_rejections_total", {"code": "UnexpectedParameter"}) == 1.0
