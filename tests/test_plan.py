import pytest

from dexgov.exceptions import (
    CyclicDependencyError,
    DeploymentConfigError,
    DeploymentNotFound,
    DeploymentUnconfirmed,
    UnknownDependencyError,
)
from dexgov.plan import (
    DeploymentPlan,
    DeploymentStep,
    StepStatus,
    resolve_order,
    simulated_only,
)
from tests.conftest import fake_address, recording_step_action


def _steps(log, *specs):
    return [
        DeploymentStep(name=name, action=recording_step_action(name, log), requires=tuple(requires))
        for name, requires in specs
    ]


def test_dependencies_deploy_first():
    log = []
    steps = _steps(
        log,
        ("GovernorContract", ["GovernanceToken", "TimeLock"]),
        ("GovernanceToken", []),
        ("TimeLock", []),
    )
    order = [step.name for step in resolve_order(steps)]
    assert order == ["GovernanceToken", "TimeLock", "GovernorContract"]


def test_declaration_order_breaks_ties():
    log = []
    steps = _steps(log, ("B", []), ("A", []), ("D", ["A"]), ("C", []))
    assert DeploymentPlan(steps).names == ["B", "A", "D", "C"]


def test_cycle_is_rejected_before_anything_runs():
    log = []
    steps = _steps(log, ("A", ["B"]), ("B", ["A"]), ("C", []))
    with pytest.raises(CyclicDependencyError) as exc_info:
        DeploymentPlan(steps)

    assert exc_info.value.cycle == ["A", "B", "A"]
    assert "A -> B -> A" in str(exc_info.value)
    assert log == []


def test_unknown_dependency():
    log = []
    steps = _steps(log, ("GovernorContract", ["GovernanceToken"]))
    with pytest.raises(UnknownDependencyError) as exc_info:
        DeploymentPlan(steps)

    assert exc_info.value.step == "GovernorContract"
    assert exc_info.value.dependency == "GovernanceToken"
    assert isinstance(exc_info.value, DeploymentConfigError)


def test_duplicate_step_names():
    log = []
    steps = _steps(log, ("A", []), ("A", []))
    with pytest.raises(DeploymentConfigError, match="more than once"):
        DeploymentPlan(steps)


def test_run_records_results(context):
    log = []
    plan = DeploymentPlan(_steps(log, ("B", ["A"]), ("A", [])))
    outcomes = plan.run(context)

    assert log == ["A", "B"]
    assert [o.status for o in outcomes] == [StepStatus.DEPLOYED, StepStatus.DEPLOYED]
    assert context.registry.get(context.chain_id, "B").address == fake_address("B")


def test_rerun_is_idempotent(context, simulated_chain):
    log = []
    plan = DeploymentPlan(_steps(log, ("A", []), ("B", ["A"])))
    plan.run(context)

    outcomes = plan.run(context)
    assert log == ["A", "B"]
    assert all(o.status == StepStatus.SATISFIED for o in outcomes)
    assert simulated_chain.transactions == []


def test_unconfirmed_deployment_stops_the_run(context):
    log = []
    steps = [
        DeploymentStep(name="A", action=recording_step_action("A", log, confirmed=False)),
        DeploymentStep(name="B", action=recording_step_action("B", log), requires=("A",)),
    ]
    plan = DeploymentPlan(steps)
    with pytest.raises(DeploymentUnconfirmed) as exc_info:
        plan.run(context)

    assert log == ["A"]
    assert exc_info.value.name == "A"
    assert exc_info.value.required == context.confirmations
    assert not context.registry.get(context.chain_id, "A").confirmed
    assert not context.registry.has(context.chain_id, "B")

    # the unconfirmed record does not count as deployed
    with pytest.raises(DeploymentUnconfirmed):
        plan.run(context)
    assert log == ["A", "A"]


def test_explicit_redeploy(context):
    log = []
    plan = DeploymentPlan(_steps(log, ("A", []), ("B", ["A"])))
    plan.run(context)

    outcomes = plan.run(context, redeploy=["A"])
    assert log == ["A", "B", "A"]
    statuses = {o.name: o.status for o in outcomes}
    assert statuses == {"A": StepStatus.DEPLOYED, "B": StepStatus.SATISFIED}


def test_redeploy_of_undeclared_step(context):
    plan = DeploymentPlan(_steps([], ("A", [])))
    with pytest.raises(DeploymentConfigError, match="undeclared"):
        plan.run(context, redeploy=["Z"])


def test_predicate_skips_step(live_context):
    log = []
    steps = [
        DeploymentStep(name="MockToken", action=recording_step_action("MockToken", log), predicate=simulated_only),
        DeploymentStep(name="Other", action=recording_step_action("Other", log)),
    ]
    outcomes = DeploymentPlan(steps).run(live_context)

    assert log == ["Other"]
    assert outcomes[0].status == StepStatus.SKIPPED
    assert not live_context.registry.has(live_context.chain_id, "MockToken")


def test_skipped_requirement_resolves_from_network_addresses(live_context):
    log = []
    steps = [
        DeploymentStep(name="DAI", action=recording_step_action("DAI", log), predicate=simulated_only),
        DeploymentStep(name="Exchange", action=recording_step_action("Exchange", log), requires=("DAI",)),
    ]
    DeploymentPlan(steps).run(live_context)
    assert log == ["Exchange"]


def test_skipped_requirement_without_address_is_fatal(live_context):
    log = []
    steps = [
        DeploymentStep(name="Mock", action=recording_step_action("Mock", log), predicate=simulated_only),
        DeploymentStep(name="Exchange", action=recording_step_action("Exchange", log), requires=("Mock",)),
    ]
    with pytest.raises(DeploymentNotFound):
        DeploymentPlan(steps).run(live_context)
    assert log == []


def test_step_without_result_is_executed(context):
    calls = []

    def action(ctx):
        calls.append(ctx.chain_id)

    log = []
    steps = _steps(log, ("A", [])) + [DeploymentStep(name="Check", action=action, requires=("A",))]
    outcomes = DeploymentPlan(steps).run(context)

    assert outcomes[-1].status == StepStatus.EXECUTED
    assert calls == [context.chain_id]
    assert not context.registry.has(context.chain_id, "Check")
