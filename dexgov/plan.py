from enum import Enum
from typing import Any, Callable, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from dexgov.context import PipelineContext
from dexgov.exceptions import (
    CyclicDependencyError,
    DeploymentConfigError,
    DeploymentUnconfirmed,
    UnknownDependencyError,
)
from dexgov.registry import DeploymentResult

Action = Callable[[PipelineContext], Optional[DeploymentResult]]
Predicate = Callable[[PipelineContext], bool]


# Predicates


def always(context: PipelineContext) -> bool:
    return True


def simulated_only(context: PipelineContext) -> bool:
    """Mocks only deploy on simulated networks."""
    return context.network.simulated


def live_only(context: PipelineContext) -> bool:
    return not context.network.simulated


def verification_enabled(context: PipelineContext) -> bool:
    """Verification only runs on live networks with an explorer API key configured."""
    return context.verification_enabled


class DeploymentStep(NamedTuple):
    name: str
    action: Action
    requires: Tuple[str, ...] = tuple()
    predicate: Predicate = always


class StepStatus(Enum):
    DEPLOYED = "deployed"
    SATISFIED = "satisfied"  # a confirmed deployment was already recorded
    EXECUTED = "executed"  # ran, but produces no registry record
    SKIPPED = "skipped"  # predicate is false for this network


class StepOutcome(NamedTuple):
    name: str
    status: StepStatus
    result: Optional[DeploymentResult] = None


def _find_cycle(steps: List[DeploymentStep]) -> List[str]:
    """
    Follows unresolved requirements from the first blocked step until a name repeats.
    Every step passed in has at least one requirement among the others.
    """
    blocked = {step.name: step for step in steps}
    path = list()
    current = steps[0].name
    while current not in path:
        path.append(current)
        current = next(name for name in blocked[current].requires if name in blocked)
    return path[path.index(current) :] + [current]


def resolve_order(steps: Sequence[DeploymentStep]) -> List[DeploymentStep]:
    """
    Orders steps so that each one comes after everything it requires.
    Among steps that are ready at the same time, declaration order wins.
    """
    declared = list()
    for step in steps:
        if step.name in declared:
            raise DeploymentConfigError(f"Step '{step.name}' is declared more than once.")
        declared.append(step.name)

    for step in steps:
        for requirement in step.requires:
            if requirement not in declared:
                raise UnknownDependencyError(step=step.name, dependency=requirement)

    remaining = list(steps)
    resolved, done = list(), set()
    while remaining:
        for step in remaining:
            if set(step.requires) <= done:
                break
        else:
            raise CyclicDependencyError(cycle=_find_cycle(remaining))
        remaining.remove(step)
        resolved.append(step)
        done.add(step.name)
    return resolved


class DeploymentPlan:
    """
    A validated, dependency-ordered set of deployment steps.

    Resolution happens on construction, so an invalid plan never runs a single step.
    Running the plan again against the same registry is safe: steps with a
    confirmed recorded deployment are not executed again unless a redeploy is
    explicitly requested.
    """

    def __init__(self, steps: Iterable[DeploymentStep]):
        self.steps = list(steps)
        self.order = resolve_order(self.steps)

    @property
    def names(self) -> List[str]:
        return [step.name for step in self.order]

    def run(self, context: PipelineContext, redeploy: Iterable[str] = ()) -> List[StepOutcome]:
        redeploy = set(redeploy)
        unknown = redeploy - {step.name for step in self.steps}
        if unknown:
            raise DeploymentConfigError(f"Cannot redeploy undeclared step(s): {', '.join(sorted(unknown))}")

        outcomes = list()
        executed = set()
        for step in self.order:
            if not step.predicate(context):
                print(f"Skipping {step.name} on {context.network.name} network")
                outcomes.append(StepOutcome(name=step.name, status=StepStatus.SKIPPED))
                continue

            for requirement in step.requires:
                if requirement not in executed:
                    # raises if neither deployed nor known to the network
                    context.address_of(requirement)

            if step.name not in redeploy and self._is_satisfied(step, context):
                result = context.registry.get(context.chain_id, step.name)
                print(f"(i) {step.name} already deployed at {result.address}")
                outcomes.append(
                    StepOutcome(name=step.name, status=StepStatus.SATISFIED, result=result)
                )
                continue

            result = step.action(context)
            if result is None:
                executed.add(step.name)
                outcomes.append(StepOutcome(name=step.name, status=StepStatus.EXECUTED))
                continue

            context.registry.put(context.chain_id, step.name, result)
            if not result.confirmed:
                # recorded as unconfirmed, so the next run deploys it again
                raise DeploymentUnconfirmed(
                    name=step.name,
                    confirmations=result.confirmations,
                    required=context.confirmations,
                )
            print(
                f"(i) Deployed {step.name} at {result.address} "
                f"({result.confirmations} confirmations)"
            )
            outcomes.append(StepOutcome(name=step.name, status=StepStatus.DEPLOYED, result=result))

        return outcomes

    @staticmethod
    def _is_satisfied(step: DeploymentStep, context: PipelineContext) -> bool:
        if not context.registry.has(context.chain_id, step.name):
            return False
        return context.registry.get(context.chain_id, step.name).confirmed


# Actions


def deploy_action(
    contract_type: str, arguments: Optional[Callable[[PipelineContext], Sequence[Any]]] = None
) -> Action:
    """Returns an action deploying `contract_type` with arguments resolved at run time."""

    def action(context: PipelineContext) -> DeploymentResult:
        constructor_args = list(arguments(context)) if arguments else list()
        deployed = context.client.deploy(contract_type, constructor_args, context.confirmations)
        receipt = deployed.receipt
        return DeploymentResult(
            name=contract_type,
            address=deployed.address,
            constructor_args=tuple(constructor_args),
            confirmed=receipt.confirmations >= context.confirmations,
            confirmations=receipt.confirmations,
            contract_type=contract_type,
            tx_hash=receipt.txn_hash,
            block_number=receipt.block_number,
            deployer=receipt.sender,
            abi=tuple(deployed.abi or ()),
        )

    return action


def verify_action(names: Sequence[str]) -> Action:
    """
    Returns an action publishing the named deployments to the block explorer.
    Deployments already marked as verified in the registry are not published again.
    """

    def action(context: PipelineContext) -> None:
        for name in names:
            result = context.registry.get(context.chain_id, name)
            if result.verified:
                print(f"(i) {name} already verified at {result.address}")
                continue
            context.client.verify(result.address)
            context.registry.put(context.chain_id, name, result._replace(verified=True))

    return action
