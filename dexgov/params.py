import typing
from collections import OrderedDict
from pathlib import Path
from typing import Any, List, NamedTuple, Optional

from dexgov.constants import PIPELINE_FILEPATH, VoteType
from dexgov.exceptions import DeploymentConfigError
from dexgov.governance import ProposalTemplate
from dexgov.plan import (
    DeploymentPlan,
    DeploymentStep,
    always,
    deploy_action,
    live_only,
    simulated_only,
    verification_enabled,
    verify_action,
)
from dexgov.utils import _load_yaml
from dexgov.variables import (
    VariableContext,
    process_raw_value,
    referenced_contracts,
    resolve_param,
)
from dexgov.wiring import (
    WiringAction,
    WiringExecutor,
    delegate,
    grant_role,
    initialize,
    revoke_role,
    transfer_ownership,
)

CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"
CONTRACT_TYPE_KEY = "contract_type"
CONTRACT_REQUIRES_KEY = "requires"
CONTRACT_ONLY_KEY = "only"
CONTRACT_KEYS = (
    CONTRACT_CONSTRUCTOR_PARAMETER_KEY,
    CONTRACT_TYPE_KEY,
    CONTRACT_REQUIRES_KEY,
    CONTRACT_ONLY_KEY,
)

PREDICATES = {"simulated": simulated_only, "live": live_only}

VERIFICATION_STEP = "Verification"

WIRING_ACTIONS = {
    "delegate": delegate,
    "initialize": initialize,
    "transfer_ownership": transfer_ownership,
    "grant_role": grant_role,
    "revoke_role": revoke_role,
}


class VoteParameters(NamedTuple):
    support: VoteType = VoteType.FOR
    reason: str = ""


def _get_contract_names(config: typing.Dict) -> List[str]:
    contract_names = list()
    for contract_info in config["contracts"]:
        if isinstance(contract_info, str):
            contract_names.append(contract_info)
        elif isinstance(contract_info, dict):
            contract_names.extend(list(contract_info.keys()))
        else:
            raise DeploymentConfigError("Malformed pipeline YAML.")

    return contract_names


def _constructor_arguments(parameters: OrderedDict):
    def arguments(context) -> List[Any]:
        return [resolve_param(value, context) for value in parameters.values()]

    return arguments


def _process_step(contract_info: Any, variable_context: VariableContext) -> DeploymentStep:
    if isinstance(contract_info, str):
        return DeploymentStep(name=contract_info, action=deploy_action(contract_info))

    if not isinstance(contract_info, dict) or len(contract_info) != 1:
        raise DeploymentConfigError("Malformed pipeline YAML.")

    contract_name = list(contract_info.keys())[0]  # only one entry
    contract_data = contract_info[contract_name] or dict()
    unknown = set(contract_data) - set(CONTRACT_KEYS)
    if unknown:
        raise DeploymentConfigError(
            f"Unknown field(s) for {contract_name}: {', '.join(sorted(unknown))}"
        )

    parameters = OrderedDict()
    for name, value in (contract_data.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY) or {}).items():
        parameters[name] = process_raw_value(value, variable_context)

    requires = list(contract_data.get(CONTRACT_REQUIRES_KEY) or [])
    for name in referenced_contracts(list(parameters.values())):
        if name not in requires:
            requires.append(name)

    only = contract_data.get(CONTRACT_ONLY_KEY)
    if only is not None and only not in PREDICATES:
        raise DeploymentConfigError(
            f"'{CONTRACT_ONLY_KEY}' of {contract_name} must be one of {', '.join(PREDICATES)}."
        )

    contract_type = contract_data.get(CONTRACT_TYPE_KEY, contract_name)
    return DeploymentStep(
        name=contract_name,
        action=deploy_action(contract_type, _constructor_arguments(parameters)),
        requires=tuple(requires),
        predicate=PREDICATES[only] if only else always,
    )


def _verification_step(steps: List[DeploymentStep]) -> DeploymentStep:
    """Verifies every contract which is deployed on live networks."""
    names = [step.name for step in steps if step.predicate is not simulated_only]
    return DeploymentStep(
        name=VERIFICATION_STEP,
        action=verify_action(names),
        requires=tuple(names),
        predicate=verification_enabled,
    )


def _process_wiring_action(action_info: Any, variable_context: VariableContext) -> WiringAction:
    if not isinstance(action_info, dict) or len(action_info) != 1:
        raise DeploymentConfigError("Malformed wiring entry in pipeline YAML.")

    kind = list(action_info.keys())[0]
    try:
        factory = WIRING_ACTIONS[kind]
    except KeyError:
        raise DeploymentConfigError(
            f"Unknown wiring action '{kind}'; expected one of {', '.join(WIRING_ACTIONS)}."
        )

    arguments = dict(action_info[kind] or {})
    contract = arguments.get("contract")
    if contract not in variable_context.contract_names:
        raise DeploymentConfigError(f"Wiring action '{kind}' targets unknown contract '{contract}'.")

    processed = {
        name: value if name == "contract" else process_raw_value(value, variable_context)
        for name, value in arguments.items()
    }
    try:
        return factory(**processed)
    except TypeError as e:
        raise DeploymentConfigError(f"Invalid arguments for wiring action '{kind}': {e}")


def _process_vote(vote_info: Optional[dict]) -> VoteParameters:
    vote_info = vote_info or dict()
    support = vote_info.get("support", VoteType.FOR.name)
    try:
        support = VoteType[str(support).upper()]
    except KeyError:
        raise DeploymentConfigError(
            f"Vote support '{support}' must be one of {', '.join(v.name for v in VoteType)}."
        )
    return VoteParameters(support=support, reason=vote_info.get("reason", ""))


class PipelineParameters:
    """The declarative deployment pipeline: steps, wiring, and the default proposal."""

    def __init__(
        self,
        steps: List[DeploymentStep],
        wiring: List[WiringAction],
        proposal: Optional[ProposalTemplate] = None,
        vote: VoteParameters = VoteParameters(),
        constants: Optional[typing.Dict[str, Any]] = None,
    ):
        self.steps = steps
        self.wiring = wiring
        self.proposal = proposal
        self.vote = vote
        self.constants = constants or dict()

    @classmethod
    def from_yaml(cls, filepath: Path = PIPELINE_FILEPATH) -> "PipelineParameters":
        config = _load_yaml(filepath)
        return cls.from_config(config)

    @classmethod
    def from_config(cls, config: typing.Dict) -> "PipelineParameters":
        if not isinstance(config, dict) or not config.get("contracts"):
            raise DeploymentConfigError("Pipeline parameters file missing 'contracts' field.")

        constants = config.get("constants") or dict()
        variable_context = VariableContext(
            contract_names=_get_contract_names(config), constants=constants
        )

        steps = [_process_step(info, variable_context) for info in config["contracts"]]
        if config.get("verify", False):
            steps.append(_verification_step(steps))

        wiring = [_process_wiring_action(info, variable_context) for info in config.get("wiring") or []]

        proposal = None
        proposal_info = config.get("proposal")
        if proposal_info:
            missing = {"target", "function", "description"} - set(proposal_info)
            if missing:
                raise DeploymentConfigError(
                    f"Proposal is missing field(s): {', '.join(sorted(missing))}"
                )
            target = proposal_info["target"]
            if target not in variable_context.contract_names:
                raise DeploymentConfigError(f"Proposal targets unknown contract '{target}'.")
            proposal = ProposalTemplate(
                target=target,
                function=proposal_info["function"],
                args=tuple(process_raw_value(list(proposal_info.get("args") or []), variable_context)),
                value=int(proposal_info.get("value", 0)),
                description=proposal_info["description"],
            )

        return cls(
            steps=steps,
            wiring=wiring,
            proposal=proposal,
            vote=_process_vote(config.get("vote")),
            constants=constants,
        )

    def plan(self) -> DeploymentPlan:
        return DeploymentPlan(self.steps)

    def executor(self) -> WiringExecutor:
        return WiringExecutor(self.wiring)
