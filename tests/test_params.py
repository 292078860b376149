import copy

import pytest
from ape.utils import ZERO_ADDRESS

from dexgov.constants import MIN_DELAY, QUORUM_PERCENTAGE, VOTING_DELAY, VOTING_PERIOD, VoteType
from dexgov.exceptions import DeploymentConfigError
from dexgov.params import VERIFICATION_STEP, PipelineParameters
from dexgov.plan import always, simulated_only, verification_enabled
from dexgov.registry import DeploymentResult
from dexgov.variables import (
    Constant,
    ContractName,
    DeployerAccount,
    VariableContext,
    ZeroAddress,
    process_raw_value,
    referenced_contracts,
    resolve_param,
)
from tests.conftest import fake_address


@pytest.fixture()
def variable_context():
    return VariableContext(
        contract_names=["DAI", "GovernanceToken", "TimeLock"], constants={"MIN_DELAY": 3600}
    )


def test_variable_kinds(variable_context):
    assert isinstance(process_raw_value("$deployer", variable_context), DeployerAccount)
    assert isinstance(process_raw_value("$ZERO_ADDRESS", variable_context), ZeroAddress)
    assert isinstance(process_raw_value("$MIN_DELAY", variable_context), Constant)
    # an upper case contract name is still a contract
    assert isinstance(process_raw_value("$DAI", variable_context), ContractName)
    assert isinstance(process_raw_value("$TimeLock", variable_context), ContractName)
    assert process_raw_value(42, variable_context) == 42
    assert process_raw_value("plain", variable_context) == "plain"


def test_unknown_variables(variable_context):
    with pytest.raises(DeploymentConfigError, match="Constant 'QUORUM' not found"):
        process_raw_value("$QUORUM", variable_context)
    with pytest.raises(DeploymentConfigError, match="Contract name Exchange not found"):
        process_raw_value("$Exchange", variable_context)


def test_resolution(context, variable_context):
    timelock = fake_address("TimeLock")
    context.registry.put(
        context.chain_id, "TimeLock", DeploymentResult(name="TimeLock", address=timelock, confirmed=True)
    )
    value = process_raw_value(
        ["$TimeLock", ["$deployer", "$ZERO_ADDRESS"], "$MIN_DELAY"], variable_context
    )

    assert resolve_param(value, context) == [timelock, [context.deployer, ZERO_ADDRESS], 3600]
    assert referenced_contracts(value) == ["TimeLock"]
    assert str(value[0]) == "$TimeLock"


def test_pipeline_steps(parameters):
    steps = {step.name: step for step in parameters.steps}

    assert steps["DAI"].predicate is simulated_only
    assert steps["GovernanceToken"].predicate is always
    assert steps["GovernanceToken"].requires == ()
    assert steps["GovernorContract"].requires == ("GovernanceToken", "TimeLock")
    assert steps["DeFiExchange"].requires == ("DAI", "USDT", "LiquidityPoolNFT", "GovernanceToken")

    verification = steps[VERIFICATION_STEP]
    assert verification.predicate is verification_enabled
    assert "DAI" not in verification.requires
    assert "DeFiExchange" in verification.requires


def test_pipeline_wiring_and_proposal(parameters):
    assert [action.description for action in parameters.wiring] == [
        "delegate votes of GovernanceToken to $deployer",
        "initialize($DeFiExchange) on GovernanceToken",
        "initialize($DeFiExchange) on LiquidityPoolNFT",
        "transfer ownership of DeFiExchange to $TimeLock",
        "grant PROPOSER_ROLE on TimeLock to $GovernorContract",
        "grant EXECUTOR_ROLE on TimeLock to $ZERO_ADDRESS",
        "revoke TIMELOCK_ADMIN_ROLE on TimeLock from $deployer",
    ]
    assert parameters.proposal.target == "DeFiExchange"
    assert parameters.proposal.function == "changeWithdrawFeePercentage(uint256)"
    assert parameters.proposal.args == (2,)
    assert parameters.vote.support == VoteType.FOR
    assert parameters.vote.reason == "Good proposal!"


def test_explicit_requirement(pipeline_config):
    config = copy.deepcopy(pipeline_config)
    config["contracts"][config["contracts"].index("LiquidityPoolNFT")] = {
        "LiquidityPoolNFT": {"requires": ["GovernorContract"]}
    }
    parameters = PipelineParameters.from_config(config)
    names = parameters.plan().names
    assert names.index("LiquidityPoolNFT") > names.index("GovernorContract")


def test_no_verification_step(pipeline_config):
    config = dict(pipeline_config, verify=False)
    names = [step.name for step in PipelineParameters.from_config(config).steps]
    assert VERIFICATION_STEP not in names


@pytest.mark.parametrize(
    "update, message",
    [
        ({"contracts": []}, "missing 'contracts'"),
        ({"contracts": [{"GovernanceToken": {"only": "testnet"}}]}, "must be one of"),
        ({"contracts": [{"GovernanceToken": {"constructor_params": {}}}]}, "Unknown field"),
        ({"contracts": [42]}, "Malformed"),
        ({"wiring": [{"approve": {"contract": "GovernanceToken"}}]}, "Unknown wiring action"),
        ({"wiring": [{"delegate": {"contract": "Unknown", "delegatee": "$deployer"}}]}, "unknown contract"),
        ({"wiring": [{"delegate": {"contract": "GovernanceToken"}}]}, "Invalid arguments"),
        ({"proposal": {"target": "DeFiExchange", "function": "f()"}}, "missing field"),
        (
            {"proposal": {"target": "Unknown", "function": "f()", "description": "d"}},
            "unknown contract",
        ),
        ({"vote": {"support": "MAYBE"}}, "must be one of"),
    ],
)
def test_invalid_pipeline(pipeline_config, update, message):
    config = dict(pipeline_config, **update)
    with pytest.raises(DeploymentConfigError, match=message):
        PipelineParameters.from_config(config)


def test_cyclic_pipeline(pipeline_config):
    config = copy.deepcopy(pipeline_config)
    config["contracts"][config["contracts"].index("GovernanceToken")] = {
        "GovernanceToken": {"requires": ["DeFiExchange"]}
    }
    parameters = PipelineParameters.from_config(config)
    with pytest.raises(DeploymentConfigError, match="Cyclic deployment dependency"):
        parameters.plan()


def test_governance_constants(parameters):
    assert parameters.constants["MIN_DELAY"] == MIN_DELAY
    assert parameters.constants["QUORUM_PERCENTAGE"] == QUORUM_PERCENTAGE
    assert parameters.constants["VOTING_PERIOD"] == VOTING_PERIOD
    assert parameters.constants["VOTING_DELAY"] == VOTING_DELAY
