import pytest
from ape.exceptions import ContractLogicError
from ape.utils import ZERO_ADDRESS

from dexgov.exceptions import DeploymentNotFound, WiringFailed
from dexgov.params import PipelineParameters
from dexgov.wiring import WiringExecutor, _is_set


@pytest.fixture()
def build_wiring(pipeline_config):
    """Builds a wiring sequence against the pipeline's contracts."""

    def build(*actions):
        config = dict(pipeline_config, wiring=list(actions))
        return PipelineParameters.from_config(config).executor()

    return build


@pytest.fixture()
def plan_deployed(context, parameters):
    parameters.plan().run(context)
    return context


def _initialize(contract):
    return {
        "initialize": {
            "contract": contract,
            "args": ["$DeFiExchange"],
            "guard": "getDeFiExchangeAddress()",
        }
    }


def _sent(simulated_chain, function):
    return [t for t in simulated_chain.transactions if t[0] == "send" and t[2] == function]


def test_initialize_twice_applies_once(plan_deployed, simulated_chain, build_wiring):
    executor = build_wiring(_initialize("GovernanceToken"))

    first = executor.run(plan_deployed)
    second = executor.run(plan_deployed)

    assert [o.applied for o in first] == [True]
    assert [o.applied for o in second] == [False]
    assert len(_sent(simulated_chain, "initialize")) == 1


def test_repeated_action_in_one_sequence(plan_deployed, simulated_chain, build_wiring):
    executor = build_wiring(_initialize("LiquidityPoolNFT"), _initialize("LiquidityPoolNFT"))
    outcomes = executor.run(plan_deployed)

    assert [o.applied for o in outcomes] == [True, False]
    assert len(_sent(simulated_chain, "initialize")) == 1


def test_initializer_rejects_repeat_call(plan_deployed, simulated_chain):
    token = plan_deployed.address_of("GovernanceToken")
    exchange = plan_deployed.address_of("DeFiExchange")
    simulated_chain.send(token, "initialize(address)", [exchange])

    with pytest.raises(ContractLogicError, match="GovernanceToken__StakingContractAlreadySet"):
        simulated_chain.send(token, "initialize(address)", [exchange])


def test_failure_aborts_remaining_actions(plan_deployed, simulated_chain, build_wiring):
    grant = {
        "grant_role": {
            "contract": "TimeLock",
            "role": "PROPOSER_ROLE",
            "account": "$GovernorContract",
        }
    }
    executor = build_wiring(
        _initialize("GovernanceToken"),
        {"revoke_role": {"contract": "TimeLock", "role": "TIMELOCK_ADMIN_ROLE", "account": "$deployer"}},
        grant,
        _initialize("LiquidityPoolNFT"),
    )

    with pytest.raises(WiringFailed) as exc_info:
        executor.run(plan_deployed)

    error = exc_info.value
    assert error.action is executor.actions[2]
    assert error.action.description == "grant PROPOSER_ROLE on TimeLock to $GovernorContract"
    assert isinstance(error.cause, ContractLogicError)
    assert "is missing role" in error.cause.revert_message
    assert error.__cause__ is error.cause

    # applied actions stay applied; the rest never ran
    token = plan_deployed.address_of("GovernanceToken")
    nft = plan_deployed.address_of("LiquidityPoolNFT")
    assert simulated_chain.call(token, "getDeFiExchangeAddress()") == plan_deployed.address_of("DeFiExchange")
    assert simulated_chain.call(nft, "getDeFiExchangeAddress()") == ZERO_ADDRESS
    assert len(_sent(simulated_chain, "initialize")) == 1


def test_unresolvable_reference_fails_before_applying(context, simulated_chain, build_wiring):
    executor = build_wiring(_initialize("GovernanceToken"))

    with pytest.raises(DeploymentNotFound):
        executor.run(context)
    assert simulated_chain.transactions == []


def test_empty_sequence(context):
    assert WiringExecutor([]).run(context) == []


@pytest.mark.parametrize(
    "value, expected",
    [
        (ZERO_ADDRESS, False),
        ("0x70997970C51812dc3A010C7d01b50e0d17dc79C8", True),
        (0, False),
        (3, True),
        (b"\x00" * 32, False),
        (b"\x01" + b"\x00" * 31, True),
        (False, False),
        (True, True),
        ("", False),
    ],
)
def test_guard_values(value, expected):
    assert _is_set(value) is expected
