import pytest
from eth_utils import keccak, to_checksum_address

from dexgov.constants import PIPELINE_FILEPATH
from dexgov.context import PipelineContext
from dexgov.networks import get_network_config
from dexgov.params import PipelineParameters
from dexgov.proposals import ProposalLedger
from dexgov.registry import DeploymentRegistry, DeploymentResult
from dexgov.utils import _load_yaml
from tests.simulated_chain import SimulatedChain

POLYGON_CHAIN_ID = 137


# Utility functions
def fake_address(name: str) -> str:
    return to_checksum_address(keccak(text=name)[12:])


def access_control_error_message(address, role):
    return f"AccessControl: account {address.lower()} is missing role 0x{role.hex()}"


def recording_step_action(name, log, confirmed=True):
    """A deployment action which records its execution instead of touching a chain."""

    def action(context):
        log.append(name)
        return DeploymentResult(
            name=name,
            address=fake_address(name),
            confirmed=confirmed,
            confirmations=context.confirmations if confirmed else 0,
        )

    return action


# Fixtures
@pytest.fixture()
def simulated_chain():
    return SimulatedChain()


@pytest.fixture()
def network():
    return get_network_config("local")


@pytest.fixture()
def registry(tmp_path):
    return DeploymentRegistry(filepath=tmp_path / "registry.json")


@pytest.fixture()
def context(network, simulated_chain, registry):
    return PipelineContext.create(network=network, client=simulated_chain, registry=registry)


@pytest.fixture()
def live_chain():
    return SimulatedChain(chain_id=POLYGON_CHAIN_ID, name="polygon", simulated=False)


@pytest.fixture()
def live_context(live_chain, tmp_path):
    return PipelineContext.create(
        network=get_network_config("polygon"),
        client=live_chain,
        registry=DeploymentRegistry(filepath=tmp_path / "live-registry.json"),
        explorer_api_key="explorer-api-key",
    )


@pytest.fixture()
def pipeline_config():
    return _load_yaml(PIPELINE_FILEPATH)


@pytest.fixture()
def parameters(pipeline_config):
    return PipelineParameters.from_config(pipeline_config)


@pytest.fixture()
def deployed(context, parameters):
    """A local network with the whole pipeline deployed and wired."""
    parameters.plan().run(context)
    parameters.executor().run(context)
    return context


@pytest.fixture()
def proposal_ledger(tmp_path):
    return ProposalLedger(filepath=tmp_path / "proposals.json")
