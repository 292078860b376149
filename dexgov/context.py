from typing import NamedTuple, Optional

from eth_typing import ChecksumAddress

from dexgov.chain import ChainClient
from dexgov.exceptions import DeploymentConfigError, DeploymentNotFound
from dexgov.networks import NetworkConfig
from dexgov.registry import DeploymentRegistry


class PipelineContext(NamedTuple):
    """Everything a pipeline component needs: which network, how to reach it, what is deployed."""

    network: NetworkConfig
    client: ChainClient
    registry: DeploymentRegistry
    explorer_api_key: Optional[str] = None

    @classmethod
    def create(
        cls,
        network: NetworkConfig,
        client: ChainClient,
        registry: DeploymentRegistry,
        explorer_api_key: Optional[str] = None,
    ) -> "PipelineContext":
        """
        Checks that the client is connected to the configured network.
        Simulated networks are exempt, as forks and dev nodes may report any chain id.
        """
        connected = client.current_network()
        if connected.chain_id != network.chain_id and not network.simulated:
            raise DeploymentConfigError(
                f"chain_id of network '{network.name}' ({network.chain_id}) does not match "
                f"chain_id of current network ({connected.chain_id})."
            )
        return cls(
            network=network, client=client, registry=registry, explorer_api_key=explorer_api_key
        )

    @property
    def chain_id(self) -> int:
        return self.network.chain_id

    @property
    def confirmations(self) -> int:
        return self.network.block_confirmations

    @property
    def deployer(self) -> ChecksumAddress:
        return self.client.deployer

    @property
    def verification_enabled(self) -> bool:
        return not self.network.simulated and bool(self.explorer_api_key)

    def address_of(self, name: str) -> ChecksumAddress:
        """Resolves a logical contract name from the registry, then from the network's known addresses."""
        if self.registry.has(self.chain_id, name):
            return self.registry.get(self.chain_id, name).address
        try:
            return self.network.addresses[name]
        except KeyError:
            raise DeploymentNotFound(chain_id=self.chain_id, name=name)
