import os
from pathlib import Path
from typing import Dict, Mapping, NamedTuple, Optional

from ape import networks
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from dexgov.constants import (
    BLOCK_CONFIRMATIONS,
    LOCAL,
    LOCAL_NETWORK_BLOCK_CONFIRMATIONS,
    NETWORKS_FILEPATH,
    PROPOSALS_FILEPATH,
    REGISTRY_FILEPATH,
)
from dexgov.exceptions import DeploymentConfigError
from dexgov.utils import _load_yaml

FALSY_ENV_VALUES = ("", "0", "false", "no", "off")


def is_local_network() -> bool:
    """Returns True when the connected ape provider is a local (simulated) network."""
    return networks.provider.network.name == LOCAL


class NetworkConfig(NamedTuple):
    """
    Per-network deployment settings.

    `addresses` maps logical contract names to contracts that already exist on the
    network (e.g. stablecoins on a live chain) and stand in for mock deployments.
    """

    name: str
    chain_id: int
    ecosystem: str = "ethereum"
    ape_network: str = LOCAL
    block_confirmations: int = LOCAL_NETWORK_BLOCK_CONFIRMATIONS
    simulated: bool = False
    addresses: Mapping[str, ChecksumAddress] = dict()

    FIELDS = ("chain_id", "ecosystem", "ape_network", "block_confirmations", "simulated", "addresses")

    @classmethod
    def from_dict(cls, name: str, data: Optional[dict]) -> "NetworkConfig":
        if not isinstance(data, dict):
            raise DeploymentConfigError(f"Malformed configuration for network '{name}'.")

        unknown = set(data) - set(cls.FIELDS)
        if unknown:
            raise DeploymentConfigError(
                f"Unknown field(s) for network '{name}': {', '.join(sorted(unknown))}"
            )

        chain_id = data.get("chain_id")
        if chain_id is None:
            raise DeploymentConfigError(f"chain_id is not set for network '{name}'.")
        try:
            chain_id = int(chain_id)
        except (TypeError, ValueError):
            raise DeploymentConfigError(f"chain_id '{chain_id}' of network '{name}' is not an integer.")

        simulated = bool(data.get("simulated", False))
        default_confirmations = (
            LOCAL_NETWORK_BLOCK_CONFIRMATIONS if simulated else BLOCK_CONFIRMATIONS
        )
        confirmations = data.get("block_confirmations", default_confirmations)
        if not isinstance(confirmations, int) or confirmations < 1:
            raise DeploymentConfigError(
                f"block_confirmations of network '{name}' must be a positive integer."
            )

        addresses = dict()
        for contract_name, address in (data.get("addresses") or {}).items():
            try:
                addresses[contract_name] = to_checksum_address(address)
            except (TypeError, ValueError):
                raise DeploymentConfigError(
                    f"Invalid address '{address}' for {contract_name} on network '{name}'."
                )

        return cls(
            name=name,
            chain_id=chain_id,
            ecosystem=data.get("ecosystem", "ethereum"),
            ape_network=data.get("ape_network", name),
            block_confirmations=confirmations,
            simulated=simulated,
            addresses=addresses,
        )

    def network_choice(self, endpoint: Optional[str] = None) -> str:
        """Returns the ape network choice string, optionally pinned to an RPC endpoint."""
        choice = f"{self.ecosystem}:{self.ape_network}"
        if endpoint:
            choice = f"{choice}:{endpoint}"
        return choice


def load_networks(filepath: Path = NETWORKS_FILEPATH) -> Dict[str, NetworkConfig]:
    """Loads and validates every network record of a networks YAML file."""
    config = _load_yaml(filepath) or dict()
    if not isinstance(config, dict):
        raise DeploymentConfigError(f"Malformed networks file {filepath}.")

    network_configs = dict()
    chain_ids = dict()
    for name, data in config.items():
        network_config = NetworkConfig.from_dict(name, data)
        if network_config.chain_id in chain_ids:
            raise DeploymentConfigError(
                f"Networks '{chain_ids[network_config.chain_id]}' and '{name}' "
                f"share chain_id {network_config.chain_id}."
            )
        chain_ids[network_config.chain_id] = name
        network_configs[name] = network_config
    return network_configs


def get_network_config(name: str, filepath: Path = NETWORKS_FILEPATH) -> NetworkConfig:
    network_configs = load_networks(filepath)
    try:
        return network_configs[name]
    except KeyError:
        raise DeploymentConfigError(
            f"Unknown network '{name}'; expected one of {', '.join(network_configs)}."
        )


class EnvironmentOptions(NamedTuple):
    """Options recognized from the process environment."""

    network: str = LOCAL
    endpoint: Optional[str] = None
    account_alias: Optional[str] = None
    passphrase: Optional[str] = None
    explorer_api_key: Optional[str] = None
    report_gas: bool = False
    registry_filepath: Path = REGISTRY_FILEPATH
    proposals_filepath: Path = PROPOSALS_FILEPATH

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "EnvironmentOptions":
        environ = os.environ if environ is None else environ
        report_gas = environ.get("REPORT_GAS", "").strip().lower() not in FALSY_ENV_VALUES
        return cls(
            network=environ.get("NETWORK") or LOCAL,
            endpoint=environ.get("RPC_URL") or None,
            account_alias=environ.get("DEPLOYER_ACCOUNT") or None,
            passphrase=environ.get("DEPLOYER_PASSPHRASE") or None,
            explorer_api_key=environ.get("ETHERSCAN_API_KEY") or None,
            report_gas=report_gas,
            registry_filepath=Path(environ.get("REGISTRY_FILE") or REGISTRY_FILEPATH),
            proposals_filepath=Path(environ.get("PROPOSALS_FILE") or PROPOSALS_FILEPATH),
        )
