import json
from pathlib import Path
from typing import Any, Dict

import yaml
from ape import networks, project
from ape.contracts import ContractContainer
from eth_utils import is_hex, is_hex_address, to_bytes, to_hex

STANDARD_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def _write_json(data: Dict, filepath: Path) -> Path:
    """Fully rewrites a JSON file, creating its parent directory when missing."""
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as file:
        json.dump(data, file, **STANDARD_JSON_FORMAT)
    return filepath


def to_json_value(value: Any) -> Any:
    """Converts a resolved parameter into something the JSON encoder accepts."""
    if isinstance(value, (list, tuple)):
        return [to_json_value(v) for v in value]
    if isinstance(value, (bytes, bytearray)):
        return to_hex(value)
    return value


def from_json_value(value: Any) -> Any:
    """
    Reverses to_json_value for stored parameters: hex strings become bytes again,
    except 20-byte values, which are kept as addresses.
    """
    if isinstance(value, list):
        return [from_json_value(v) for v in value]
    if isinstance(value, str) and value.startswith("0x") and is_hex(value) and not is_hex_address(value):
        return to_bytes(hexstr=value)
    return value


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            contract_container = getattr(dependency_api, contract)
            return contract_container
        except AttributeError:
            continue
    raise ValueError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container


def check_etherscan_plugin() -> None:
    """Checks that the ape-etherscan plugin needed for verification is installed."""
    try:
        import ape_etherscan  # noqa: F401
    except ImportError:
        raise ImportError("Please install the ape-etherscan plugin to verify contracts.")


def get_chain_name(chain_id: int) -> str:
    """Returns the name of the chain given its chain ID."""
    for ecosystem_name, ecosystem in networks.ecosystems.items():
        for network_name, network in ecosystem.networks.items():
            if network.chain_id == chain_id:
                return f"{ecosystem_name} {network_name}"
    raise ValueError(f"Chain ID {chain_id} not found in networks.")
