from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from dexgov.exceptions import DeploymentNotFound
from dexgov.utils import _load_json, _write_json, from_json_value, to_json_value

ChainId = int
ContractName = str


class DeploymentResult(NamedTuple):
    """Represents a single deployed contract, as recorded for one network."""

    name: ContractName
    address: ChecksumAddress
    constructor_args: Tuple[Any, ...] = tuple()
    confirmed: bool = False
    confirmations: int = 0
    contract_type: Optional[str] = None
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    deployer: Optional[ChecksumAddress] = None
    abi: Tuple[dict, ...] = tuple()
    verified: bool = False


def read_registry(filepath: Path) -> Dict[Tuple[ChainId, ContractName], DeploymentResult]:
    data = _load_json(filepath)
    results = dict()
    for chain_id, entries in data.items():
        for contract_name, artifacts in entries.items():
            result = DeploymentResult(
                name=contract_name,
                address=to_checksum_address(artifacts["address"]),
                constructor_args=tuple(from_json_value(artifacts.get("constructor_args", []))),
                confirmed=artifacts.get("confirmed", False),
                confirmations=artifacts.get("confirmations", 0),
                contract_type=artifacts.get("contract_type"),
                tx_hash=artifacts.get("tx_hash"),
                block_number=artifacts.get("block_number"),
                deployer=artifacts.get("deployer"),
                abi=tuple(artifacts.get("abi", [])),
                verified=artifacts.get("verified", False),
            )
            results[(int(chain_id), contract_name)] = result
    return results


def write_registry(
    results: Dict[Tuple[ChainId, ContractName], DeploymentResult], filepath: Path
) -> Path:
    """Rewrites the registry file with every recorded deployment, in a stable order."""
    data = defaultdict(dict)
    for chain_id, name in sorted(results, key=lambda key: (str(key[0]), key[1])):
        result = results[(chain_id, name)]
        entry_abi = list(result.abi)
        entry_abi.sort(key=lambda d: (d["type"], d.get("name", "")))
        data[str(chain_id)][name] = {
            "address": result.address,
            "contract_type": result.contract_type or name,
            "constructor_args": to_json_value(list(result.constructor_args)),
            "confirmed": result.confirmed,
            "confirmations": result.confirmations,
            "tx_hash": result.tx_hash,
            "block_number": result.block_number,
            "deployer": result.deployer,
            "abi": entry_abi,
            "verified": result.verified,
        }
    return _write_json(data, filepath)


class DeploymentRegistry:
    """
    Deployed contracts keyed by (chain id, logical contract name).

    With a filepath the registry is loaded on creation and rewritten on every put,
    so deployments survive across process runs; without one it lives in memory.
    """

    def __init__(self, filepath: Optional[Path] = None):
        self.filepath = filepath
        self._results: Dict[Tuple[ChainId, ContractName], DeploymentResult] = dict()
        if filepath is not None and filepath.exists():
            self._results.update(read_registry(filepath))

    def has(self, chain_id: ChainId, name: ContractName) -> bool:
        return (chain_id, name) in self._results

    def get(self, chain_id: ChainId, name: ContractName) -> DeploymentResult:
        try:
            return self._results[(chain_id, name)]
        except KeyError:
            raise DeploymentNotFound(chain_id=chain_id, name=name)

    def put(self, chain_id: ChainId, name: ContractName, result: DeploymentResult) -> None:
        if result.name != name:
            result = result._replace(name=name)
        self._results[(chain_id, name)] = result
        if self.filepath is not None:
            write_registry(self._results, self.filepath)

    def results(self, chain_id: Optional[ChainId] = None) -> List[DeploymentResult]:
        """Returns the recorded deployments, optionally only those of one chain."""
        return [
            result
            for (result_chain_id, _), result in self._results.items()
            if chain_id is None or result_chain_id == chain_id
        ]

    def chain_ids(self) -> List[ChainId]:
        return sorted({chain_id for chain_id, _ in self._results})
