from pathlib import Path
from typing import Dict, List

from dexgov.exceptions import ProposalNotFound
from dexgov.utils import _load_json, _write_json


class ProposalLedger:
    """
    Append-only record of proposal ids, per chain.

    The file maps a chain id (string key) to the ordered list of proposal ids
    (as strings) created on that chain; it is fully rewritten on every append.
    """

    def __init__(self, filepath: Path):
        self.filepath = filepath

    def read(self) -> Dict[str, List[str]]:
        if not self.filepath.exists():
            return dict()
        return _load_json(self.filepath)

    def append(self, chain_id: int, proposal_id: int) -> None:
        data = self.read()
        data.setdefault(str(chain_id), list()).append(str(proposal_id))
        _write_json(data, self.filepath)

    def proposals(self, chain_id: int) -> List[int]:
        return [int(proposal_id) for proposal_id in self.read().get(str(chain_id), list())]

    def latest(self, chain_id: int) -> int:
        """Returns the most recently created proposal on a chain."""
        proposals = self.proposals(chain_id)
        if not proposals:
            raise ProposalNotFound(chain_id=chain_id)
        return proposals[-1]
