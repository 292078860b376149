from typing import Any, NamedTuple, Optional, Sequence, Tuple

from ape.exceptions import ContractLogicError
from eth_abi import encode
from eth_typing import ChecksumAddress
from eth_utils import keccak

from dexgov.chain import TransactionReceipt
from dexgov.constants import GOVERNOR, TIMELOCK, ProposalState, VoteType
from dexgov.context import PipelineContext
from dexgov.exceptions import (
    DescriptionHashMismatch,
    InsufficientVotingState,
    PrematureExecution,
    SimulatedNetworkRequired,
)
from dexgov.proposals import ProposalLedger
from dexgov.variables import resolve_param

EMPTY_BYTES32 = b"\x00" * 32


def hash_description(description: str) -> bytes:
    return keccak(text=description)


def compute_proposal_id(
    targets: Sequence[ChecksumAddress],
    values: Sequence[int],
    calldatas: Sequence[bytes],
    description_hash: bytes,
) -> int:
    """Same derivation as Governor.hashProposal: the id is bound to the proposal's content."""
    encoded = encode(
        ["address[]", "uint256[]", "bytes[]", "bytes32"],
        [list(targets), list(values), [bytes(c) for c in calldatas], description_hash],
    )
    return int.from_bytes(keccak(encoded), "big")


class ProposalCall(NamedTuple):
    """The content of a proposal, as passed to propose, queue and execute."""

    targets: Tuple[ChecksumAddress, ...]
    values: Tuple[int, ...]
    calldatas: Tuple[bytes, ...]
    description: str

    @property
    def description_hash(self) -> bytes:
        return hash_description(self.description)

    @property
    def proposal_id(self) -> int:
        return compute_proposal_id(self.targets, self.values, self.calldatas, self.description_hash)


class Proposal(NamedTuple):
    id: int
    call: ProposalCall
    state: ProposalState
    snapshot_block: int
    deadline_block: int
    receipt: TransactionReceipt


class ProposalTemplate(NamedTuple):
    """A single-call proposal against a logical contract name."""

    target: str
    function: str
    args: Tuple[Any, ...] = tuple()
    value: int = 0
    description: str = ""

    def build(self, context: PipelineContext) -> ProposalCall:
        address = context.address_of(self.target)
        calldata = context.client.encode_call(
            address, self.function, resolve_param(list(self.args), context)
        )
        return ProposalCall(
            targets=(address,),
            values=(self.value,),
            calldatas=(bytes(calldata),),
            description=self.description,
        )


class ProposalDriver:
    """
    Drives a proposal through propose -> vote -> queue -> execute.

    On simulated networks the driver moves blocks and time itself so that each
    step becomes possible right after the previous one; on live networks the
    caller has to wait for the voting window and the timelock delay in real time.
    Nothing is retried: a failed call propagates as-is.
    """

    def __init__(
        self,
        context: PipelineContext,
        ledger: Optional[ProposalLedger] = None,
        governor: str = GOVERNOR,
        timelock: str = TIMELOCK,
        advance: Optional[bool] = None,
    ):
        if advance is None:
            advance = context.network.simulated
        elif advance and not context.network.simulated:
            raise SimulatedNetworkRequired(
                f"Cannot advance blocks or time on live network '{context.network.name}'"
            )
        self.context = context
        self.ledger = ledger
        self.advance = advance
        self.governor = context.address_of(governor)
        self.timelock = context.address_of(timelock)

    def _call(self, function_signature: str, *args) -> Any:
        return self.context.client.call(self.governor, function_signature, list(args))

    def _send(self, function_signature: str, *args) -> TransactionReceipt:
        return self.context.client.send(
            self.governor,
            function_signature,
            list(args),
            confirmations=self.context.confirmations,
        )

    def state(self, proposal_id: int) -> ProposalState:
        return ProposalState(self._call("state(uint256)", proposal_id))

    def _require_state(self, proposal_id: int, required: ProposalState) -> None:
        state = self.state(proposal_id)
        if state != required:
            raise InsufficientVotingState(proposal_id=proposal_id, state=state, required=required)

    @staticmethod
    def _check_description(proposal_id: int, call: ProposalCall) -> None:
        derived_id = call.proposal_id
        if derived_id != proposal_id:
            raise DescriptionHashMismatch(
                proposal_id=proposal_id,
                description_hash=call.description_hash,
                derived_id=derived_id,
            )

    def propose(self, call: ProposalCall) -> Proposal:
        print(f"Proposing {len(call.targets)} call(s) to {', '.join(call.targets)}")
        print(f"Proposal Description:\n  {call.description}")
        receipt = self._send(
            "propose(address[],uint256[],bytes[],string)",
            list(call.targets),
            list(call.values),
            list(call.calldatas),
            call.description,
        )
        proposal_id = call.proposal_id
        if self.advance:
            # move to the start of the voting period
            self.context.client.advance_blocks(self._call("votingDelay()") + 1)

        if self.ledger is not None:
            self.ledger.append(self.context.chain_id, proposal_id)

        proposal = Proposal(
            id=proposal_id,
            call=call,
            state=self.state(proposal_id),
            snapshot_block=self._call("proposalSnapshot(uint256)", proposal_id),
            deadline_block=self._call("proposalDeadline(uint256)", proposal_id),
            receipt=receipt,
        )
        print(f"Proposed with proposal ID:\n  {proposal.id}")
        print(f"Current Proposal State: {proposal.state.name}")
        print(f"Current Proposal Snapshot: {proposal.snapshot_block}")
        print(f"Current Proposal Deadline: {proposal.deadline_block}")
        return proposal

    def vote(
        self, proposal_id: int, support: VoteType = VoteType.FOR, reason: str = ""
    ) -> TransactionReceipt:
        """Casts the signer's vote; its weight is the signer's delegated votes at the snapshot."""
        self._require_state(proposal_id, ProposalState.ACTIVE)
        receipt = self._send(
            "castVoteWithReason(uint256,uint8,string)", proposal_id, int(support), reason
        )
        print(f"Voted {VoteType(support).name} on proposal {proposal_id}: {reason}")
        if self.advance:
            # move past the end of the voting period
            self.context.client.advance_blocks(self._call("votingPeriod()") + 1)
        print(f"Current Proposal State: {self.state(proposal_id).name}")
        return receipt

    def queue(self, proposal_id: int, call: ProposalCall) -> TransactionReceipt:
        self._check_description(proposal_id, call)
        self._require_state(proposal_id, ProposalState.SUCCEEDED)
        print(f"Queueing proposal {proposal_id}...")
        return self._send(
            "queue(address[],uint256[],bytes[],bytes32)",
            list(call.targets),
            list(call.values),
            list(call.calldatas),
            call.description_hash,
        )

    def execute(self, proposal_id: int, call: ProposalCall) -> TransactionReceipt:
        self._check_description(proposal_id, call)
        self._require_state(proposal_id, ProposalState.QUEUED)
        if self.advance:
            min_delay = self.context.client.call(self.timelock, "getMinDelay()")
            self.context.client.advance_time(min_delay + 1)
            self.context.client.advance_blocks(1)

        print(f"Executing proposal {proposal_id}...")
        try:
            return self._send(
                "execute(address[],uint256[],bytes[],bytes32)",
                list(call.targets),
                list(call.values),
                list(call.calldatas),
                call.description_hash,
            )
        except ContractLogicError as e:
            if self._operation_ready(call):
                raise
            raise PrematureExecution(e.revert_message) from e

    def queue_and_execute(self, proposal_id: int, call: ProposalCall) -> TransactionReceipt:
        """
        Queues the proposal unless an earlier run already did, then executes it.
        After a PrematureExecution, wait out the timelock delay and call again.
        """
        if self.state(proposal_id) == ProposalState.QUEUED:
            print(f"Proposal {proposal_id} is already queued")
        else:
            self.queue(proposal_id, call)
        return self.execute(proposal_id, call)

    def _operation_ready(self, call: ProposalCall) -> bool:
        operation_id = self.context.client.call(
            self.timelock,
            "hashOperationBatch(address[],uint256[],bytes[],bytes32,bytes32)",
            [
                list(call.targets),
                list(call.values),
                list(call.calldatas),
                EMPTY_BYTES32,
                call.description_hash,
            ],
        )
        return self.context.client.call(self.timelock, "isOperationReady(bytes32)", [operation_id])
