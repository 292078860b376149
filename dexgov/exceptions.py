from typing import List, Optional


class DexgovError(Exception):
    """Base class for all deployment and governance pipeline errors."""


class DeploymentConfigError(DexgovError, ValueError):
    """Raised when a pipeline or network configuration is invalid."""


class CyclicDependencyError(DeploymentConfigError):
    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__(f"Cyclic deployment dependency: {' -> '.join(cycle)}")


class UnknownDependencyError(DeploymentConfigError):
    def __init__(self, step: str, dependency: str):
        self.step = step
        self.dependency = dependency
        super().__init__(f"Step '{step}' requires '{dependency}', which is never declared")


class DeploymentNotFound(DexgovError, LookupError):
    def __init__(self, chain_id: int, name: str):
        self.chain_id = chain_id
        self.name = name
        super().__init__(f"No deployment recorded for '{name}' on chain {chain_id}")


class DeploymentUnconfirmed(DexgovError):
    def __init__(self, name: str, confirmations: int, required: int):
        self.name = name
        self.confirmations = confirmations
        self.required = required
        super().__init__(
            f"Deployment of '{name}' has {confirmations} of {required} required confirmations"
        )


class SimulatedNetworkRequired(DexgovError):
    """Raised when block or time advancement is requested on a live network."""


class WiringFailed(DexgovError):
    def __init__(self, action, cause: Exception):
        self.action = action
        self.cause = cause
        super().__init__(f"Wiring action '{action.description}' failed: {cause}")


class GovernanceError(DexgovError):
    """Base class for governance proposal lifecycle errors."""


class DescriptionHashMismatch(GovernanceError):
    def __init__(self, proposal_id: int, description_hash: bytes, derived_id: int):
        self.proposal_id = proposal_id
        self.description_hash = description_hash
        self.derived_id = derived_id
        super().__init__(
            f"Proposal {proposal_id} does not match description hash 0x{description_hash.hex()} "
            f"(derived proposal id {derived_id})"
        )


class PrematureExecution(GovernanceError):
    """Carries the timelock's rejection reason verbatim."""


class InsufficientVotingState(GovernanceError):
    def __init__(self, proposal_id: int, state, required):
        self.proposal_id = proposal_id
        self.state = state
        self.required = required
        super().__init__(
            f"Proposal {proposal_id} is {state.name}; {required.name} is required"
        )


class ProposalNotFound(GovernanceError):
    def __init__(self, chain_id: int, message: Optional[str] = None):
        self.chain_id = chain_id
        super().__init__(message or f"No proposals recorded for chain {chain_id}")
