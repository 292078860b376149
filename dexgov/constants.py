from enum import IntEnum
from pathlib import Path

import dexgov

#
# Filesystem
#

DEXGOV_DIR = Path(dexgov.__file__).parent
CONFIG_DIR = DEXGOV_DIR / "config"
PIPELINE_FILEPATH = CONFIG_DIR / "pipeline.yml"
NETWORKS_FILEPATH = CONFIG_DIR / "networks.yml"
ARTIFACTS_DIR = Path.cwd() / "artifacts"
REGISTRY_FILEPATH = ARTIFACTS_DIR / "registry.json"
PROPOSALS_FILEPATH = ARTIFACTS_DIR / "proposals.json"

#
# Networks
#

LOCAL = "local"
LOCAL_CHAIN_ID = 31337

BLOCK_CONFIRMATIONS = 6
LOCAL_NETWORK_BLOCK_CONFIRMATIONS = 1

#
# Governance
#

QUORUM_PERCENTAGE = 4  # 4% of voters to pass
MIN_DELAY = 3600  # seconds between a passed vote and execution
VOTING_PERIOD = 5  # blocks
VOTING_DELAY = 1  # blocks until a proposal vote becomes active

GOVERNOR = "GovernorContract"
TIMELOCK = "TimeLock"

# Special variables available to pipeline parameters
DEPLOYER_VARIABLE = "deployer"
ZERO_ADDRESS_VARIABLE = "ZERO_ADDRESS"


class ProposalState(IntEnum):
    """Proposal states as defined by the IGovernor interface."""

    PENDING = 0
    ACTIVE = 1
    CANCELED = 2
    DEFEATED = 3
    SUCCEEDED = 4
    QUEUED = 5
    EXPIRED = 6
    EXECUTED = 7


class VoteType(IntEnum):
    AGAINST = 0
    FOR = 1
    ABSTAIN = 2
