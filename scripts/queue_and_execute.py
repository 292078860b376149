#!/usr/bin/python3

import click

from dexgov.cli import connected_context, pipeline_command
from dexgov.exceptions import DeploymentConfigError
from dexgov.governance import ProposalDriver
from dexgov.networks import EnvironmentOptions
from dexgov.params import PipelineParameters
from dexgov.proposals import ProposalLedger


@click.command(name="queue-and-execute")
@pipeline_command
def cli():
    """
    Queues the most recent proposal in the timelock and executes it.

    The proposal content is rebuilt from the pipeline file; it must match what
    was proposed, or the governor would not recognize it.
    """
    parameters = PipelineParameters.from_yaml()
    if parameters.proposal is None:
        raise DeploymentConfigError("Pipeline parameters file has no 'proposal' section.")

    options = EnvironmentOptions.from_environ()
    ledger = ProposalLedger(options.proposals_filepath)

    with connected_context(options) as context:
        proposal_id = ledger.latest(context.chain_id)
        driver = ProposalDriver(context, ledger=ledger)
        driver.queue_and_execute(proposal_id, parameters.proposal.build(context))
        state = driver.state(proposal_id)

    click.secho(f"Proposal {proposal_id} is {state.name}", fg="green")


if __name__ == "__main__":
    cli()
