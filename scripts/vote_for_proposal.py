#!/usr/bin/python3

import click

from dexgov.cli import connected_context, pipeline_command
from dexgov.governance import ProposalDriver
from dexgov.networks import EnvironmentOptions
from dexgov.params import PipelineParameters
from dexgov.proposals import ProposalLedger


@click.command(name="vote-for-proposal")
@pipeline_command
def cli():
    """Votes on the most recently created proposal of the selected network."""
    parameters = PipelineParameters.from_yaml()
    options = EnvironmentOptions.from_environ()
    ledger = ProposalLedger(options.proposals_filepath)

    with connected_context(options) as context:
        proposal_id = ledger.latest(context.chain_id)
        driver = ProposalDriver(context, ledger=ledger)
        driver.vote(proposal_id, support=parameters.vote.support, reason=parameters.vote.reason)
        state = driver.state(proposal_id)

    click.secho(f"Proposal {proposal_id} is {state.name}", fg="green")


if __name__ == "__main__":
    cli()
