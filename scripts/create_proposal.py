#!/usr/bin/python3

import click

from dexgov.cli import connected_context, pipeline_command
from dexgov.exceptions import DeploymentConfigError
from dexgov.governance import ProposalDriver
from dexgov.networks import EnvironmentOptions
from dexgov.params import PipelineParameters
from dexgov.proposals import ProposalLedger


@click.command(name="create-proposal")
@pipeline_command
def cli():
    """Submits the pipeline's governance proposal and records its id."""
    parameters = PipelineParameters.from_yaml()
    if parameters.proposal is None:
        raise DeploymentConfigError("Pipeline parameters file has no 'proposal' section.")

    options = EnvironmentOptions.from_environ()
    with connected_context(options) as context:
        driver = ProposalDriver(context, ledger=ProposalLedger(options.proposals_filepath))
        proposal = driver.propose(parameters.proposal.build(context))

    click.secho(f"Created proposal {proposal.id} ({proposal.state.name})", fg="green")


if __name__ == "__main__":
    cli()
