#!/usr/bin/python3

import click

from dexgov.cli import connected_context, pipeline_command
from dexgov.params import PipelineParameters
from dexgov.plan import StepStatus


@click.command(name="deploy-all")
@pipeline_command
def cli():
    """
    Deploys every contract of the pipeline in dependency order, then wires them.

    Already deployed contracts are left alone, so an interrupted run can simply
    be started again:

    NETWORK=local ape run deploy_all
    """
    parameters = PipelineParameters.from_yaml()
    plan = parameters.plan()
    click.echo(f"Deployment order: {', '.join(plan.names)}")

    with connected_context() as context:
        outcomes = plan.run(context)
        wiring = parameters.executor().run(context)

    deployed = [o.name for o in outcomes if o.status == StepStatus.DEPLOYED]
    applied = [w.description for w in wiring if w.applied]
    click.secho(
        f"Deployed {len(deployed)} contract(s), applied {len(applied)} wiring action(s).",
        fg="green",
    )


if __name__ == "__main__":
    cli()
