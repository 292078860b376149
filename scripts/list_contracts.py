#!/usr/bin/python3

import click

from dexgov.networks import EnvironmentOptions
from dexgov.registry import DeploymentRegistry
from dexgov.utils import get_chain_name


def _format_chain_name(chain_name: str) -> str:
    """Format the chain name to capitalize each word and join with slashes."""
    return "/".join(word.capitalize() for word in chain_name.split())


def _display_registry(registry: DeploymentRegistry) -> None:
    """Display registry entries grouped by chain ID."""
    for chain_id in registry.chain_ids():
        try:
            chain_name = _format_chain_name(get_chain_name(chain_id))
        except ValueError:
            chain_name = f"Chain {chain_id}"
        click.secho(f"    {chain_name}", fg="yellow")

        results = sorted(registry.results(chain_id), key=lambda r: r.name)
        for index, result in enumerate(results, start=1):
            status = "" if result.confirmed else " (unconfirmed)"
            click.secho(f"        {index}. {result.name} {result.address}{status}", fg="cyan")


@click.command(name="list-contracts")
def cli():
    """List all contracts in the deployment registry, per chain."""
    options = EnvironmentOptions.from_environ()
    registry = DeploymentRegistry(filepath=options.registry_filepath)
    if not registry.chain_ids():
        click.echo(f"No deployments recorded in {options.registry_filepath}")
        return
    _display_registry(registry)


if __name__ == "__main__":
    cli()
