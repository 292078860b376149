import functools
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import click
from ape import accounts, networks
from ape.api import AccountAPI
from ape.exceptions import ContractLogicError

from dexgov.chain import ApeChainClient, TransactionReceipt
from dexgov.constants import NETWORKS_FILEPATH
from dexgov.context import PipelineContext
from dexgov.exceptions import DeploymentConfigError, DexgovError
from dexgov.networks import EnvironmentOptions, NetworkConfig, get_network_config
from dexgov.registry import DeploymentRegistry


def pipeline_command(func):
    """
    Turns pipeline failures into a one-line error on stderr and exit code 1.
    Anything else is a bug and keeps its traceback.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ContractLogicError as e:
            raise click.ClickException(f"Transaction reverted: {e.revert_message}")
        except DexgovError as e:
            raise click.ClickException(str(e))

    return wrapper


def get_account(network: NetworkConfig, options: EnvironmentOptions) -> AccountAPI:
    if network.simulated:
        return accounts.test_accounts[0]

    if not options.account_alias:
        raise DeploymentConfigError(
            f"DEPLOYER_ACCOUNT must be set to transact on live network '{network.name}'."
        )
    account = accounts.load(options.account_alias)
    if options.passphrase:
        print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        account.set_autosign(True, passphrase=options.passphrase)
    return account


def print_gas_report(receipts: List[TransactionReceipt]) -> None:
    click.secho("\nGas report", fg="green")
    total = 0
    for index, receipt in enumerate(receipts, start=1):
        click.secho(
            f"    {index}. {receipt.txn_hash} block {receipt.block_number}: {receipt.gas_used} gas",
            fg="cyan",
        )
        total += receipt.gas_used
    click.secho(f"    Total: {total} gas in {len(receipts)} transaction(s)", fg="yellow")


@contextmanager
def connected_context(
    options: Optional[EnvironmentOptions] = None, networks_filepath: Path = NETWORKS_FILEPATH
) -> Iterator[PipelineContext]:
    """
    Connects to the network selected by the environment and yields a pipeline
    context signing with the configured deployer account.
    """
    options = options or EnvironmentOptions.from_environ()
    network = get_network_config(options.network, filepath=networks_filepath)
    with networks.parse_network_choice(network.network_choice(options.endpoint)):
        client = ApeChainClient(account=get_account(network, options), simulated=network.simulated)
        context = PipelineContext.create(
            network=network,
            client=client,
            registry=DeploymentRegistry(filepath=options.registry_filepath),
            explorer_api_key=options.explorer_api_key,
        )
        click.echo(f"Connected to {network.name} network (chain {context.chain_id}).")
        click.echo(f"Deployer account: {context.deployer}")
        yield context
        if options.report_gas:
            print_gas_report(client.receipts)
