import sys
from pathlib import Path
from typing import Optional, Tuple

import click
from ape.cli import ConnectedProviderCommand, network_option

from deploy_pipeline.chain import (
    ApeChainClient,
    ApeContractFactory,
    get_deployer_account,
    network_context,
    validate_chain_id,
)
from deploy_pipeline.deploy import EXIT_FAILURE, deploy_targets, exit_code
from deploy_pipeline.options import (
    confirmation_timeout_option,
    gas_margin_option,
    params_filepath_option,
)
from deploy_pipeline.params import load_params


def deploy_from_yaml(
    filepath: Path,
    gas_margin: Optional[Tuple[int, int]] = None,
    confirmation_timeout: Optional[int] = None,
) -> int:
    """Deploys every contract of a parameters file on the connected network."""
    click.secho(f"Starting deployment from {filepath}...\n", bold=True)
    account = get_deployer_account()
    factory = ApeContractFactory()
    try:
        config, targets = load_params(filepath, deployer=account.address, factory=factory)
        validate_chain_id(config.chain_id)
    except ValueError as error:
        click.secho(f"(x) Invalid parameters file {filepath}: {error}", fg="red", err=True)
        return EXIT_FAILURE

    settings = config.settings
    if gas_margin is not None:
        settings = settings._replace(gas_margin=gas_margin)
    if confirmation_timeout is not None:
        settings = settings._replace(confirmation_timeout=confirmation_timeout)

    outcomes = deploy_targets(
        client=ApeChainClient(account),
        factory=factory,
        network=network_context(account, name=config.network, rpc_url=config.rpc_url),
        config=config,
        targets=targets,
        settings=settings,
    )
    return exit_code(outcomes)


def run(filepath: Path) -> None:
    """Zero-argument script entry point; exits non-zero if any deployment failed."""
    code = deploy_from_yaml(filepath)
    if code:
        sys.exit(code)


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@params_filepath_option
@gas_margin_option
@confirmation_timeout_option
def cli(network, params_filepath, gas_margin, confirmation_timeout):
    """Deploy the contracts of a parameters file."""
    code = deploy_from_yaml(
        params_filepath, gas_margin=gas_margin, confirmation_timeout=confirmation_timeout
    )
    sys.exit(code)


if __name__ == "__main__":
    cli()
