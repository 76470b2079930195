#!/usr/bin/python3

from itertools import groupby
from pathlib import Path
from typing import List, Optional, Tuple

import click

from deploy_pipeline.manifest import list_manifests
from deploy_pipeline.models import DeploymentRecord
from deploy_pipeline.options import deployer_option, manifest_dir_option


def _contract_label(filepath: Path, record: DeploymentRecord) -> str:
    """Strips the network suffix from a manifest file name."""
    suffix = f"-{record.network}"
    stem = filepath.stem
    return stem[: -len(suffix)] if stem.endswith(suffix) else stem


def _display_manifests(manifests: List[Tuple[Path, DeploymentRecord]]) -> None:
    """Display manifests grouped by network."""
    manifests = sorted(manifests, key=lambda item: (item[1].network, item[0].name))
    for network, network_manifests in groupby(manifests, key=lambda item: item[1].network):
        network_manifests = list(network_manifests)
        chain_id = network_manifests[0][1].chain_id
        click.secho(f"\n{network} (chain ID {chain_id})", fg="green")

        for index, (filepath, record) in enumerate(network_manifests, start=1):
            label = _contract_label(filepath, record)
            click.secho(f"    {index}. {label} {record.contract_address}", fg="cyan")
            click.echo(f"        deployed {record.timestamp} by {record.deployer_address}")
            click.echo(f"        {record.block_explorer}")


@click.command(name="list-deployments")
@manifest_dir_option
@deployer_option
def cli(manifest_dir: Path, deployer: Optional[str]):
    """List saved deployment manifests. Optionally filter by deployer."""
    manifests = list_manifests(manifest_dir)
    if deployer:
        manifests = [
            (filepath, record)
            for filepath, record in manifests
            if record.deployer_address.lower() == deployer.lower()
        ]
    if not manifests:
        click.secho(f"No deployment manifests found in {manifest_dir}", fg="yellow")
        return
    _display_manifests(manifests)


if __name__ == "__main__":
    cli()
