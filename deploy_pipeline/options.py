from pathlib import Path

import click

from deploy_pipeline.constants import MANIFESTS_DIR
from deploy_pipeline.types import ChecksumAddress, GasMargin, MinInt

params_filepath_option = click.option(
    "--params-filepath",
    "-p",
    help="Filepath of the deployment parameters YAML",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
)

gas_margin_option = click.option(
    "--gas-margin",
    "-g",
    help="Override the gas margin ratio, e.g. 120/100",
    type=GasMargin(),
    required=False,
)

confirmation_timeout_option = click.option(
    "--confirmation-timeout",
    "-t",
    help="Override the seconds to wait for the creation transaction to be mined",
    type=MinInt(1),
    required=False,
)

manifest_dir_option = click.option(
    "--manifest-dir",
    "-m",
    help="Directory of deployment manifests",
    type=click.Path(file_okay=False, path_type=Path),
    default=MANIFESTS_DIR,
    show_default=True,
)

deployer_option = click.option(
    "--deployer",
    "-d",
    help="Only list deployments made by this address",
    type=ChecksumAddress(),
    required=False,
)
