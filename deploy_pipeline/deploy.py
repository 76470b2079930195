from typing import List, Optional, Sequence

import click

from deploy_pipeline.interfaces import ChainClient, ContractFactory
from deploy_pipeline.models import DeploymentTarget, NetworkContext
from deploy_pipeline.params import DeploymentConfig
from deploy_pipeline.pipeline import Pipeline, PipelineOutcome, PipelineSettings
from deploy_pipeline.reporting import ConsoleReporter, PipelineObserver

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


def exit_code(outcomes: Sequence[PipelineOutcome]) -> int:
    """0 when every pipeline reached Done, regardless of probe results."""
    if all(outcome.succeeded for outcome in outcomes):
        return EXIT_SUCCESS
    return EXIT_FAILURE


def deploy_targets(
    client: ChainClient,
    factory: ContractFactory,
    network: NetworkContext,
    config: DeploymentConfig,
    targets: List[DeploymentTarget],
    settings: Optional[PipelineSettings] = None,
    observers: Sequence[PipelineObserver] = (),
) -> List[PipelineOutcome]:
    """
    Deploys each target through its own pipeline and narrates the run.

    A fatal failure of one target does not prevent the following ones.
    """
    reporter = ConsoleReporter(currency=config.currency)
    try:
        balance = client.get_balance(network.deployer)
    except Exception as error:
        click.secho(f"(!) Could not read deployer balance: {error}", fg="yellow", err=True)
        balance = None
    reporter.print_deployment_info(network, balance=balance, min_balance=config.min_balance)

    settings = settings or config.settings
    pipeline = Pipeline(
        client=client,
        factory=factory,
        network=network,
        settings=settings,
        observers=[reporter, *observers],
    )

    outcomes = list()
    for target in targets:
        outcome = pipeline.run(target)
        outcomes.append(outcome)
        if outcome.record is not None:
            reporter.print_explorer_link(outcome.record.block_explorer)
        if outcome.deployed_without_manifest:
            reporter.print_persistence_warning(outcome.result, pipeline.manifest_path(target))

    if any(outcome.succeeded for outcome in outcomes):
        reporter.print_next_steps()
    return outcomes
