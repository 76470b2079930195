from pathlib import Path
from typing import Any, Optional

import click

from deploy_pipeline.constants import CHECK_OK, CHECK_UNAVAILABLE, PipelineState
from deploy_pipeline.exceptions import DeploymentError
from deploy_pipeline.models import (
    CheckOutcome,
    Confirmed,
    DeploymentTarget,
    GasPlan,
    NetworkContext,
    PendingTransaction,
    VerificationStep,
)
from deploy_pipeline.utils import format_amount, format_gas_price


class PipelineObserver:
    """Receives pipeline progress events. All hooks are no-ops by default."""

    def stage_entered(self, state: PipelineState, target: DeploymentTarget) -> None:
        pass

    def stage_completed(self, state: PipelineState, target: DeploymentTarget, result: Any) -> None:
        pass

    def stage_failed(
        self, state: PipelineState, target: DeploymentTarget, error: DeploymentError
    ) -> None:
        pass

    def check_completed(
        self, target: DeploymentTarget, step: VerificationStep, outcome: CheckOutcome
    ) -> None:
        pass


class ConsoleReporter(PipelineObserver):
    """Narrates a deployment on the terminal."""

    def __init__(self, currency: str = "ETH"):
        self.currency = currency

    def print_deployment_info(
        self, network: NetworkContext, balance: Optional[int] = None, min_balance: int = 0
    ) -> None:
        click.secho("\nDeployment Details:", bold=True)
        click.echo(f"├── Deployer address: {network.deployer}")
        if balance is not None:
            click.echo(f"├── Deployer balance: {format_amount(balance, self.currency)}")
            if balance < min_balance:
                click.secho(
                    f"(!) Warning: Low balance. Make sure you have enough "
                    f"{self.currency} for deployment.",
                    fg="yellow",
                )
        click.echo(f"├── Network: {network.name}")
        click.echo(f"├── Chain ID: {network.chain_id}")
        click.echo(f"└── RPC URL: {network.rpc_url or '-'}")

    def stage_entered(self, state: PipelineState, target: DeploymentTarget) -> None:
        name = target.contract_name
        if state == PipelineState.ESTIMATING:
            click.secho(f"\nDeploying {name} contract...", fg="cyan")
        elif state == PipelineState.CONFIRMING:
            click.echo("├── Waiting for deployment confirmation...")
        elif state == PipelineState.VERIFYING and target.checks:
            click.secho(f"\nVerifying initial {name} contract state...", fg="cyan")

    def stage_completed(self, state: PipelineState, target: DeploymentTarget, result: Any) -> None:
        if state == PipelineState.ESTIMATING:
            self._gas_plan(result)
        elif state == PipelineState.SUBMITTING:
            self._pending(result)
        elif state == PipelineState.CONFIRMING:
            self._confirmed(target, result)
        elif state == PipelineState.PERSISTING:
            click.secho(f"\nDeployment info saved to: {result}", fg="green")

    def _gas_plan(self, plan: GasPlan) -> None:
        click.echo(f"├── Estimated gas: {plan.estimated}")
        click.echo(
            f"├── Gas limit: {plan.limit} "
            f"(margin {plan.margin_numerator}/{plan.margin_denominator})"
        )

    def _pending(self, pending: PendingTransaction) -> None:
        click.echo(f"├── Transaction hash: {pending.tx_hash}")

    def _confirmed(self, target: DeploymentTarget, result: Confirmed) -> None:
        receipt = result.receipt
        click.secho(f"(i) {target.contract_name} deployed successfully!", fg="green")
        click.echo(f"├── Contract address: {result.address}")
        click.echo(f"└── Block number: {receipt.block_number}")
        click.secho("\nDeployment Cost:", bold=True)
        click.echo(f"├── Gas used: {receipt.gas_used}")
        click.echo(f"├── Gas price: {format_gas_price(receipt.effective_gas_price)}")
        click.echo(f"└── Total cost: {format_amount(result.cost, self.currency)}")

    def stage_failed(
        self, state: PipelineState, target: DeploymentTarget, error: DeploymentError
    ) -> None:
        click.secho(
            f"\n(x) {target.contract_name} deployment failed while {state.value}:",
            fg="red",
            err=True,
        )
        click.secho(f"    {error}", fg="red", err=True)

    def check_completed(
        self, target: DeploymentTarget, step: VerificationStep, outcome: CheckOutcome
    ) -> None:
        if outcome.status == CHECK_OK:
            click.echo(f"├── {step.name}: {outcome.value}")
        elif outcome.status == CHECK_UNAVAILABLE:
            click.secho(f"├── {step.name}: unavailable ({outcome.reason})", fg="yellow")
        else:
            click.secho(f"├── {step.name}: failed ({outcome.reason})", fg="red")

    def print_explorer_link(self, url: str) -> None:
        click.echo(f"Block explorer: {url}")

    def print_persistence_warning(self, result: Confirmed, manifest: Path) -> None:
        click.secho(
            f"(!) {result.address} is deployed but its manifest was not saved to {manifest}.",
            fg="yellow",
            err=True,
        )

    def print_next_steps(self) -> None:
        click.secho("\nNext Steps:", bold=True)
        click.echo("1. Save the contract address for future interactions")
        click.echo("2. Verify the contract on the block explorer (optional)")
        click.echo("3. Test contract functions from the ape console or a frontend")
        click.echo("4. Add the contract to your wallet for easy interaction")
