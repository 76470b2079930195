from pathlib import Path
from typing import Any, Callable, Iterable, List, NamedTuple, Optional, Sequence, Tuple

import click

from deploy_pipeline.checks import run_checks
from deploy_pipeline.constants import (
    DEFAULT_CONFIRMATION_TIMEOUT,
    DEFAULT_GAS_MARGIN,
    MANIFESTS_DIR,
    MONAD_TESTNET_EXPLORER,
    PipelineState,
)
from deploy_pipeline.exceptions import DeploymentError, PersistenceFailed
from deploy_pipeline.executor import await_confirmation, submit_deployment
from deploy_pipeline.gas import estimate_gas, validate_margin
from deploy_pipeline.interfaces import ChainClient, ContractFactory
from deploy_pipeline.manifest import build_record, manifest_filepath, utc_timestamp, write_manifest
from deploy_pipeline.models import (
    Confirmed,
    DeploymentRecord,
    DeploymentResult,
    DeploymentTarget,
    Failed,
    GasPlan,
    NetworkContext,
    VerificationReport,
)
from deploy_pipeline.reporting import PipelineObserver


class PipelineSettings(NamedTuple):
    gas_margin: Tuple[int, int] = DEFAULT_GAS_MARGIN
    confirmation_timeout: int = DEFAULT_CONFIRMATION_TIMEOUT
    manifest_dir: Path = MANIFESTS_DIR
    explorer: str = MONAD_TESTNET_EXPLORER


class PipelineOutcome(NamedTuple):
    target: DeploymentTarget
    state: PipelineState
    history: Tuple[PipelineState, ...]
    gas_plan: Optional[GasPlan] = None
    result: Optional[DeploymentResult] = None
    report: Optional[VerificationReport] = None
    record: Optional[DeploymentRecord] = None
    manifest: Optional[Path] = None
    error: Optional[DeploymentError] = None

    @property
    def succeeded(self) -> bool:
        return self.state == PipelineState.DONE

    @property
    def deployed(self) -> bool:
        return isinstance(self.result, Confirmed)

    @property
    def deployed_without_manifest(self) -> bool:
        """The contract is on chain but its manifest could not be written."""
        return self.deployed and isinstance(self.error, PersistenceFailed)

    @property
    def errored_stage(self) -> Optional[PipelineState]:
        if self.state != PipelineState.ERRORED:
            return None
        return self.history[-2]


class _Run:
    """Mutable bookkeeping for a single pipeline run."""

    def __init__(self, target: DeploymentTarget):
        self.target = target
        self.history: List[PipelineState] = [PipelineState.PENDING]
        self.gas_plan = None
        self.result = None
        self.report = None
        self.record = None
        self.manifest = None
        self.error = None

    @property
    def state(self) -> PipelineState:
        return self.history[-1]

    def outcome(self) -> PipelineOutcome:
        return PipelineOutcome(
            target=self.target,
            state=self.state,
            history=tuple(self.history),
            gas_plan=self.gas_plan,
            result=self.result,
            report=self.report,
            record=self.record,
            manifest=self.manifest,
            error=self.error,
        )


class Pipeline:
    """
    Estimates, submits, confirms, verifies and records one contract deployment.

    Pending -> Estimating -> Submitting -> Confirming -> Verifying -> Persisting -> Done

    Any fatal stage (all but Verifying) moves straight to Errored; no stage is
    ever re-entered. Each call to :meth:`run` is independent and broadcasts a
    new creation transaction.
    """

    def __init__(
        self,
        client: ChainClient,
        factory: ContractFactory,
        network: NetworkContext,
        settings: PipelineSettings = PipelineSettings(),
        observers: Sequence[PipelineObserver] = (),
        clock: Callable[[], str] = utc_timestamp,
    ):
        validate_margin(settings.gas_margin)
        self.client = client
        self.factory = factory
        self.network = network
        self.settings = settings
        self.observers = list(observers)
        self.clock = clock

    def _notify(self, hook: str, *args) -> None:
        for observer in self.observers:
            try:
                getattr(observer, hook)(*args)
            except Exception as error:
                click.secho(
                    f"(!) {type(observer).__name__}.{hook} raised {error!r}", fg="yellow", err=True
                )

    def _enter(self, run: _Run, state: PipelineState) -> None:
        run.history.append(state)
        self._notify("stage_entered", state, run.target)

    def _complete(self, run: _Run, result: Any) -> None:
        self._notify("stage_completed", run.state, run.target, result)

    def _fail(self, run: _Run, error: DeploymentError) -> PipelineOutcome:
        failed_state = run.state
        run.error = error
        if run.result is None:
            run.result = Failed(error)
        run.history.append(PipelineState.ERRORED)
        self._notify("stage_failed", failed_state, run.target, error)
        return run.outcome()

    def _build_record(self, target: DeploymentTarget, result: Confirmed) -> DeploymentRecord:
        try:
            return build_record(
                self.network, result, self.settings.explorer, timestamp=self.clock()
            )
        except Exception as error:
            raise PersistenceFailed(
                f"Could not build the {target.contract_name} manifest: {error!r}", cause=error
            ) from error

    def manifest_path(self, target: DeploymentTarget) -> Path:
        return manifest_filepath(
            self.settings.manifest_dir, target.manifest_stem, self.network.name
        )

    def run(self, target: DeploymentTarget) -> PipelineOutcome:
        run = _Run(target)
        client, factory, settings = self.client, self.factory, self.settings

        try:
            self._enter(run, PipelineState.ESTIMATING)
            run.gas_plan = estimate_gas(
                client, factory, target, self.network, margin=settings.gas_margin
            )
            self._complete(run, run.gas_plan)

            self._enter(run, PipelineState.SUBMITTING)
            pending = submit_deployment(client, factory, target, self.network, run.gas_plan)
            self._complete(run, pending)

            self._enter(run, PipelineState.CONFIRMING)
            run.result = await_confirmation(
                client, target, pending, timeout=settings.confirmation_timeout
            )
            self._complete(run, run.result)
        except DeploymentError as error:
            return self._fail(run, error)

        # never fatal
        self._enter(run, PipelineState.VERIFYING)
        run.report = run_checks(
            client,
            factory,
            target,
            run.result,
            on_check=lambda step, outcome: self._notify(
                "check_completed", target, step, outcome
            ),
        )
        self._complete(run, run.report)

        self._enter(run, PipelineState.PERSISTING)
        try:
            run.record = self._build_record(target, run.result)
            run.manifest = write_manifest(run.record, self.manifest_path(target))
        except PersistenceFailed as error:
            return self._fail(run, error)
        self._complete(run, run.manifest)

        run.history.append(PipelineState.DONE)
        return run.outcome()

    def run_all(self, targets: Iterable[DeploymentTarget]) -> List[PipelineOutcome]:
        """Runs one independent pipeline per target, in order."""
        return [self.run(target) for target in targets]
