import pytest

from deploy_pipeline.constants import CHECK_FAILED, CHECK_OK, PipelineState
from deploy_pipeline.exceptions import (
    ConfirmationFailed,
    ConfirmationTimeout,
    EstimationFailed,
    PersistenceFailed,
    SubmissionFailed,
)
from deploy_pipeline.manifest import read_manifest
from deploy_pipeline.models import Confirmed, Failed
from deploy_pipeline.pipeline import Pipeline

from conftest import (
    DEPLOYER,
    FIXED_TIMESTAMP,
    GAS_PRICE,
    GAS_USED,
    RecordingObserver,
    fake_address,
)

HAPPY_PATH = (
    PipelineState.PENDING,
    PipelineState.ESTIMATING,
    PipelineState.SUBMITTING,
    PipelineState.CONFIRMING,
    PipelineState.VERIFYING,
    PipelineState.PERSISTING,
    PipelineState.DONE,
)


@pytest.fixture
def pipeline(client, factory, network, settings, observer):
    return Pipeline(
        client=client,
        factory=factory,
        network=network,
        settings=settings,
        observers=[observer],
        clock=lambda: FIXED_TIMESTAMP,
    )


def test_full_run(pipeline, client, target, manifest_dir):
    client.values = {"DEFAULT_ADMIN_ROLE": b"\x00" * 32, "symbol": "CC"}

    outcome = pipeline.run(target)

    assert outcome.succeeded
    assert outcome.history == HAPPY_PATH
    assert outcome.error is None
    assert outcome.gas_plan.limit == 1_200_000
    assert isinstance(outcome.result, Confirmed)
    assert outcome.result.cost == GAS_USED * GAS_PRICE
    assert outcome.report.passed
    assert outcome.manifest == manifest_dir / "campusCredit-monad-testnet.json"

    record = read_manifest(outcome.manifest)
    assert record == outcome.record
    assert record.contract_address == fake_address(1)
    assert record.deployer_address == DEPLOYER
    assert record.network == "monad-testnet"
    assert record.timestamp == FIXED_TIMESTAMP
    assert record.block_explorer.endswith(fake_address(1))
    assert client.waited == [30]


def test_observer_sees_every_stage(pipeline, client, target, observer):
    client.values = {"DEFAULT_ADMIN_ROLE": b"\x00" * 32, "symbol": "CC"}

    pipeline.run(target)

    entered = [event[1] for event in observer.events if event[0] == "entered"]
    assert entered == list(HAPPY_PATH[1:-1])
    assert ("check", "symbol", CHECK_OK) in observer.events


def test_submissions_are_not_idempotent(pipeline, target):
    first = pipeline.run(target)
    second = pipeline.run(target)

    assert first.result.address != second.result.address
    assert first.result.tx_hash != second.result.tx_hash
    # same derived path, second run wins
    assert first.manifest == second.manifest
    assert read_manifest(second.manifest).contract_address == second.result.address


def test_failed_probe_still_reaches_done(pipeline, client, target, observer):
    client.values = {"DEFAULT_ADMIN_ROLE": RuntimeError("execution reverted"), "symbol": "CC"}

    outcome = pipeline.run(target)

    assert outcome.succeeded
    assert outcome.report["DEFAULT_ADMIN_ROLE"].status == CHECK_FAILED
    assert outcome.report["symbol"].status == CHECK_OK
    assert outcome.manifest.exists()
    assert ("check", "DEFAULT_ADMIN_ROLE", CHECK_FAILED) in observer.events


def test_confirmation_failure_skips_verifier_and_writer(
    pipeline, client, factory, target, manifest_dir, observer
):
    client.status = 0

    outcome = pipeline.run(target)

    assert outcome.state == PipelineState.ERRORED
    assert outcome.errored_stage == PipelineState.CONFIRMING
    assert isinstance(outcome.error, ConfirmationFailed)
    assert isinstance(outcome.result, Failed)
    assert PipelineState.VERIFYING not in outcome.history
    assert PipelineState.PERSISTING not in outcome.history
    assert factory.bound == []
    assert client.calls == []
    assert not manifest_dir.exists()
    assert ("failed", PipelineState.CONFIRMING, ConfirmationFailed) in observer.events


@pytest.mark.parametrize(
    "attribute,error,stage,expected",
    [
        ("estimate_error", RuntimeError("revert"), PipelineState.ESTIMATING, EstimationFailed),
        ("submit_error", ValueError("nonce too low"), PipelineState.SUBMITTING, SubmissionFailed),
        (
            "wait_error",
            ConfirmationTimeout("not mined"),
            PipelineState.CONFIRMING,
            ConfirmationTimeout,
        ),
    ],
)
def test_fatal_stages(pipeline, client, target, attribute, error, stage, expected):
    setattr(client, attribute, error)

    outcome = pipeline.run(target)

    assert outcome.state == PipelineState.ERRORED
    assert outcome.errored_stage == stage
    assert isinstance(outcome.error, expected)
    assert not outcome.deployed
    assert outcome.history[-1] == PipelineState.ERRORED
    assert outcome.history.count(stage) == 1


def test_persistence_failure_is_distinct(client, factory, network, settings, target, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    pipeline = Pipeline(
        client, factory, network, settings=settings._replace(manifest_dir=blocker / "deployments")
    )

    outcome = pipeline.run(target)

    assert outcome.state == PipelineState.ERRORED
    assert outcome.errored_stage == PipelineState.PERSISTING
    assert isinstance(outcome.error, PersistenceFailed)
    assert outcome.deployed
    assert outcome.deployed_without_manifest
    assert isinstance(outcome.result, Confirmed)
    assert outcome.record is not None
    assert outcome.manifest is None


def test_run_all_is_independent(pipeline, client, target):
    other = target._replace(contract_name="StudentID", args=(), checks=(), manifest_name=None)

    outcomes = pipeline.run_all([target, other])

    assert [outcome.succeeded for outcome in outcomes] == [True, True]
    assert outcomes[1].manifest.name == "StudentID-monad-testnet.json"
    assert len(client.submitted) == 2


def test_invalid_margin_rejected_up_front(client, factory, network, settings):
    with pytest.raises(ValueError):
        Pipeline(client, factory, network, settings=settings._replace(gas_margin=(90, 100)))


def test_bad_explorer_template_after_confirmation(client, factory, network, settings, target):
    pipeline = Pipeline(
        client, factory, network, settings=settings._replace(explorer="https://x/{addr}")
    )
    other = target._replace(contract_name="StudentID", checks=(), manifest_name=None)

    first, second = pipeline.run_all([target, other])

    assert first.state == PipelineState.ERRORED
    assert first.errored_stage == PipelineState.PERSISTING
    assert isinstance(first.error, PersistenceFailed)
    assert isinstance(first.error.cause, KeyError)
    assert first.deployed_without_manifest
    assert first.record is None
    assert not pipeline.manifest_path(target).exists()
    # the next target is still deployed
    assert second.deployed_without_manifest
    assert len(client.submitted) == 2


def test_clock_failure_is_a_persistence_failure(client, factory, network, settings, target):
    def broken_clock():
        raise OverflowError("date value out of range")

    outcome = Pipeline(client, factory, network, settings=settings, clock=broken_clock).run(
        target
    )

    assert outcome.errored_stage == PipelineState.PERSISTING
    assert outcome.deployed_without_manifest


class BrokenObserver(RecordingObserver):
    def stage_entered(self, state, target):
        raise RuntimeError("terminal closed")

    def check_completed(self, target, step, outcome):
        raise RuntimeError("terminal closed")


def test_observer_errors_do_not_break_the_run(capsys, client, factory, network, settings, target):
    client.values = {"DEFAULT_ADMIN_ROLE": b"\x00" * 32, "symbol": "CC"}
    recorder = RecordingObserver()
    pipeline = Pipeline(
        client, factory, network, settings=settings, observers=[BrokenObserver(), recorder]
    )

    outcome = pipeline.run(target)

    assert outcome.succeeded
    assert outcome.history == HAPPY_PATH
    assert outcome.manifest.exists()
    assert ("entered", PipelineState.PERSISTING) in recorder.events
    assert "BrokenObserver.stage_entered raised RuntimeError('terminal closed')" in (
        capsys.readouterr().err
    )
