"""
Post-deployment probes.

Every probe is independent: a probe that reverts, is missing from the
contract binding, or returns a value of an unexpected shape is recorded
in the report and the remaining probes still run.
"""

from typing import Callable, Optional

from web3.auto import w3

from deploy_pipeline.constants import CHECK_FAILED, CHECK_OK, CHECK_UNAVAILABLE
from deploy_pipeline.exceptions import VerificationStepFailed
from deploy_pipeline.interfaces import ChainClient, ContractFactory
from deploy_pipeline.models import (
    CheckOutcome,
    Confirmed,
    DeploymentTarget,
    VerificationReport,
    VerificationStep,
)

CheckCallback = Callable[[VerificationStep, CheckOutcome], None]


def _check_shape(step: VerificationStep, value) -> None:
    if step.expected is None:
        return
    if not w3.is_encodable(step.expected, value):
        raise VerificationStepFailed(
            step.name, f"value {value!r} is not a valid '{step.expected}'"
        )


def run_check(client: ChainClient, contract, step: VerificationStep) -> CheckOutcome:
    try:
        value = client.call(contract, step.method, step.args)
    except AttributeError as error:
        return CheckOutcome(status=CHECK_UNAVAILABLE, reason=f"{step.method} not found: {error}")
    except Exception as error:
        return CheckOutcome(status=CHECK_FAILED, reason=str(error) or type(error).__name__)

    try:
        _check_shape(step, value)
    except VerificationStepFailed as error:
        return CheckOutcome(status=CHECK_FAILED, value=value, reason=error.reason)
    return CheckOutcome(status=CHECK_OK, value=value)


def run_checks(
    client: ChainClient,
    factory: ContractFactory,
    target: DeploymentTarget,
    result: Confirmed,
    on_check: Optional[CheckCallback] = None,
) -> VerificationReport:
    """Runs the target's probes against the deployed contract. Never raises."""
    report = VerificationReport()
    if not target.checks:
        return report

    try:
        contract = factory.at(target.contract_name, result.address)
    except Exception as error:
        contract = None
        binding_error = f"could not bind {target.contract_name} at {result.address}: {error}"

    for step in target.checks:
        if contract is None:
            outcome = CheckOutcome(status=CHECK_UNAVAILABLE, reason=binding_error)
        else:
            outcome = run_check(client, contract, step)
        report[step.name] = outcome
        if on_check is not None:
            on_check(step, outcome)

    return report
