"""Error taxonomy of the deployment pipeline."""

from typing import Optional


class DeploymentConfigError(ValueError):
    """Raised when a parameters file cannot be turned into deployment targets."""


class DeploymentError(Exception):
    """Base class for fatal pipeline errors, tagged with the failing stage."""

    stage = "deployment"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.stage}] {self.message}"


class EstimationFailed(DeploymentError):
    """Gas estimation for the creation transaction errored."""

    stage = "estimating"


class SubmissionFailed(DeploymentError):
    """The creation transaction was rejected before inclusion."""

    stage = "submitting"


class ConfirmationTimeout(DeploymentError):
    """The creation transaction was not mined within the configured timeout."""

    stage = "confirming"


class ConfirmationFailed(DeploymentError):
    """The creation transaction was mined with a reverted status."""

    stage = "confirming"


class PersistenceFailed(DeploymentError):
    """The deployment manifest could not be written."""

    stage = "persisting"


class VerificationStepFailed(Exception):
    """
    A single post-deployment probe failed.

    Never propagated out of the verifier; only recorded in the report.
    """

    def __init__(self, step_name: str, reason: str):
        super().__init__(f"{step_name}: {reason}")
        self.step_name = step_name
        self.reason = reason
