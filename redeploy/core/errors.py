"""Error hierarchy for redeploy."""

from typing import Optional, Dict, Any, List

from .enums import DeploymentOutcome, PrecheckFailure


class RedeployError(Exception):
    """Base exception for all redeploy errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Configuration Errors
class ConfigurationError(RedeployError):
    """Error in redeploy configuration."""


# Filesystem and IO Errors
class FilesystemError(RedeployError):
    """Filesystem operation error."""


class PathError(FilesystemError):
    """Path resolution or validation error."""


class AtomicWriteError(FilesystemError):
    """Atomic write operation failed."""


# Process Errors
class ProcessError(RedeployError):
    """Base class for process-related errors."""


class ProcessTimeoutError(ProcessError):
    """Process operation timed out."""

    def __init__(self, message: str, timeout: float, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.timeout = timeout


# Deployment Stage Errors
class DeploymentStageError(RedeployError):
    """Fatal failure of one deployment stage.

    Each subclass maps to exactly one DeploymentOutcome so the orchestrator
    can turn any stage failure into the terminal outcome of the run.
    """

    outcome: DeploymentOutcome = DeploymentOutcome.DEPLOY_FAILED


class PrecheckError(DeploymentStageError):
    """Installation is missing or malformed."""

    outcome = DeploymentOutcome.PRECHECK_FAILED

    def __init__(self, message: str, failure: PrecheckFailure,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.failure = failure


class StopError(DeploymentStageError):
    """Server process survived both graceful and forced stop."""

    outcome = DeploymentOutcome.STOP_FAILED

    def __init__(self, message: str, lingering_pids: Optional[List[int]] = None,
                 details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details)
        self.lingering_pids = lingering_pids or []


class ArtifactMissingError(DeploymentStageError):
    """Source artifact is not present at the configured path."""

    outcome = DeploymentOutcome.ARTIFACT_MISSING


class DeployError(DeploymentStageError):
    """Artifact could not be placed or the placed copy failed verification."""

    outcome = DeploymentOutcome.DEPLOY_FAILED


class StartError(DeploymentStageError):
    """Server process is absent after start and settle."""

    outcome = DeploymentOutcome.START_FAILED


class VerificationError(DeploymentStageError):
    """Deployed content is absent and the server is not running."""

    outcome = DeploymentOutcome.VERIFICATION_FAILED
