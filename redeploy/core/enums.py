"""Core enumerations for redeploy.

Separated from types.py to break circular dependencies. This module contains
only enum definitions with no dependencies on other core modules.
"""

from enum import Enum


class ServerProcessState(Enum):
    """Observed lifecycle state of the application server process."""

    STOPPED = "stopped"
    STOPPING = "stopping"
    RUNNING = "running"
    START_FAILED = "start_failed"
    STILL_RUNNING = "still_running"


class PrecheckFailure(Enum):
    """Distinct reasons an installation fails the host precheck."""

    INSTALL_ROOT_MISSING = "install_root_missing"
    STOP_SCRIPT_MISSING = "stop_script_missing"
    START_SCRIPT_MISSING = "start_script_missing"
    CONTENT_DIR_MISSING = "content_dir_missing"
    SCRIPT_NOT_EXECUTABLE = "script_not_executable"


class VerificationOutcome(Enum):
    """Result of the post-start deployment verification."""

    CONFIRMED = "confirmed"
    PENDING = "pending"
    NOT_RUNNING = "not_running"


class DeploymentOutcome(Enum):
    """Terminal outcome of one deployment run."""

    SUCCESS = "success"
    PRECHECK_FAILED = "precheck_failed"
    STOP_FAILED = "stop_failed"
    ARTIFACT_MISSING = "artifact_missing"
    DEPLOY_FAILED = "deploy_failed"
    START_FAILED = "start_failed"
    VERIFICATION_FAILED = "verification_failed"

    @property
    def exit_code(self) -> int:
        """Process exit status reported to the calling pipeline."""
        return _EXIT_CODES[self]

    @property
    def is_fatal(self) -> bool:
        return self is not DeploymentOutcome.SUCCESS


# 1 is reserved for configuration and usage errors
_EXIT_CODES = {
    DeploymentOutcome.SUCCESS: 0,
    DeploymentOutcome.PRECHECK_FAILED: 2,
    DeploymentOutcome.STOP_FAILED: 3,
    DeploymentOutcome.ARTIFACT_MISSING: 4,
    DeploymentOutcome.DEPLOY_FAILED: 5,
    DeploymentOutcome.START_FAILED: 6,
    DeploymentOutcome.VERIFICATION_FAILED: 7,
}
