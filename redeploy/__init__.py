"""
redeploy: stop-swap-start deployment for host application servers

Replaces the deployed artifact of a running, self-daemonizing application
server on a single host: checks the installation, stops the server (with
forced escalation), swaps the artifact, restarts the server and confirms the
new content is being served.
"""

__version__ = "1.0.0"

# Core exports
from .core.enums import (
    DeploymentOutcome,
    PrecheckFailure,
    ServerProcessState,
    VerificationOutcome,
)
from .core.types import (
    ArtifactConfig,
    DeploymentReport,
    InstallationConfig,
    PollingConfig,
    RedeployConfig,
    TimeoutConfig,
)

__all__ = [
    "__version__",
    "DeploymentOutcome",
    "PrecheckFailure",
    "ServerProcessState",
    "VerificationOutcome",
    "ArtifactConfig",
    "DeploymentReport",
    "InstallationConfig",
    "PollingConfig",
    "RedeployConfig",
    "TimeoutConfig",
]
