"""Deployment stages and their orchestration."""

from .host_inspector import HostInspector
from .process_controller import ProcessController
from .artifact_deployer import ArtifactDeployer
from .verifier import DeploymentVerifier
from .orchestrator import DeploymentOrchestrator

__all__ = [
    "HostInspector",
    "ProcessController",
    "ArtifactDeployer",
    "DeploymentVerifier",
    "DeploymentOrchestrator",
]
