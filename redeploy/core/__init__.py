"""Core components: configuration, errors, logging and host capabilities."""

from .value_objects import DeploymentArtifact, ProcessMatcher, ServerInstallation

__all__ = ["DeploymentArtifact", "ProcessMatcher", "ServerInstallation"]
