"""Core type definitions for redeploy."""

import re
from typing import Dict, List, Optional, Any
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .enums import DeploymentOutcome, ServerProcessState, VerificationOutcome


class InstallationConfig(BaseModel):
    """Location and layout of the target application server installation."""

    model_config = ConfigDict(frozen=True)

    root: Path
    start_script: Path = Path("bin/startup.sh")
    stop_script: Path = Path("bin/shutdown.sh")
    # Relative paths resolve against root; None means the server default
    deploy_dir: Optional[Path] = None
    log_file: Optional[Path] = None
    process_pattern: str = "org.apache.catalina.startup.Bootstrap"


class ArtifactConfig(BaseModel):
    """Deployable unit handed over by the packaging stage."""

    model_config = ConfigDict(frozen=True)

    name: str = "app"
    version: Optional[str] = None
    source: Optional[Path] = None

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v: Any) -> Any:
        """Accept numeric versions coming from YAML or the environment."""
        if isinstance(v, (int, float)):
            return str(v)
        return v


class TimeoutConfig(BaseModel):
    """Centralized wait intervals, in seconds."""

    model_config = ConfigDict(frozen=True)

    # Server lifecycle waits
    stop_grace: float = 10.0
    kill_wait: float = 5.0
    start_settle: float = 15.0
    verify_settle: float = 10.0

    # Upper bound for a lifecycle script to return
    script_timeout: float = 60.0


class PollingConfig(BaseModel):
    """Bounded polling after each fixed wait."""

    model_config = ConfigDict(frozen=True)

    poll_interval: float = 1.0
    stop_poll_attempts: int = 1
    start_poll_attempts: int = 1
    verify_poll_attempts: int = 1


class RedeployConfig(BaseModel):
    """Main configuration for one deployment run."""

    model_config = ConfigDict(frozen=True)

    installation: InstallationConfig
    artifact: ArtifactConfig = Field(default_factory=ArtifactConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)

    # Treat a process that survives forced stop as fatal
    fail_on_lingering_process: bool = True
    diagnostic_tail_lines: int = 50

    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @model_validator(mode="after")
    def validate_config(self) -> "RedeployConfig":
        """Validate configuration - NO SIDE EFFECTS.

        Only checks internal consistency. Whether the installation actually
        exists on disk is the job of the host precheck, not of config loading.
        """
        from .errors import ConfigurationError

        for field_name, value in self.timeouts.model_dump().items():
            if value < 0:
                raise ConfigurationError(f"Timeout {field_name} must not be negative")

        if self.polling.poll_interval < 0:
            raise ConfigurationError("Poll interval must not be negative")
        for field_name in ("stop_poll_attempts", "start_poll_attempts", "verify_poll_attempts"):
            if getattr(self.polling, field_name) < 1:
                raise ConfigurationError(f"{field_name} must be at least 1")

        name = self.artifact.name
        if not name or not name.strip() or "/" in name or "\\" in name or name in (".", ".."):
            raise ConfigurationError(f"Invalid artifact name: {name!r}")

        if self.diagnostic_tail_lines < 0:
            raise ConfigurationError("diagnostic_tail_lines must not be negative")

        if not self.installation.process_pattern.strip():
            raise ConfigurationError("Process match pattern cannot be empty")
        try:
            re.compile(self.installation.process_pattern)
        except re.error as e:
            raise ConfigurationError(
                f"Invalid process match pattern {self.installation.process_pattern!r}: {e}"
            ) from e

        return self


class StopReport(BaseModel):
    """What the stop protocol observed and did."""

    final_state: ServerProcessState
    graceful_exit_code: Optional[int] = None
    forced: bool = False
    lingering_pids: List[int] = Field(default_factory=list)

    @property
    def lingering(self) -> bool:
        return bool(self.lingering_pids)


class DeploymentReport(BaseModel):
    """Terminal record of one deployment run."""

    run_id: str
    outcome: DeploymentOutcome = DeploymentOutcome.SUCCESS
    verification: Optional[VerificationOutcome] = None
    stages_completed: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    failure_message: Optional[str] = None
    failure_details: Dict[str, Any] = Field(default_factory=dict)
    diagnostics: Optional[str] = None
    artifact_name: Optional[str] = None
    artifact_version: Optional[str] = None
    artifact_checksum: Optional[str] = None
    deployed_path: Optional[Path] = None
    started_at: float = 0.0
    duration: float = 0.0

    @property
    def exit_code(self) -> int:
        return self.outcome.exit_code

    @property
    def succeeded(self) -> bool:
        return self.outcome is DeploymentOutcome.SUCCESS
