"""Deployment orchestration and failure policy."""

import time
from pathlib import Path
from typing import Callable, Optional, TypeVar

from ..core.context import DeploymentContext
from ..core.enums import ServerProcessState, VerificationOutcome
from ..core.errors import (
    ConfigurationError,
    DeploymentStageError,
    StopError,
    VerificationError,
)
from ..core.log import Logger, log_context, log_stage_event
from ..core.protocols import FileSystem
from ..core.types import DeploymentReport, RedeployConfig
from ..core.value_objects import DeploymentArtifact, ProcessMatcher, ServerInstallation
from ..utils import print_diagnostics, print_error, print_status, print_warning
from ..utils.crypto import random_id
from .artifact_deployer import ArtifactDeployer
from .host_inspector import HostInspector
from .process_controller import ProcessController
from .verifier import DeploymentVerifier

T = TypeVar("T")


class DeploymentOrchestrator:
    """Runs precheck, stop, replace, start and verify as one operation.

    This class is responsible for:
    - Sequencing the stages strictly one after another
    - Aborting at the first fatal stage failure and mapping it to an outcome
    - Applying the lingering-process policy after stop
    - Recording non-fatal conditions as warnings
    - Surfacing the tail of the server log when a run fails

    It never retries or rolls back, and it keeps no state between runs.
    Concurrent runs against the same installation are not supported.
    """

    def __init__(
        self,
        config: RedeployConfig,
        logger: Logger,
        filesystem: FileSystem,
        inspector: HostInspector,
        controller: ProcessController,
        deployer: ArtifactDeployer,
        verifier: DeploymentVerifier,
    ) -> None:
        self._config = config
        self._logger = logger
        self._fs = filesystem
        self._inspector = inspector
        self._controller = controller
        self._deployer = deployer
        self._verifier = verifier
        self._installation = ServerInstallation.from_config(config.installation)

    @classmethod
    def from_context(cls, ctx: DeploymentContext) -> "DeploymentOrchestrator":
        """Wire every stage component from a deployment context."""
        config = ctx.config
        controller = ProcessController(
            logger=ctx.logger,
            runner=ctx.runner,
            process_table=ctx.process_table,
            matcher=ProcessMatcher(config.installation.process_pattern),
            timeouts=config.timeouts,
            polling=config.polling,
            sleep=ctx.sleep,
        )
        return cls(
            config=config,
            logger=ctx.logger,
            filesystem=ctx.filesystem,
            inspector=HostInspector(ctx.logger, ctx.filesystem),
            controller=controller,
            deployer=ArtifactDeployer(ctx.logger, ctx.filesystem),
            verifier=DeploymentVerifier(
                logger=ctx.logger,
                filesystem=ctx.filesystem,
                is_running=controller.is_running,
                settle_timeout=config.timeouts.verify_settle,
                polling=config.polling,
                sleep=ctx.sleep,
            ),
        )

    @property
    def installation(self) -> ServerInstallation:
        return self._installation

    @property
    def controller(self) -> ProcessController:
        return self._controller

    def run(self, artifact_source: Optional[Path] = None) -> DeploymentReport:
        """Execute one deployment and return its terminal report.

        Args:
            artifact_source: Artifact file to deploy (defaults to artifact.source
                from configuration)

        Raises:
            ConfigurationError: If no artifact source is known at all or the
                artifact name is not usable as a deployed file name
        """
        try:
            artifact = DeploymentArtifact.from_config(self._config.artifact, artifact_source)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        source = artifact.source

        report = DeploymentReport(
            run_id=random_id(12),
            artifact_name=artifact.name,
            artifact_version=artifact.version,
            started_at=time.time(),
        )
        installation = self._installation

        with log_context(run_id=report.run_id, artifact=artifact.name):
            self._logger.info(
                "Deploying %s from %s to %s (run %s)",
                artifact,
                source,
                installation.content_dir,
                report.run_id,
            )
            try:
                self._stage(report, "precheck", "Checking installation",
                            lambda: self._inspector.check(installation))

                initial = self._controller.observe()
                self._logger.info("Server initially %s", initial.value)

                stop_report = self._stage(report, "stop", "Stopping server",
                                          lambda: self._controller.stop(installation))
                if stop_report.final_state is ServerProcessState.STILL_RUNNING:
                    self._handle_lingering(report, stop_report.lingering_pids)

                deployed = self._stage(
                    report,
                    "deploy",
                    f"Deploying {source.name}",
                    lambda: self._deployer.replace(
                        installation.content_dir, artifact.name, source
                    ),
                )
                report.deployed_path = deployed
                report.artifact_checksum = self._deployer.last_checksum

                self._stage(report, "start", "Starting server",
                            lambda: self._controller.start(installation))

                verification = self._stage(
                    report,
                    "verify",
                    "Verifying deployment",
                    lambda: self._verify(artifact.name),
                )
                report.verification = verification
                if verification is VerificationOutcome.PENDING:
                    self._warn(
                        report,
                        f"Deployed content for {artifact.name} not yet visible; "
                        "server is running, extraction may still be in progress",
                    )

                print_status(f"Deployment of {artifact.name} succeeded", prefix="✅")

            except DeploymentStageError as e:
                self._fail(report, e)
            finally:
                report.duration = time.time() - report.started_at

            self._logger.info(
                "Run %s finished: %s in %.2fs",
                report.run_id,
                report.outcome.value,
                report.duration,
            )
        return report

    def _stage(
        self, report: DeploymentReport, stage: str, label: str, action: Callable[[], T]
    ) -> T:
        print_status(label, prefix="▶")
        log_stage_event(self._logger, stage, "begin")
        try:
            result = action()
        except DeploymentStageError as e:
            log_stage_event(self._logger, stage, "failed", error=e.message)
            raise
        log_stage_event(self._logger, stage, "ok")
        report.stages_completed.append(stage)
        return result

    def _verify(self, artifact_name: str) -> VerificationOutcome:
        outcome = self._verifier.confirm(self._installation.content_dir, artifact_name)
        if outcome is VerificationOutcome.NOT_RUNNING:
            raise VerificationError(
                f"Deployed content for {artifact_name} not found and server is not running",
                details={"content_dir": str(self._installation.content_dir / artifact_name)},
            )
        return outcome

    def _handle_lingering(self, report: DeploymentReport, pids: list) -> None:
        message = f"Server processes {pids} still running after forced stop"
        if self._config.fail_on_lingering_process:
            raise StopError(message, lingering_pids=pids, details={"lingering_pids": pids})
        self._warn(report, f"{message}; deploying anyway")

    def _warn(self, report: DeploymentReport, message: str) -> None:
        self._logger.warning(message)
        report.warnings.append(message)
        print_warning(message)

    def _fail(self, report: DeploymentReport, error: DeploymentStageError) -> None:
        report.outcome = error.outcome
        report.failure_message = error.message
        report.failure_details = dict(error.details)
        self._logger.error("Deployment failed (%s): %s", error.outcome.value, error.message)
        print_error(f"{error.outcome.value}: {error.message}")

        report.diagnostics = self.collect_diagnostics()
        if report.diagnostics:
            print_diagnostics(f"Last lines of {self._installation.log_file}", report.diagnostics)

    def collect_diagnostics(self) -> Optional[str]:
        """Best-effort tail of the server log; never raises."""
        lines = self._config.diagnostic_tail_lines
        if lines <= 0:
            return None
        log_file = self._installation.log_file
        try:
            if not self._fs.is_file(log_file):
                self._logger.debug("No server log at %s", log_file)
                return None
            return self._fs.tail(log_file, lines) or None
        except Exception as e:  # pylint: disable=broad-exception-caught
            # The stage failure stays the reported outcome
            self._logger.debug("Could not read server log %s: %s", log_file, e)
            return None
