"""Deployment context for explicit dependency management.

DeploymentContext is the single immutable container for everything a
deployment run needs: configuration, logger and the three host capabilities.
Components receive it (or pieces of it) explicitly instead of reaching for
globals or the process environment.

Usage:
    config = ConfigManager().load_config(config_file=Path("redeploy.yaml"))
    ctx = DeploymentContext.create(config)
    report = DeploymentOrchestrator.from_context(ctx).run()

    # In tests, swap any capability for a double
    ctx = DeploymentContext.create(config, process_table=FakeProcessTable())
"""

import time
from dataclasses import dataclass
from typing import Optional

from .log import Logger
from .polling import Sleeper
from .protocols import FileSystem, ProcessRunner, ProcessTable
from .types import RedeployConfig


@dataclass(frozen=True)
class DeploymentContext:
    """Immutable container of all dependencies for one deployment run.

    Attributes:
        config: Validated run configuration
        logger: Logging instance
        filesystem: Filesystem capability
        runner: Lifecycle script runner
        process_table: Process table capability
        sleep: Wait primitive used by every settle and poll
    """

    config: RedeployConfig
    logger: Logger
    filesystem: FileSystem
    runner: ProcessRunner
    process_table: ProcessTable
    sleep: Sleeper = time.sleep

    @classmethod
    def create(
        cls,
        config: RedeployConfig,
        *,
        logger: Optional[Logger] = None,
        filesystem: Optional[FileSystem] = None,
        runner: Optional[ProcessRunner] = None,
        process_table: Optional[ProcessTable] = None,
        sleep: Optional[Sleeper] = None,
    ) -> "DeploymentContext":
        """Create a context, filling unspecified dependencies with host defaults."""
        # Import here to avoid circular dependencies at module level
        from .log import get_logger
        from .process import PsutilProcessTable, ScriptRunner
        from ..utils.filesystem import LocalFileSystem

        return cls(
            config=config,
            logger=logger or get_logger("orchestrator"),
            filesystem=filesystem or LocalFileSystem(),
            runner=runner or ScriptRunner(default_timeout=config.timeouts.script_timeout),
            process_table=process_table or PsutilProcessTable(),
            sleep=sleep or time.sleep,
        )
