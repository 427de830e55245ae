"""Post-start confirmation that the new artifact is being served."""

import time
from pathlib import Path
from typing import Callable, Optional

from ..core.enums import VerificationOutcome
from ..core.log import Logger
from ..core.polling import PollPolicy, Sleeper, poll_until
from ..core.protocols import FileSystem
from ..core.types import PollingConfig


class DeploymentVerifier:
    """Looks for the content directory the server extracts from the artifact.

    Extraction happens asynchronously after startup. A missing directory is
    only fatal when the server process is gone too; with a live process it is
    reported as PENDING and left for the operator to follow up.
    """

    def __init__(
        self,
        logger: Logger,
        filesystem: FileSystem,
        is_running: Callable[[], bool],
        settle_timeout: float = 10.0,
        polling: Optional[PollingConfig] = None,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self._logger = logger
        self._fs = filesystem
        self._is_running = is_running
        self._settle_timeout = settle_timeout
        self._polling = polling or PollingConfig()
        self._sleep = sleep

    def confirm(
        self,
        deploy_target_dir: Path,
        artifact_name: str,
        settle_timeout: Optional[float] = None,
    ) -> VerificationOutcome:
        content_dir = Path(deploy_target_dir) / artifact_name
        policy = PollPolicy(
            delay=self._settle_timeout if settle_timeout is None else settle_timeout,
            attempts=self._polling.verify_poll_attempts,
            interval=self._polling.poll_interval,
        )

        if poll_until(
            lambda: self._fs.is_dir(content_dir), policy, self._sleep, name="content extraction"
        ):
            self._logger.info("Deployed content present at %s", content_dir)
            return VerificationOutcome.CONFIRMED

        if self._is_running():
            self._logger.warning(
                "Content directory %s not present after %.1fs; server is running",
                content_dir,
                policy.max_wait,
            )
            return VerificationOutcome.PENDING

        self._logger.error(
            "Content directory %s not present and server is not running", content_dir
        )
        return VerificationOutcome.NOT_RUNNING
