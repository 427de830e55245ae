"""Lifecycle control of the application server process."""

import signal
import time
from typing import List, Optional

from ..core.enums import ServerProcessState
from ..core.errors import ProcessError, ProcessTimeoutError, StartError
from ..core.log import Logger, log_process_event
from ..core.polling import PollPolicy, Sleeper, poll_until
from ..core.protocols import ProcessRunner, ProcessTable
from ..core.types import PollingConfig, StopReport, TimeoutConfig
from ..core.value_objects import ProcessMatcher, ServerInstallation


class ProcessController:
    """Stops and starts a black-box, self-daemonizing server.

    The controller is the only authority on ServerProcessState. Neither
    lifecycle script gives a reliable completion signal, so every transition
    is a script invocation followed by a fixed wait and a bounded poll of the
    process table.
    """

    def __init__(
        self,
        logger: Logger,
        runner: ProcessRunner,
        process_table: ProcessTable,
        matcher: ProcessMatcher,
        timeouts: Optional[TimeoutConfig] = None,
        polling: Optional[PollingConfig] = None,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self._logger = logger
        self._runner = runner
        self._table = process_table
        self._matcher = matcher
        self._timeouts = timeouts or TimeoutConfig()
        self._polling = polling or PollingConfig()
        self._sleep = sleep
        self._state: Optional[ServerProcessState] = None

    @property
    def state(self) -> Optional[ServerProcessState]:
        """Last state this controller observed or drove; None before any."""
        return self._state

    def find_pids(self, matcher: Optional[ProcessMatcher] = None) -> List[int]:
        return self._table.find(matcher or self._matcher)

    def is_running(self, matcher: Optional[ProcessMatcher] = None) -> bool:
        return bool(self.find_pids(matcher))

    def observe(self) -> ServerProcessState:
        """Record the current state without changing anything."""
        self._state = (
            ServerProcessState.RUNNING if self.is_running() else ServerProcessState.STOPPED
        )
        return self._state

    def stop(
        self, installation: ServerInstallation, timeout: Optional[float] = None
    ) -> StopReport:
        """Stop the server: graceful script, then forced kill if it lingers.

        Stop is best-effort. A process that survives the forced kill is
        reported as STILL_RUNNING with its PIDs; deciding whether that is
        fatal is left to the caller.

        Args:
            installation: Server whose stop script is invoked
            timeout: Grace interval override (defaults to timeouts.stop_grace)
        """
        pids = self.find_pids()
        if not pids:
            self._logger.info("No process matches %r, server already stopped", str(self._matcher))
            self._state = ServerProcessState.STOPPED
            return StopReport(final_state=self._state)

        self._state = ServerProcessState.STOPPING
        log_process_event(self._logger, "stop.graceful", pids=pids)

        exit_code: Optional[int] = None
        launched = True
        try:
            result = self._runner.run(
                [str(installation.stop_script)],
                cwd=installation.root,
                timeout=self._timeouts.script_timeout,
            )
            exit_code = result.returncode
            if exit_code != 0:
                # Common while the server is still shutting down asynchronously
                self._logger.warning(
                    "Stop script exited with %s; relying on process table", exit_code
                )
        except ProcessTimeoutError as e:
            self._logger.warning("Stop script did not return: %s", e.message)
        except ProcessError as e:
            launched = False
            self._logger.error("Could not launch stop script: %s", e.message)

        seen: List[int] = list(pids)

        def _gone() -> bool:
            seen[:] = self.find_pids()
            return not seen

        grace = PollPolicy(
            delay=self._timeouts.stop_grace if timeout is None else timeout,
            attempts=self._polling.stop_poll_attempts,
            interval=self._polling.poll_interval,
        )
        if launched and poll_until(_gone, grace, self._sleep, name="graceful stop"):
            log_process_event(self._logger, "stop.graceful_ok")
            self._state = ServerProcessState.STOPPED
            return StopReport(final_state=self._state, graceful_exit_code=exit_code)

        self._logger.warning(
            "Server still running after graceful stop (PIDs %s), escalating to SIGKILL", seen
        )
        log_process_event(self._logger, "stop.forced", pids=list(seen))
        self._table.kill(list(seen), signal.SIGKILL)

        if self._timeouts.kill_wait > 0:
            self._sleep(self._timeouts.kill_wait)
        lingering = self.find_pids()

        if lingering:
            self._logger.error("Processes %s survived SIGKILL", lingering)
            self._state = ServerProcessState.STILL_RUNNING
        else:
            log_process_event(self._logger, "stop.forced_ok")
            self._state = ServerProcessState.STOPPED

        return StopReport(
            final_state=self._state,
            graceful_exit_code=exit_code,
            forced=True,
            lingering_pids=lingering,
        )

    def start(self, installation: ServerInstallation) -> ServerProcessState:
        """Launch the server and wait for a matching process to appear.

        Raises:
            StartError: If the start script cannot be launched or no
                matching process exists after the settle window
        """
        log_process_event(self._logger, "start.invoke", script=str(installation.start_script))
        try:
            result = self._runner.run(
                [str(installation.start_script)],
                cwd=installation.root,
                timeout=self._timeouts.script_timeout,
            )
            if result.returncode != 0:
                self._logger.warning(
                    "Start script exited with %s; checking process table", result.returncode
                )
        except ProcessTimeoutError as e:
            self._logger.warning("Start script did not return: %s", e.message)
        except ProcessError as e:
            self._state = ServerProcessState.START_FAILED
            raise StartError(
                f"Could not launch start script {installation.start_script}: {e.message}",
                details={"script": str(installation.start_script)},
            ) from e

        settle = PollPolicy(
            delay=self._timeouts.start_settle,
            attempts=self._polling.start_poll_attempts,
            interval=self._polling.poll_interval,
        )
        if not poll_until(self.is_running, settle, self._sleep, name="server start"):
            self._state = ServerProcessState.START_FAILED
            self._logger.error(
                "No process matching %r after %.1fs", str(self._matcher), settle.max_wait
            )
            raise StartError(
                f"Server process not running {settle.max_wait:.1f}s after start",
                details={"pattern": str(self._matcher), "waited": settle.max_wait},
            )

        self._state = ServerProcessState.RUNNING
        log_process_event(self._logger, "start.running")
        return self._state
