"""Script execution and process-table access for the application server."""

import os
import signal
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import psutil

from .errors import ProcessError, ProcessTimeoutError
from .log import get_logger, log_process_event
from .value_objects import ProcessMatcher

logger = get_logger(__name__)


@dataclass
class ProcessResult:
    """Result of process execution."""

    returncode: int
    stdout: str
    stderr: str
    duration: float
    timed_out: bool = False


class ScriptRunner:
    """Executes one-shot commands with timeout enforcement.

    Lifecycle scripts of daemonizing servers return once the server has been
    launched in the background, so ``run`` blocks only for the script itself.
    """

    def __init__(
        self, env: Optional[Dict[str, str]] = None, default_timeout: float = 60.0
    ) -> None:
        self._env = env
        self._default_timeout = default_timeout

    def run(
        self,
        command: Sequence[str],
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        """Execute a command with timeout enforcement."""
        command = [str(part) for part in command]
        effective_timeout = timeout if timeout is not None else self._default_timeout
        start_time = time.time()
        log_process_event(
            logger, "exec.start", command=command, timeout=effective_timeout
        )
        logger.debug("Working directory: %s", cwd or Path.cwd())
        logger.debug("Command: %s", " ".join(command))
        try:
            process = subprocess.Popen(
                command,
                cwd=cwd,
                env=self._env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except (OSError, subprocess.SubprocessError, ValueError) as e:
            duration = time.time() - start_time
            log_process_event(logger, "exec.error", duration=duration, error=str(e))
            raise ProcessError(f"Failed to execute command {command[0]}: {e}") from e

        try:
            stdout, stderr = process.communicate(timeout=effective_timeout)
        except subprocess.TimeoutExpired as e:
            duration = time.time() - start_time
            log_process_event(logger, "exec.timeout", duration=duration)
            process.kill()
            process.communicate()
            raise ProcessTimeoutError(
                f"Command {command[0]} timed out after {effective_timeout}s",
                timeout=effective_timeout,
                details={"command": command, "duration": duration},
            ) from e

        duration = time.time() - start_time
        result = ProcessResult(
            returncode=process.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
            duration=duration,
        )
        if process.returncode == 0:
            log_process_event(logger, "exec.ok", duration=duration)
        else:
            log_process_event(
                logger,
                "exec.failed",
                return_code=process.returncode,
                duration=duration,
            )
        return result


def get_child_pids(parent_pid: int) -> List[int]:
    """Get all child process PIDs for a given parent PID.

    This function recursively finds all descendants of the given process.
    """
    child_pids = []
    try:
        parent = psutil.Process(parent_pid)
        children = parent.children(recursive=True)
        child_pids = [child.pid for child in children if child.is_running()]
        logger.debug(
            "Found %s child processes for PID %s: %s",
            len(child_pids),
            parent_pid,
            child_pids,
        )
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess) as e:
        logger.debug("Could not get children for PID %s: %s", parent_pid, e)
    except (psutil.Error, OSError) as e:
        logger.warning("Error getting child PIDs for %s: %s", parent_pid, e)
    return child_pids


class PsutilProcessTable:
    """Process table backed by psutil.

    Matching follows ``pgrep -f`` semantics and never reports the current
    process, so a pattern that also appears on redeploy's own command line
    cannot make the server look alive.
    """

    def __init__(self) -> None:
        self._own_pid = os.getpid()

    def find(self, matcher: ProcessMatcher) -> List[int]:
        pids = []
        for proc in psutil.process_iter(["pid", "cmdline"]):
            try:
                info = proc.info
                if info["pid"] == self._own_pid:
                    continue
                if proc.status() == psutil.STATUS_ZOMBIE:
                    continue
                if matcher.matches(info.get("cmdline") or []):
                    pids.append(info["pid"])
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        logger.debug("Processes matching %r: %s", str(matcher), pids)
        return pids

    def kill(self, pids: Sequence[int], sig: int = signal.SIGKILL) -> List[int]:
        targets: List[int] = []
        for pid in pids:
            for candidate in [pid] + get_child_pids(pid):
                if candidate not in targets:
                    targets.append(candidate)

        signalled = []
        for pid in targets:
            try:
                os.kill(pid, sig)
                signalled.append(pid)
                log_process_event(logger, "signal.sent", pid=pid, signal=int(sig))
            except ProcessLookupError:
                logger.debug("PID %s already dead", pid)
            except PermissionError as e:
                logger.warning("Not permitted to signal PID %s: %s", pid, e)
        return signalled
