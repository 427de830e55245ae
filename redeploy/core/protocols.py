"""Protocol definitions for host capabilities.

Every interaction with the target host goes through one of these narrow
interfaces: running a lifecycle script, inspecting or signalling the process
table, and touching the filesystem. Deployment components depend only on the
protocols, so their logic can be exercised without a real server present.
"""

import signal
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from .value_objects import ProcessMatcher


class ScriptResult(Protocol):
    """Outcome of a completed script invocation."""

    returncode: int
    stdout: str
    stderr: str
    duration: float


class ProcessRunner(Protocol):
    """Runs lifecycle scripts of the application server."""

    def run(
        self,
        command: Sequence[str],
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
    ) -> ScriptResult:
        """Run a command to completion.

        Raises:
            ProcessError: If the command cannot be launched
            ProcessTimeoutError: If it does not return within timeout
        """


class ProcessTable(Protocol):
    """Read and signal access to the host's process table."""

    def find(self, matcher: ProcessMatcher) -> List[int]:
        """Return PIDs of all processes whose command line matches."""

    def kill(self, pids: Sequence[int], sig: int = signal.SIGKILL) -> List[int]:
        """Send ``sig`` to each PID and its descendants.

        Returns the PIDs that were actually signalled.
        """


class FileSystem(Protocol):
    """Filesystem operations used by precheck, deploy and verification."""

    def is_dir(self, path: Path) -> bool: ...

    def is_file(self, path: Path) -> bool: ...

    def is_executable(self, path: Path) -> bool: ...

    def make_executable(self, path: Path) -> None: ...

    def list_dir(self, path: Path) -> List[Path]: ...

    def remove(self, path: Path) -> None: ...

    def copy_file(self, src: Path, dst: Path) -> None: ...

    def get_size(self, path: Path) -> int: ...

    def checksum(self, path: Path) -> str: ...

    def tail(self, path: Path, lines: int) -> str: ...
