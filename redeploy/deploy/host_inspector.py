"""Host readiness checks performed before any destructive action."""

from pathlib import Path

from ..core.enums import PrecheckFailure
from ..core.errors import FilesystemError, PrecheckError
from ..core.log import Logger
from ..core.protocols import FileSystem
from ..core.value_objects import ServerInstallation


class HostInspector:
    """Verifies the server installation is present, executable and sound.

    Granting execute permission on a lifecycle script is the only mutation
    allowed before the stop phase, and it is attempted at most once per
    script. Any failure is fatal; there are no retries.
    """

    def __init__(self, logger: Logger, filesystem: FileSystem) -> None:
        self._logger = logger
        self._fs = filesystem

    def check(self, installation: ServerInstallation) -> None:
        """Run every precheck in order.

        Raises:
            PrecheckError: With the specific PrecheckFailure of the first
                item that is missing or cannot be made executable
        """
        self._logger.info("Inspecting installation at %s", installation.root)

        self._require(
            self._fs.is_dir(installation.root),
            PrecheckFailure.INSTALL_ROOT_MISSING,
            "Installation root directory not found",
            installation.root,
        )
        self._require(
            self._fs.is_file(installation.stop_script),
            PrecheckFailure.STOP_SCRIPT_MISSING,
            "Stop script not found",
            installation.stop_script,
        )
        self._require(
            self._fs.is_file(installation.start_script),
            PrecheckFailure.START_SCRIPT_MISSING,
            "Start script not found",
            installation.start_script,
        )
        self._require(
            self._fs.is_dir(installation.content_dir),
            PrecheckFailure.CONTENT_DIR_MISSING,
            "Content directory not found",
            installation.content_dir,
        )

        for script in installation.scripts:
            self._ensure_executable(script)

        self._logger.info("Installation at %s passed precheck", installation.root)

    def _require(
        self, condition: bool, failure: PrecheckFailure, message: str, path: Path
    ) -> None:
        if condition:
            return
        self._logger.error("%s: %s", message, path)
        raise PrecheckError(
            f"{message}: {path}", failure=failure, details={"path": str(path)}
        )

    def _ensure_executable(self, script: Path) -> None:
        if self._fs.is_executable(script):
            return

        self._logger.warning("Script %s is not executable, granting permission", script)
        try:
            self._fs.make_executable(script)
        except FilesystemError as e:
            raise PrecheckError(
                f"Cannot make script executable: {script}: {e.message}",
                failure=PrecheckFailure.SCRIPT_NOT_EXECUTABLE,
                details={"path": str(script)},
            ) from e

        self._require(
            self._fs.is_executable(script),
            PrecheckFailure.SCRIPT_NOT_EXECUTABLE,
            "Script still not executable after permission repair",
            script,
        )
